from __future__ import annotations

from fastapi import Depends, Request

from ..errors import Forbidden
from ..services.auth_svc import authenticate


def bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def current_user(request: Request) -> dict:
    user = authenticate(bearer_token(request))
    request.state.user = user
    return user


def require_parent(user: dict = Depends(current_user)) -> dict:
    if user["role"] != "parent":
        raise Forbidden("You do not have permission to perform this action")
    return user


def ok(data=None, message: str | None = None) -> dict:
    body: dict = {"status": "success"}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
