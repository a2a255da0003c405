from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import Forbidden
from ..services import auth_svc, stats_svc, user_svc
from .deps import current_user, ok, require_parent

router = APIRouter()


class MemberBody(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    role: str = Field(default="child", pattern=r"^(parent|child)$")
    email: str | None = None
    password: str | None = Field(default=None, min_length=6)


@router.get("/api/families/stats")
def api_family_stats(user: dict = Depends(require_parent)):
    return ok({"stats": stats_svc.family_stats(user)})


@router.get("/api/families/{family_id}/members")
def api_members(family_id: int, user: dict = Depends(current_user)):
    return ok({"members": user_svc.family_members(user, family_id)})


@router.post("/api/families/{family_id}/members")
def api_add_member(family_id: int, body: MemberBody, user: dict = Depends(require_parent)):
    if family_id != user["family_id"]:
        raise Forbidden("You do not have access to this family")
    member = auth_svc.add_member(user, body.name, body.role, body.email, body.password)
    return JSONResponse(status_code=201, content=ok({"member": member}, "Member added"))
