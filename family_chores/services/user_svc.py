from __future__ import annotations

# family_chores/services/user_svc.py
from ..db import get_conn
from ..errors import Forbidden, NotFound, ValidationError
from ..repository import completed_repo, user_repo
from .utils import dumps_json, loads_json


def _decorate(u: dict) -> dict:
    u["preferences"] = loads_json(u.get("preferences"), {})
    u["notification_settings"] = loads_json(u.get("notification_settings"))
    u["is_active"] = bool(u.get("is_active"))
    return u


def check_user_access(actor: dict, user_id: int) -> dict:
    """Parents see anyone in their family; children only themselves."""
    with get_conn() as conn:
        target = user_repo.get_in_family(conn, user_id, actor["family_id"])
    if not target:
        raise NotFound("User not found")
    if actor["role"] != "parent" and actor["id"] != user_id:
        raise Forbidden("You can only access your own information")
    return _decorate(target)


def get_user(actor: dict, user_id: int) -> dict:
    user = check_user_access(actor, user_id)
    with get_conn() as conn:
        user["stats"] = user_repo.get_stats(conn, user_id)
    return user


def completed_for_user(actor: dict, user_id: int, limit: int = 20) -> list[dict]:
    check_user_access(actor, user_id)
    with get_conn() as conn:
        return completed_repo.list_for_user(conn, user_id, limit)


def family_members(actor: dict, family_id: int | None = None) -> list[dict]:
    if family_id is not None and family_id != actor["family_id"]:
        raise Forbidden("You do not have access to this family")
    with get_conn() as conn:
        return [_decorate(u) for u in user_repo.list_family(conn, actor["family_id"])]


def update_user(actor: dict, user_id: int, fields: dict) -> dict:
    check_user_access(actor, user_id)
    role = fields.get("role")
    is_active = fields.get("is_active")
    if (role is not None or is_active is not None) and actor["role"] != "parent":
        raise Forbidden("Only parents can change roles or activation")
    if role is not None and role not in ("parent", "child"):
        raise ValidationError("Role must be either parent or child")
    if is_active is False and user_id == actor["id"]:
        raise ValidationError("You cannot deactivate your own account")
    if not any(fields.get(k) is not None for k in ("name", "email", "avatar_url", "preferences", "role", "is_active")):
        raise ValidationError("No valid fields to update")
    prefs = fields.get("preferences")
    with get_conn() as conn:
        user_repo.update_profile(
            conn, user_id,
            name=fields.get("name"),
            email=fields.get("email"),
            avatar_url=fields.get("avatar_url"),
            preferences=dumps_json(prefs) if prefs is not None else None,
            role=role,
            is_active=is_active,
        )
        return _decorate(user_repo.get(conn, user_id))
