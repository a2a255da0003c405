from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..services import chore_svc, stats_svc, user_svc
from .deps import current_user, ok

router = APIRouter()


class UserPatchBody(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    avatar_url: str | None = None
    preferences: dict | None = None
    role: str | None = Field(default=None, pattern=r"^(parent|child)$")
    is_active: bool | None = None


# fixed paths first so they are not captured by /api/users/{user_id}
@router.get("/api/users/me/chores")
def api_my_chores(user: dict = Depends(current_user)):
    return ok({"chores": chore_svc.list_for_user(user, user["id"])})


@router.get("/api/users/profile")
def api_profile(user: dict = Depends(current_user)):
    return ok(stats_svc.user_profile(user))


@router.get("/api/users/family/members")
def api_family_members(user: dict = Depends(current_user)):
    return ok({"members": user_svc.family_members(user)})


@router.get("/api/users/{user_id}")
def api_get_user(user_id: int, user: dict = Depends(current_user)):
    return ok({"user": user_svc.get_user(user, user_id)})


@router.get("/api/users/{user_id}/chores")
def api_user_chores(user_id: int, user: dict = Depends(current_user)):
    return ok({"chores": chore_svc.list_for_user(user, user_id)})


@router.get("/api/users/{user_id}/completed")
def api_user_completed(user_id: int, user: dict = Depends(current_user)):
    return ok({"completedTasks": user_svc.completed_for_user(user, user_id)})


@router.patch("/api/users/{user_id}")
def api_update_user(user_id: int, body: UserPatchBody, user: dict = Depends(current_user)):
    updated = user_svc.update_user(user, user_id, body.dict(exclude_unset=True))
    return ok({"user": updated}, "User updated successfully")
