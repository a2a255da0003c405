from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..services import achievement_svc
from .deps import current_user, ok, require_parent

router = APIRouter()


class AchievementBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = None
    badge_color: str | None = None
    criteria_type: str
    criteria_value: float = Field(gt=0)
    reward_type: str = Field(default="badge_only", pattern=r"^(money|screen_time|badge_only)$")
    reward_amount: float = Field(default=0, ge=0)


@router.get("/api/achievements")
def api_list_achievements(user: dict = Depends(current_user)):
    return ok(achievement_svc.list_achievements(user))


@router.post("/api/achievements")
def api_create_achievement(body: AchievementBody, user: dict = Depends(require_parent)):
    ach = achievement_svc.create_achievement(user, body.dict())
    return JSONResponse(status_code=201, content=ok({"achievement": ach}))
