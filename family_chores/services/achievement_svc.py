from __future__ import annotations

# family_chores/services/achievement_svc.py
import logging

from ..db import get_conn, transaction
from ..domain.lifecycle import credit_delta
from ..errors import Forbidden, ValidationError
from ..repository import achievement_repo, completed_repo, user_repo
from . import notification_svc

logger = logging.getLogger(__name__)

SUPPORTED_CRITERIA = ("chores_completed", "earnings_reached")
ALL_CRITERIA = SUPPORTED_CRITERIA + ("streak_days", "quality_average")


def list_achievements(user: dict) -> dict:
    with get_conn() as conn:
        return {
            "achievements": achievement_repo.list_family(conn, user["family_id"]),
            "earned": achievement_repo.earned_by_user(conn, user["id"]),
        }


def create_achievement(actor: dict, body: dict) -> dict:
    if actor["role"] != "parent":
        raise Forbidden("Only parents can create achievements")
    if body.get("criteria_type") not in ALL_CRITERIA:
        raise ValidationError(f"criteria_type must be one of {', '.join(ALL_CRITERIA)}")
    rec = {
        "family_id": actor["family_id"],
        "name": body["name"],
        "description": body.get("description"),
        "icon": body.get("icon"),
        "badge_color": body.get("badge_color") or "#3B82F6",
        "criteria_type": body["criteria_type"],
        "criteria_value": float(body["criteria_value"]),
        "reward_type": body.get("reward_type") or "badge_only",
        "reward_amount": float(body.get("reward_amount") or 0),
    }
    with get_conn() as conn:
        aid = achievement_repo.insert(conn, rec)
    return {"id": aid, **rec}


def _progress(conn, user_id: int, criteria_type: str) -> float | None:
    if criteria_type == "chores_completed":
        return completed_repo.count_for_user(conn, user_id)
    if criteria_type == "earnings_reached":
        return user_repo.get(conn, user_id)["earnings"]
    return None


def evaluate(user_id: int, family_id: int) -> list[dict]:
    """Award every achievement whose threshold the user now meets. Best-effort."""
    awarded: list[dict] = []
    try:
        with get_conn() as conn:
            candidates = achievement_repo.not_yet_earned(conn, family_id, user_id)
            progress = {c: _progress(conn, user_id, c) for c in SUPPORTED_CRITERIA}
        for ach in candidates:
            value = progress.get(ach["criteria_type"])
            if value is None or value < ach["criteria_value"]:
                continue

            def _tx(conn, ach=ach, value=value):
                achievement_repo.award(conn, user_id, ach["id"], value)
                if ach["reward_type"] in ("money", "screen_time") and ach["reward_amount"]:
                    earn, minutes = credit_delta(ach["reward_type"], ach["reward_amount"])
                    user_repo.credit(conn, user_id, earn, minutes)

            transaction(_tx)
            awarded.append(ach)
            notification_svc.achievement_earned(user_id, ach)
    except Exception as e:
        logger.error("achievement evaluation for user %s failed: %s", user_id, e)
    return awarded
