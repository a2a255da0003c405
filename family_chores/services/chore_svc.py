from __future__ import annotations

# family_chores/services/chore_svc.py
import datetime as dt
import logging
import random

from ..db import get_conn, transaction
from ..domain import lifecycle
from ..domain.rotation import members_of, parse_policy, pick_initial
from ..errors import Forbidden, NotFound, ValidationError
from ..repository import (
    assignment_repo,
    chore_repo,
    completed_repo,
    recurring_repo,
    submission_repo,
    user_repo,
)
from . import achievement_svc, notification_svc, upload_svc
from .utils import dumps_json, fmt_ts, loads_json, now_local

logger = logging.getLogger(__name__)


def _require_parent(actor: dict, what: str):
    if actor["role"] != "parent":
        raise Forbidden(f"Only parents can {what}")


def _decorate(chore: dict) -> dict:
    chore["metadata"] = loads_json(chore.get("metadata"))
    chore["requires_photo"] = bool(chore.get("requires_photo"))
    return chore


def _validate_members(conn, family_id: int, ids) -> None:
    known = user_repo.member_ids(conn, family_id)
    missing = [m for m in ids if m not in known]
    if missing:
        raise ValidationError(
            "Assignees must be active members of your family",
            errors=[{"field": "rotation_members", "message": "not a family member", "value": m} for m in missing],
        )


# --- reads ---

def list_chores(actor: dict, status: str | None = None, assigned_to: int | None = None) -> list[dict]:
    with get_conn() as conn:
        rows = chore_repo.list_family(conn, actor["family_id"], status, assigned_to)
    return [_decorate(r) for r in rows]


def get_chore(actor: dict, chore_id: int) -> dict:
    with get_conn() as conn:
        chore = chore_repo.get_detail(conn, chore_id, actor["family_id"])
        if not chore:
            raise NotFound("Chore not found")
        if actor["role"] != "parent" and actor["id"] not in (chore["assigned_to"], chore["created_by"]):
            raise Forbidden("You do not have access to this chore")
        chore["submissions"] = submission_repo.list_for_chore(conn, chore_id)
        chore["assignments"] = assignment_repo.list_for_chore(conn, chore_id)
    return _decorate(chore)


def list_for_user(actor: dict, user_id: int) -> list[dict]:
    with get_conn() as conn:
        target = user_repo.get_in_family(conn, user_id, actor["family_id"])
        if not target:
            raise NotFound("User not found")
        if actor["role"] != "parent" and actor["id"] != user_id:
            raise Forbidden("You can only view your own chores")
        rows = chore_repo.list_for_user(conn, user_id)
    return [_decorate(r) for r in rows]


# --- transitions ---

def create_chore(actor: dict, body: dict, now: dt.datetime | None = None,
                 rng: random.Random | None = None) -> dict:
    """
    Create a chore; with auto_assign the first assignee comes from the rotation policy
    and the chore starts pending_acceptance with a pending assignment row.
    """
    _require_parent(actor, "create chores")
    now = now or now_local()
    title = (body.get("title") or "").strip()
    if not title or body.get("reward_amount") is None:
        raise ValidationError("Title and reward amount are required")
    reward_type = body.get("reward_type") or "money"
    try:
        reward = lifecycle.normalize_reward(reward_type, body["reward_amount"])
        policy = parse_policy(
            bool(body.get("auto_assign")),
            body.get("rotation_type"),
            body.get("assigned_to"),
            body.get("rotation_members"),
        )
    except ValueError as e:
        raise ValidationError(str(e))
    timer = int(body.get("acceptance_timer") or 5)

    def _tx(conn):
        _validate_members(conn, actor["family_id"], members_of(policy))
        assignee = pick_initial(policy, rng)
        ts = fmt_ts(now)
        chore_id = chore_repo.insert(conn, {
            "family_id": actor["family_id"],
            "title": title,
            "description": body.get("description"),
            "reward_type": reward_type,
            "reward_amount": reward,
            "current_reward": reward,
            "requires_photo": int(bool(body.get("requires_photo"))),
            "acceptance_timer": timer,
            "status": lifecycle.initial_status(assignee),
            "priority": body.get("priority") or "medium",
            "due_date": body.get("due_date"),
            "estimated_duration": body.get("estimated_duration"),
            "difficulty_level": body.get("difficulty_level") or "medium",
            "category": body.get("category"),
            "created_by": actor["id"],
            "assigned_to": assignee,
            "assigned_at": ts if assignee else None,
            "metadata": dumps_json({
                "created_at": ts,
                "auto_assign": bool(body.get("auto_assign")),
                "rotation_type": policy.kind,
                "rotation_members": list(members_of(policy)) or None,
            }),
        })
        if assignee:
            assignment_repo.insert(
                conn, chore_id, assignee, actor["id"], ts, fmt_ts(now + dt.timedelta(minutes=timer))
            )
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    chore = _decorate(transaction(_tx))
    if chore["assigned_to"]:
        notification_svc.chore_assigned(chore, chore["assigned_to"], actor)
    return chore


def assign_chore(actor: dict, chore_id: int, user_id: int, notes: str | None = None,
                 now: dt.datetime | None = None) -> dict:
    _require_parent(actor, "assign chores")
    now = now or now_local()

    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore:
            raise NotFound("Chore not found")
        if not lifecycle.can_assign(chore):
            raise ValidationError(f"Cannot assign a chore that is {chore['status']}")
        target = user_repo.get_in_family(conn, user_id, actor["family_id"])
        if not target or not target["is_active"]:
            raise NotFound("User not found in your family")
        ts = fmt_ts(now)
        deadline = fmt_ts(now + dt.timedelta(minutes=chore["acceptance_timer"] or 5))
        assignment_repo.insert(conn, chore_id, user_id, actor["id"], ts, deadline, notes)
        chore_repo.set_assignment(conn, chore_id, "pending_acceptance", user_id, ts)
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    chore = _decorate(transaction(_tx))
    notification_svc.chore_assigned(chore, user_id, actor)
    return chore


def _respond(actor: dict, chore_id: int, accept: bool, now: dt.datetime) -> dict:
    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore or not lifecycle.can_respond(chore, actor["id"]):
            raise NotFound("Chore not found or not assigned to you")
        ts = fmt_ts(now)
        pending = assignment_repo.latest_pending(conn, chore_id, actor["id"])
        if accept:
            if pending:
                assignment_repo.mark_accepted(conn, pending["id"], ts)
            chore_repo.mark_accepted(conn, chore_id, ts)
        else:
            if pending:
                assignment_repo.mark_declined(conn, pending["id"], ts)
            chore_repo.set_assignment(conn, chore_id, "available", None, None)
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    return _decorate(transaction(_tx))


def accept_chore(actor: dict, chore_id: int, now: dt.datetime | None = None) -> dict:
    return _respond(actor, chore_id, True, now or now_local())


def decline_chore(actor: dict, chore_id: int, now: dt.datetime | None = None) -> dict:
    return _respond(actor, chore_id, False, now or now_local())


def submit_chore(actor: dict, chore_id: int, notes: str | None = None, photo: tuple | None = None,
                 now: dt.datetime | None = None) -> dict:
    """photo is (filename, content_type, bytes) from a multipart upload, or None."""
    now = now or now_local()
    with get_conn() as conn:
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
    if not chore or not lifecycle.can_submit(chore, actor["id"]):
        raise NotFound("Chore not found or not in progress")
    if chore["requires_photo"] and not photo:
        raise ValidationError("Photo is required for this chore")

    stored = None
    if photo:
        filename, content_type, data = photo
        stored = upload_svc.store_image(actor, filename, content_type, data, upload_type="chore_submission")

    def _tx(conn):
        current = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not current or not lifecycle.can_submit(current, actor["id"]):
            raise NotFound("Chore not found or not in progress")
        assignment = assignment_repo.latest_for_user(conn, chore_id, actor["id"])
        sub_id = submission_repo.insert(
            conn, chore_id, actor["id"], assignment["id"] if assignment else None,
            stored["file_path"] if stored else None,
            stored["thumbnail_path"] if stored else None,
            notes, fmt_ts(now),
        )
        chore_repo.mark_submitted(conn, chore_id, sub_id)
        out = chore_repo.get_detail(conn, chore_id, actor["family_id"])
        out["submission"] = submission_repo.get(conn, sub_id)
        return out

    try:
        result = _decorate(transaction(_tx))
    except Exception:
        if stored:
            logger.warning("submit of chore %s failed, discarding upload %s", chore_id, stored["id"])
            upload_svc.discard(stored)
        raise
    notification_svc.chore_submitted(result, actor)
    return result


def _active_submission(conn, chore: dict):
    if chore["active_submission_id"]:
        sub = submission_repo.get(conn, chore["active_submission_id"])
        if sub:
            return sub
    return submission_repo.latest_for(conn, chore["id"], chore["assigned_to"])


def approve_chore(actor: dict, chore_id: int, notes: str | None = None,
                  now: dt.datetime | None = None) -> dict:
    """
    Review, ledger insert, balance credit and chore completion commit together.
    Achievements and notifications run afterwards and never undo the approval.
    """
    _require_parent(actor, "approve chores")
    now = now or now_local()

    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore or not lifecycle.can_review(chore):
            raise NotFound("Chore not found or not pending approval")
        sub = _active_submission(conn, chore)
        if not sub:
            raise NotFound("No submission found for this chore")
        ts = fmt_ts(now)
        submission_repo.review(conn, sub["id"], "approved", actor["id"], ts, notes)
        earn, minutes = lifecycle.credit_delta(chore["reward_type"], chore["current_reward"])
        completed_repo.insert(conn, {
            "chore_id": chore_id,
            "user_id": chore["assigned_to"],
            "submission_id": sub["id"],
            "chore_title": chore["title"],
            "chore_description": chore["description"],
            "reward_type": chore["reward_type"],
            "reward_earned": earn if chore["reward_type"] == "money" else minutes,
            "completed_at": ts,
            "approved_by": actor["id"],
            "approved_at": ts,
            "photo_path": sub["photo_path"],
            "notes": sub["notes"],
        })
        user_repo.credit(conn, chore["assigned_to"], earn, minutes)
        chore_repo.mark_completed(conn, chore_id, ts)
        recurring_repo.complete_history_for_chore(conn, chore_id, chore["assigned_to"], ts)
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    chore = _decorate(transaction(_tx))
    logger.info("chore %s approved for user %s (%s %s)", chore_id, chore["assigned_to"],
                chore["current_reward"], chore["reward_type"])
    achievement_svc.evaluate(chore["assigned_to"], actor["family_id"])
    notification_svc.chore_reviewed(chore, approved=True)
    return chore


def reject_chore(actor: dict, chore_id: int, notes: str | None = None,
                 now: dt.datetime | None = None) -> dict:
    _require_parent(actor, "reject chores")
    now = now or now_local()
    review_notes = notes or lifecycle.DEFAULT_REJECT_NOTES

    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore or not lifecycle.can_review(chore):
            raise NotFound("Chore not found or not pending approval")
        sub = _active_submission(conn, chore)
        if not sub:
            raise NotFound("No submission found for this chore")
        submission_repo.review(conn, sub["id"], "rejected", actor["id"], fmt_ts(now), review_notes)
        chore_repo.mark_rejected(conn, chore_id)
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    chore = _decorate(transaction(_tx))
    notification_svc.chore_reviewed(chore, approved=False, notes=review_notes)
    return chore


def delete_chore(actor: dict, chore_id: int):
    _require_parent(actor, "delete chores")

    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore:
            raise NotFound("Chore not found")
        if not lifecycle.can_delete(chore):
            raise ValidationError("Completed chores cannot be deleted")
        chore_repo.delete(conn, chore_id)
        return chore

    return transaction(_tx)


def update_chore(actor: dict, chore_id: int, fields: dict) -> dict:
    """Partial update over the fixed allowlist in chore_repo.PATCH_COLUMNS."""
    fields = {k: v for k, v in fields.items() if k in chore_repo.PATCH_COLUMNS and v is not None}
    if not fields:
        raise ValidationError("No valid fields to update")
    if "requires_photo" in fields:
        fields["requires_photo"] = int(bool(fields["requires_photo"]))

    def _tx(conn):
        chore = chore_repo.get_in_family(conn, chore_id, actor["family_id"])
        if not chore:
            raise NotFound("Chore not found")
        if actor["role"] != "parent" and chore["created_by"] != actor["id"]:
            raise Forbidden("Only parents or the chore creator can update this chore")
        reward_type = fields.get("reward_type", chore["reward_type"])
        try:
            if "reward_amount" in fields or "reward_type" in fields:
                amount = lifecycle.normalize_reward(reward_type, fields.get("reward_amount", chore["reward_amount"]))
                if "reward_amount" in fields:
                    fields["reward_amount"] = amount
            if "status" in fields:
                lifecycle.check_status_patch(fields["status"], chore["assigned_to"])
        except ValueError as e:
            raise ValidationError(str(e))
        chore_repo.apply_patch(conn, chore_id, fields)
        if fields.get("status") == "available":
            chore_repo.clear_assignee(conn, chore_id)
        return chore_repo.get_detail(conn, chore_id, actor["family_id"])

    return _decorate(transaction(_tx))
