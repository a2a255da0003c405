from __future__ import annotations

# family_chores/services/recurring_svc.py
import datetime as dt
import logging
import random

from ..db import get_conn, transaction
from ..domain import lifecycle
from ..domain.rotation import load_policy, members_of, parse_policy, pick_for_generation
from ..domain.schedule import FREQUENCIES, initial_due_date, plain_step
from ..errors import Forbidden, NotFound, ValidationError
from ..repository import assignment_repo, chore_repo, family_repo, recurring_repo, user_repo
from . import notification_svc
from .utils import dumps_json, fmt_ts, loads_json, now_local, parse_ts

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("frequency", "start_date", "day_of_week", "day_of_month")
ROTATION_FIELDS = ("auto_assign", "assigned_to", "rotation_type", "rotation_members")


def _require_parent(actor: dict, what: str):
    if actor["role"] != "parent":
        raise Forbidden(f"Only parents can {what}")


def _decorate(t: dict) -> dict:
    t["rotation_members"] = loads_json(t.get("rotation_members"))
    t["metadata"] = loads_json(t.get("metadata"))
    t["auto_assign"] = bool(t.get("auto_assign"))
    t["is_active"] = bool(t.get("is_active"))
    t["requires_photo"] = bool(t.get("requires_photo"))
    return t


def _check_date(value, field: str) -> str:
    try:
        return dt.date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)",
                              errors=[{"field": field, "message": "invalid date", "value": value}])


def _resolve_policy(conn, family_id: int, rec: dict):
    try:
        policy = parse_policy(
            bool(rec.get("auto_assign")), rec.get("rotation_type"),
            rec.get("assigned_to"), rec.get("rotation_members"),
        )
    except ValueError as e:
        raise ValidationError(str(e))
    known = user_repo.member_ids(conn, family_id)
    missing = [m for m in members_of(policy) if m not in known]
    if missing:
        raise ValidationError(
            "Assignees must be active members of your family",
            errors=[{"field": "rotation_members", "message": "not a family member", "value": m} for m in missing],
        )
    return policy


# --- CRUD ---

def list_templates(actor: dict) -> list[dict]:
    with get_conn() as conn:
        return [_decorate(t) for t in recurring_repo.list_family(conn, actor["family_id"])]


def get_template(actor: dict, recurring_id: int) -> dict:
    with get_conn() as conn:
        t = recurring_repo.get_in_family(conn, recurring_id, actor["family_id"])
        if not t:
            raise NotFound("Recurring chore not found")
        t["history"] = recurring_repo.list_history(conn, recurring_id)
    return _decorate(t)


def create_template(actor: dict, body: dict, now: dt.datetime | None = None) -> dict:
    _require_parent(actor, "create recurring chores")
    now = now or now_local()
    required = ("title", "frequency", "start_date", "reward_type", "reward_amount")
    missing = [f for f in required if body.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields",
            errors=[{"field": f, "message": "is required", "value": None} for f in missing],
        )
    if body["frequency"] not in FREQUENCIES:
        raise ValidationError(f"frequency must be one of {', '.join(FREQUENCIES)}")
    start = _check_date(body["start_date"], "start_date")
    end = _check_date(body["end_date"], "end_date") if body.get("end_date") else None
    try:
        reward = lifecycle.normalize_reward(body["reward_type"], body["reward_amount"])
    except ValueError as e:
        raise ValidationError(str(e))
    due = initial_due_date(body["frequency"], start, now, body.get("day_of_week"), body.get("day_of_month"))

    def _tx(conn):
        policy = _resolve_policy(conn, actor["family_id"], body)
        members = members_of(policy)
        rid = recurring_repo.insert(conn, {
            "family_id": actor["family_id"],
            "title": body["title"].strip(),
            "description": body.get("description"),
            "reward_type": body["reward_type"],
            "reward_amount": reward,
            "requires_photo": int(bool(body.get("requires_photo"))),
            "frequency": body["frequency"],
            "day_of_week": body.get("day_of_week"),
            "day_of_month": body.get("day_of_month"),
            "custom_schedule": dumps_json(body.get("custom_schedule")),
            "start_date": start,
            "end_date": end,
            "next_due_date": fmt_ts(due),
            "auto_assign": int(bool(body.get("auto_assign"))),
            "assigned_to": body.get("assigned_to") if policy.kind == "none" else None,
            "rotation_type": policy.kind,
            "rotation_members": dumps_json(list(members)) if policy.kind != "none" else None,
            "priority": body.get("priority") or "medium",
            "estimated_duration": body.get("estimated_duration"),
            "difficulty_level": body.get("difficulty_level") or "medium",
            "category": body.get("category"),
            "created_by": actor["id"],
        })
        return recurring_repo.get_in_family(conn, rid, actor["family_id"])

    return _decorate(transaction(_tx))


def update_template(actor: dict, recurring_id: int, fields: dict, now: dt.datetime | None = None) -> dict:
    """Partial update; a schedule change recomputes next_due_date from the merged fields."""
    _require_parent(actor, "update recurring chores")
    now = now or now_local()
    fields = {k: v for k, v in fields.items() if k in recurring_repo.PATCH_COLUMNS and k != "next_due_date"}
    if not fields:
        raise ValidationError("No valid fields to update")

    def _tx(conn):
        current = recurring_repo.get_in_family(conn, recurring_id, actor["family_id"])
        if not current:
            raise NotFound("Recurring chore not found")
        merged = {**current, **fields}
        patch = dict(fields)

        if merged["frequency"] not in FREQUENCIES:
            raise ValidationError(f"frequency must be one of {', '.join(FREQUENCIES)}")
        if "start_date" in patch:
            patch["start_date"] = _check_date(patch["start_date"], "start_date")
        if patch.get("end_date"):
            patch["end_date"] = _check_date(patch["end_date"], "end_date")
        if "reward_amount" in patch or "reward_type" in patch:
            try:
                amount = lifecycle.normalize_reward(merged["reward_type"], merged["reward_amount"])
            except ValueError as e:
                raise ValidationError(str(e))
            if "reward_amount" in patch:
                patch["reward_amount"] = amount
        for flag in ("auto_assign", "requires_photo", "is_active"):
            if flag in patch:
                patch[flag] = int(bool(patch[flag]))

        if any(f in fields for f in ROTATION_FIELDS):
            policy = _resolve_policy(conn, actor["family_id"], merged)
            patch["rotation_type"] = policy.kind
            members = members_of(policy)
            patch["rotation_members"] = dumps_json(list(members)) if policy.kind != "none" else None
            if policy.kind != "none":
                patch["assigned_to"] = None
        if "custom_schedule" in patch:
            patch["custom_schedule"] = dumps_json(patch["custom_schedule"])

        if any(f in fields for f in SCHEDULE_FIELDS):
            due = initial_due_date(
                merged["frequency"], patch.get("start_date", merged["start_date"]), now,
                merged.get("day_of_week"), merged.get("day_of_month"),
            )
            patch["next_due_date"] = fmt_ts(due)

        recurring_repo.apply_patch(conn, recurring_id, patch)
        return recurring_repo.get_in_family(conn, recurring_id, actor["family_id"])

    return _decorate(transaction(_tx))


def delete_template(actor: dict, recurring_id: int):
    """History rows cascade; chores already generated are kept."""
    _require_parent(actor, "delete recurring chores")
    with get_conn() as conn:
        if not recurring_repo.get_in_family(conn, recurring_id, actor["family_id"]):
            raise NotFound("Recurring chore not found")
        recurring_repo.delete(conn, recurring_id)


# --- generation ---

def _generate_one(template: dict, generated_by: int | None, now: dt.datetime,
                  rng: random.Random | None) -> dict | None:
    """
    Materialize the chore for the template's current due date.
    Returns None when history already has a row for that calendar date.
    """
    def _tx(conn):
        t = recurring_repo.get(conn, template["id"])
        if t is None:
            return None
        due_s = t["next_due_date"]
        if recurring_repo.history_exists_on(conn, t["id"], due_s):
            return None

        policy = load_policy(t)
        last = recurring_repo.last_history(conn, t["id"])
        assignee = pick_for_generation(policy, last["assigned_to"] if last else None, rng)
        ts = fmt_ts(now)
        creator = generated_by or t["created_by"]
        chore_id = chore_repo.insert(conn, {
            "family_id": t["family_id"],
            "template_id": t["template_id"],
            "title": t["title"],
            "description": t["description"],
            "reward_type": t["reward_type"],
            "reward_amount": t["reward_amount"],
            "current_reward": t["reward_amount"],
            "requires_photo": t["requires_photo"],
            "status": lifecycle.generated_status(assignee),
            "priority": t["priority"] or "medium",
            "due_date": due_s,
            "estimated_duration": t["estimated_duration"],
            "difficulty_level": t["difficulty_level"] or "medium",
            "category": t["category"],
            "created_by": creator,
            "assigned_to": assignee,
            "assigned_at": ts if assignee else None,
            "metadata": dumps_json({
                "recurring_id": t["id"],
                "generated_at": ts,
                "generated_by": generated_by if generated_by else "scheduler",
            }),
        })
        if assignee:
            # generated assignments carry no acceptance deadline
            assignment_repo.insert(conn, chore_id, assignee, creator, ts, None)
        recurring_repo.insert_history(conn, t["id"], chore_id, due_s, assignee)
        next_due = plain_step(t["frequency"], parse_ts(due_s))
        recurring_repo.advance(conn, t["id"], fmt_ts(next_due), ts)
        return {
            "chore_id": chore_id,
            "recurring_id": t["id"],
            "family_id": t["family_id"],
            "title": t["title"],
            "due_date": due_s,
            "assigned_to": assignee,
            "next_due_date": fmt_ts(next_due),
        }

    return transaction(_tx)


def generate(family_id: int | None = None, recurring_id: int | None = None,
             generated_by: int | None = None, now: dt.datetime | None = None,
             rng: random.Random | None = None) -> dict:
    """
    Generate chores for due templates (one family, or every family when family_id is None),
    or for one explicit template. A failing template is logged and skipped.
    """
    now = now or now_local()
    today = now.date()
    with get_conn() as conn:
        if recurring_id is not None:
            t = recurring_repo.get_active(conn, recurring_id, family_id)
            if not t:
                raise NotFound("Recurring chore not found or inactive")
            templates = [t]
        else:
            templates = recurring_repo.list_due(conn, f"{today.isoformat()} 23:59:59", today.isoformat(), family_id)

    generated: list[dict] = []
    errors: list[dict] = []
    skipped: list[int] = []
    for t in templates:
        try:
            out = _generate_one(t, generated_by, now, rng)
        except Exception as e:
            logger.error("recurring generation failed for template %s: %s", t["id"], e)
            errors.append({"recurring_id": t["id"], "title": t["title"], "error": str(e)})
            continue
        if out is None:
            skipped.append(t["id"])
            continue
        generated.append(out)

    for g in generated:
        if g["assigned_to"]:
            notification_svc.chore_assigned({"id": g["chore_id"], "title": g["title"]}, g["assigned_to"])
    if templates:
        logger.info("recurring generation: %s generated, %s skipped, %s failed",
                    len(generated), len(skipped), len(errors))
    return {"generated": generated, "skipped": skipped, "errors": errors}


def generate_all_families(now: dt.datetime | None = None) -> dict:
    with get_conn() as conn:
        families = family_repo.list_ids(conn)
    totals = {"generated": [], "skipped": [], "errors": []}
    for fid in families:
        res = generate(family_id=fid, now=now)
        for k in totals:
            totals[k].extend(res[k])
    return totals
