from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import AppError
from ..logs import ActivityLogContext
from ..services import recurring_svc
from .deps import current_user, ok, require_parent

router = APIRouter()


class RecurringBody(BaseModel):
    title: str | None = None
    description: str | None = None
    reward_type: str | None = Field(default=None, pattern=r"^(money|screen_time)$")
    reward_amount: float | None = None
    requires_photo: bool | None = None
    frequency: str | None = Field(default=None, pattern=r"^(daily|weekly|monthly|custom)$")
    day_of_week: str | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    custom_schedule: dict | str | None = None
    start_date: str | None = None
    end_date: str | None = None
    auto_assign: bool | None = None
    assigned_to: int | None = None
    rotation_type: str | None = Field(default=None, pattern=r"^(none|round_robin|random)$")
    rotation_members: list | str | None = None
    priority: str | None = Field(default=None, pattern=r"^(low|medium|high|urgent)$")
    estimated_duration: int | None = None
    difficulty_level: str | None = Field(default=None, pattern=r"^(easy|medium|hard)$")
    category: str | None = None
    is_active: bool | None = None


class GenerateBody(BaseModel):
    recurringId: int | None = None


@router.get("/api/recurring")
def api_list_recurring(user: dict = Depends(current_user)):
    return ok({"recurringChores": recurring_svc.list_templates(user)})


@router.get("/api/recurring/{recurring_id}")
def api_get_recurring(recurring_id: int, user: dict = Depends(current_user)):
    return ok({"recurringChore": recurring_svc.get_template(user, recurring_id)})


@router.post("/api/recurring/generate")
def api_generate(request: Request, body: GenerateBody | None = None, user: dict = Depends(require_parent)):
    rid = body.recurringId if body else None
    log = ActivityLogContext("GENERATE_RECURRING", user, request)
    log.set_entity("recurring", rid)
    try:
        res = recurring_svc.generate(family_id=user["family_id"], recurring_id=rid, generated_by=user["id"])
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    log.set_details({"generated": len(res["generated"]), "errors": res["errors"]})
    log.write("OK")
    n = len(res["generated"])
    msg = f"Generated {n} chores" if n else "No recurring chores to generate"
    return ok({"generated": n, "chores": res["generated"], "skipped": res["skipped"], "errors": res["errors"]}, msg)


@router.post("/api/recurring")
def api_create_recurring(body: RecurringBody, request: Request, user: dict = Depends(current_user)):
    payload = body.dict(exclude_unset=True)
    log = ActivityLogContext("CREATE_RECURRING", user, request)
    log.set_details(payload)
    try:
        tpl = recurring_svc.create_template(user, payload)
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    log.set_entity("recurring", tpl["id"])
    log.write("OK")
    return JSONResponse(status_code=201, content=ok({"recurringChore": tpl}, "Recurring chore created"))


@router.put("/api/recurring/{recurring_id}")
def api_update_recurring(recurring_id: int, body: RecurringBody, request: Request,
                         user: dict = Depends(current_user)):
    fields = body.dict(exclude_unset=True)
    log = ActivityLogContext("UPDATE_RECURRING", user, request)
    log.set_entity("recurring", recurring_id)
    log.set_details(fields)
    try:
        tpl = recurring_svc.update_template(user, recurring_id, fields)
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    log.write("OK")
    return ok({"recurringChore": tpl}, "Recurring chore updated")


@router.delete("/api/recurring/{recurring_id}")
def api_delete_recurring(recurring_id: int, request: Request, user: dict = Depends(current_user)):
    log = ActivityLogContext("DELETE_RECURRING", user, request)
    log.set_entity("recurring", recurring_id)
    recurring_svc.delete_template(user, recurring_id)
    log.write("OK")
    return ok(message="Recurring chore deleted")
