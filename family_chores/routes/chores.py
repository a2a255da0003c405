from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from ..errors import AppError, ValidationError
from ..logs import ActivityLogContext
from ..services import chore_svc
from .deps import current_user, ok

router = APIRouter()


class ChoreCreateBody(BaseModel):
    title: str | None = None
    description: str | None = None
    reward_type: str = Field(default="money", pattern=r"^(money|screen_time)$")
    reward_amount: float | None = None
    requires_photo: bool = False
    acceptance_timer: int | None = Field(default=None, ge=1)
    auto_assign: bool = False
    assigned_to: int | None = None
    rotation_type: str | None = Field(default=None, pattern=r"^(none|round_robin|random)$")
    rotation_members: list | str | None = None
    priority: str | None = Field(default=None, pattern=r"^(low|medium|high|urgent)$")
    due_date: str | None = None
    estimated_duration: int | None = None
    difficulty_level: str | None = Field(default=None, pattern=r"^(easy|medium|hard)$")
    category: str | None = None


class ChorePatchBody(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    reward_amount: float | None = None
    reward_type: str | None = Field(default=None, pattern=r"^(money|screen_time)$")
    requires_photo: bool | None = None
    acceptance_timer: int | None = Field(default=None, ge=1)
    status: str | None = None


class AssignBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    notes: str | None = None


class ReviewBody(BaseModel):
    notes: str | None = None
    feedback: str | None = None


def _logged(action: str, user: dict, request: Request, chore_id, details, fn):
    log = ActivityLogContext(action, user, request)
    log.set_entity("chore", chore_id)
    log.set_details(details)
    try:
        out = fn()
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    if chore_id is None and isinstance(out, dict):
        log.set_entity("chore", out.get("id"))
    log.write("OK")
    return out


@router.get("/api/chores")
def api_list_chores(status: str | None = None, assigned_to: int | None = None,
                    user: dict = Depends(current_user)):
    return ok({"chores": chore_svc.list_chores(user, status, assigned_to)})


@router.get("/api/chores/{chore_id}")
def api_get_chore(chore_id: int, user: dict = Depends(current_user)):
    return ok({"chore": chore_svc.get_chore(user, chore_id)})


@router.post("/api/chores")
def api_create_chore(body: ChoreCreateBody, request: Request, user: dict = Depends(current_user)):
    payload = body.dict()
    chore = _logged("CREATE_CHORE", user, request, None, payload,
                    lambda: chore_svc.create_chore(user, payload))
    return JSONResponse(status_code=201, content=ok({"chore": chore}))


@router.patch("/api/chores/{chore_id}")
def api_update_chore(chore_id: int, body: ChorePatchBody, request: Request, user: dict = Depends(current_user)):
    fields = body.dict(exclude_unset=True)
    chore = _logged("UPDATE_CHORE", user, request, chore_id, fields,
                    lambda: chore_svc.update_chore(user, chore_id, fields))
    return ok({"chore": chore}, "Chore updated successfully")


@router.post("/api/chores/{chore_id}/assign")
def api_assign_chore(chore_id: int, body: AssignBody, request: Request, user: dict = Depends(current_user)):
    chore = _logged("ASSIGN_CHORE", user, request, chore_id, body.dict(),
                    lambda: chore_svc.assign_chore(user, chore_id, body.user_id, body.notes))
    return ok({"chore": chore}, "Chore assigned successfully")


@router.post("/api/chores/{chore_id}/accept")
def api_accept_chore(chore_id: int, request: Request, user: dict = Depends(current_user)):
    chore = _logged("ACCEPT_CHORE", user, request, chore_id, None,
                    lambda: chore_svc.accept_chore(user, chore_id))
    return ok({"chore": chore}, "Chore accepted successfully")


@router.post("/api/chores/{chore_id}/decline")
def api_decline_chore(chore_id: int, request: Request, user: dict = Depends(current_user)):
    chore = _logged("DECLINE_CHORE", user, request, chore_id, None,
                    lambda: chore_svc.decline_chore(user, chore_id))
    return ok({"chore": chore}, "Chore declined")


async def _read_submission(request: Request) -> tuple[str | None, tuple | None]:
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        notes = form.get("notes")
        photo = form.get("photo")
        if photo is not None and hasattr(photo, "read"):
            data = await photo.read()
            if data:
                return notes, (photo.filename, photo.content_type, data)
        return notes, None
    if ctype.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError("Request body is not valid JSON")
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be an object")
        return payload.get("notes"), None
    return None, None


@router.post("/api/chores/{chore_id}/submit")
async def api_submit_chore(chore_id: int, request: Request, user: dict = Depends(current_user)):
    notes, photo = await _read_submission(request)
    details = {"notes": notes, "photo": photo[0] if photo else None}
    chore = await run_in_threadpool(
        _logged, "SUBMIT_CHORE", user, request, chore_id, details,
        lambda: chore_svc.submit_chore(user, chore_id, notes, photo),
    )
    return ok({"chore": chore}, "Chore submitted for approval")


@router.post("/api/chores/{chore_id}/approve")
def api_approve_chore(chore_id: int, request: Request, body: ReviewBody | None = None,
                      user: dict = Depends(current_user)):
    notes = (body.notes or body.feedback) if body else None
    chore = _logged("APPROVE_CHORE", user, request, chore_id, {"notes": notes},
                    lambda: chore_svc.approve_chore(user, chore_id, notes))
    return ok({"chore": chore}, "Chore approved successfully")


@router.post("/api/chores/{chore_id}/reject")
def api_reject_chore(chore_id: int, request: Request, body: ReviewBody | None = None,
                     user: dict = Depends(current_user)):
    notes = (body.feedback or body.notes) if body else None
    chore = _logged("REJECT_CHORE", user, request, chore_id, {"feedback": notes},
                    lambda: chore_svc.reject_chore(user, chore_id, notes))
    return ok({"chore": chore}, "Chore rejected")


@router.delete("/api/chores/{chore_id}")
def api_delete_chore(chore_id: int, request: Request, user: dict = Depends(current_user)):
    _logged("DELETE_CHORE", user, request, chore_id, None, lambda: chore_svc.delete_chore(user, chore_id))
    return ok(message="Chore deleted successfully")
