from __future__ import annotations

from fastapi import APIRouter, Depends

from ..logs import search_activity
from .deps import ok, require_parent

router = APIRouter()


@router.get("/api/activity")
def api_activity_search(
    page: int = 1,
    size: int = 20,
    action: str | None = None,
    query: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
    user: dict = Depends(require_parent),
):
    page = max(page, 1)
    size = min(max(size, 1), 200)
    total, items = search_activity(user["family_id"], query, action, ts_from, ts_to, page, size)
    return ok({"total": total, "items": items})
