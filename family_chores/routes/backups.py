from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from ..errors import AppError
from ..logs import ActivityLogContext
from ..services import backup_svc
from .deps import ok, require_parent

router = APIRouter()


class RestoreBody(BaseModel):
    filename: str
    confirmRestore: str | None = None


@router.post("/api/backups/create")
def api_create_backup(request: Request, user: dict = Depends(require_parent)):
    log = ActivityLogContext("CREATE_BACKUP", user, request)
    backup = backup_svc.create_backup("manual")
    log.set_entity("backup", backup["filename"])
    log.write("OK")
    return JSONResponse(status_code=201, content=ok({"backup": backup}, "Backup created successfully"))


@router.get("/api/backups")
def api_list_backups(user: dict = Depends(require_parent)):
    return ok({"backups": backup_svc.list_backups()})


@router.get("/api/backups/stats")
def api_backup_stats(user: dict = Depends(require_parent)):
    return ok({"stats": backup_svc.backup_stats()})


@router.get("/api/backups/download/{filename}")
def api_download_backup(filename: str, user: dict = Depends(require_parent)):
    path = backup_svc.resolve_backup(filename)
    return FileResponse(path, media_type="application/json", filename=path.name)


@router.post("/api/backups/restore")
def api_restore_backup(body: RestoreBody, request: Request, user: dict = Depends(require_parent)):
    log = ActivityLogContext("RESTORE_BACKUP", user, request)
    log.set_entity("backup", body.filename)
    try:
        result = backup_svc.restore_backup(body.filename, body.confirmRestore)
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    log.write("OK")
    return ok({"result": result}, result["message"])


@router.delete("/api/backups/{filename}")
def api_delete_backup(filename: str, user: dict = Depends(require_parent)):
    backup_svc.delete_backup(filename)
    return ok(message="Backup deleted successfully")
