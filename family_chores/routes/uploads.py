from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..ratelimit import limit_uploads
from ..services import upload_svc
from .deps import current_user, ok

router = APIRouter(dependencies=[Depends(limit_uploads)])


@router.post("/api/uploads")
async def api_upload(photo: UploadFile = File(...), upload_type: str = Form("general"),
                     user: dict = Depends(current_user)):
    data = await photo.read()
    rec = await run_in_threadpool(
        upload_svc.store_image, user, photo.filename, photo.content_type, data, upload_type
    )
    return JSONResponse(status_code=201, content=ok({"upload": rec}, "File uploaded successfully"))


@router.get("/api/uploads")
def api_list_uploads(user: dict = Depends(current_user)):
    return ok({"uploads": upload_svc.list_uploads(user)})


@router.get("/api/uploads/type/{upload_type}")
def api_list_uploads_by_type(upload_type: str, user: dict = Depends(current_user)):
    return ok({"uploads": upload_svc.list_uploads(user, upload_type)})


@router.get("/api/uploads/{upload_id}")
def api_get_upload(upload_id: int, user: dict = Depends(current_user)):
    return ok({"upload": upload_svc.get_upload(user, upload_id)})


@router.delete("/api/uploads/{upload_id}")
def api_delete_upload(upload_id: int, user: dict = Depends(current_user)):
    upload_svc.delete_upload(user, upload_id)
    return ok(message="Upload deleted successfully")
