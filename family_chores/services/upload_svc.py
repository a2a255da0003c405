from __future__ import annotations

# family_chores/services/upload_svc.py
import logging
import os
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..config import get_settings
from ..db import get_conn
from ..errors import NotFound, ValidationError
from ..repository import upload_repo

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}
THUMB_SIZE = (300, 300)


def _image_thumb(src: Path, dst: Path, size: tuple[int, int] = THUMB_SIZE):
    dst.parent.mkdir(parents=True, exist_ok=True)
    with Image.open(src) as img:
        img.thumbnail(size)
        img = img.convert("RGB")
        img.save(dst, format="JPEG", quality=85)


def store_image(user: dict, original_filename: str, content_type: str | None, data: bytes,
                upload_type: str = "general") -> dict:
    """Validate, write, thumbnail and record an uploaded image."""
    settings = get_settings()
    if content_type not in ALLOWED_TYPES:
        raise ValidationError("Only image files (jpeg, png, gif) are allowed")
    if not data:
        raise ValidationError("Uploaded file is empty")
    if len(data) > settings["max_upload_bytes"]:
        raise ValidationError(f"File too large (max {settings['max_upload_bytes'] // (1024 * 1024)} MB)")

    root = Path(settings["upload_dir"])
    stored = f"{upload_type}-{uuid.uuid4().hex}{ALLOWED_TYPES[content_type]}"
    path = root / upload_type / stored
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)

    thumb_path = root / upload_type / "thumbnails" / f"thumb-{Path(stored).stem}.jpg"
    try:
        _image_thumb(path, thumb_path)
        thumb_rel = thumb_path.relative_to(root).as_posix()
    except (UnidentifiedImageError, OSError) as e:
        path.unlink(missing_ok=True)
        logger.warning("rejecting upload %s: %s", original_filename, e)
        raise ValidationError("Uploaded file is not a valid image")

    rec = {
        "user_id": user["id"],
        "family_id": user["family_id"],
        "original_filename": original_filename or stored,
        "stored_filename": stored,
        "file_path": path.relative_to(root).as_posix(),
        "thumbnail_path": thumb_rel,
        "file_size": len(data),
        "mime_type": content_type,
        "upload_type": upload_type,
    }
    with get_conn() as conn:
        rec["id"] = upload_repo.insert(conn, rec)
    return rec


def list_uploads(user: dict, upload_type: str | None = None) -> list[dict]:
    with get_conn() as conn:
        return upload_repo.list_family(conn, user["family_id"], upload_type)


def get_upload(user: dict, upload_id: int) -> dict:
    with get_conn() as conn:
        rec = upload_repo.get_in_family(conn, upload_id, user["family_id"])
    if not rec:
        raise NotFound("Upload not found")
    return rec


def discard(rec: dict):
    """Remove a stored image and its row without an ownership check."""
    root = Path(get_settings()["upload_dir"])
    for rel in (rec["file_path"], rec["thumbnail_path"]):
        if rel:
            try:
                os.remove(root / rel)
            except FileNotFoundError:
                pass
    with get_conn() as conn:
        upload_repo.delete(conn, rec["id"])


def delete_upload(user: dict, upload_id: int):
    rec = get_upload(user, upload_id)
    if user["role"] != "parent" and rec["user_id"] != user["id"]:
        raise NotFound("Upload not found")
    discard(rec)
