from fastapi import APIRouter

from .. import __version__

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/version")
def version():
    return {"app": "family-chores-api", "version": __version__}

@router.get("/api")
def api_index():
    return {
        "status": "success",
        "message": "Family Chores API",
        "version": __version__,
        "endpoints": [
            "/api/auth", "/api/chores", "/api/recurring", "/api/users", "/api/families",
            "/api/notifications", "/api/achievements", "/api/uploads", "/api/backups", "/api/activity",
        ],
    }
