from __future__ import annotations

# family_chores/errors.py
import logging
import sqlite3
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None, **extra: Any):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors
        self.extra = extra

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "You are not logged in! Please log in to get access."


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Duplicate entry"


class Locked(AppError):
    status_code = 423
    default_message = "Account temporarily locked due to too many failed login attempts"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later."


class Internal(AppError):
    status_code = 500


def translate_integrity_error(e: sqlite3.IntegrityError) -> AppError:
    msg = str(e)
    if "UNIQUE" in msg:
        return Conflict("Duplicate entry")
    if "FOREIGN KEY" in msg:
        return ValidationError("Referenced record does not exist.")
    if "NOT NULL" in msg:
        return ValidationError("Required field cannot be null.")
    if "CHECK" in msg:
        return ValidationError("Invalid value for a constrained field.")
    return Internal()


def _envelope(err: AppError) -> JSONResponse:
    body: dict[str, Any] = {"status": err.status, "message": err.message}
    if err.errors:
        body["errors"] = err.errors
    body.update(err.extra)
    return JSONResponse(status_code=err.status_code, content=body)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _envelope(exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        errors = []
        for e in exc.errors():
            loc = [str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path", "form")]
            value = e.get("input")
            errors.append({
                "field": ".".join(loc),
                "message": e.get("msg", "Invalid value"),
                "value": value if isinstance(value, (str, int, float, bool, type(None))) else None,
            })
        return _envelope(ValidationError("Validation failed", errors=errors))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        status = "fail" if 400 <= exc.status_code < 500 else "error"
        return JSONResponse(status_code=exc.status_code, content={"status": status, "message": str(exc.detail)})

    @app.exception_handler(sqlite3.IntegrityError)
    async def _integrity(request: Request, exc: sqlite3.IntegrityError):
        logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc)
        return _envelope(translate_integrity_error(exc))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        if get_settings()["app_env"] == "development":
            return JSONResponse(
                status_code=500,
                content={"status": "error", "message": str(exc), "type": type(exc).__name__},
            )
        return JSONResponse(status_code=500, content={"status": "error", "message": "Something went wrong!"})
