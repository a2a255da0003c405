"""
FastAPI app entry point aggregating per-domain routers under family_chores/routes.
Keep as `uvicorn family_chores.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import get_settings
from .db import ensure_schema
from .errors import install_exception_handlers
from .logs import ActivityLogContext
from .ratelimit import InMemoryRateLimitStore, RateLimiter
from .services import scheduler_svc

logger = logging.getLogger(__name__)


def create_app(settings: dict | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="family-chores-api", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings["cors_origins"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    app.state.auth_limiter = RateLimiter(
        InMemoryRateLimitStore(),
        limit=settings["auth_rate_limit"],
        window_seconds=settings["auth_rate_window_seconds"],
    )
    app.state.upload_limiter = RateLimiter(
        InMemoryRateLimitStore(),
        limit=settings["upload_rate_limit"],
        window_seconds=settings["auth_rate_window_seconds"],
        prefix="upload",
        message="Too many upload attempts, please try again later.",
    )
    app.state.scheduler = None

    @app.on_event("startup")
    def on_startup():
        ensure_schema()
        try:
            app.state.scheduler = scheduler_svc.start_scheduler()
        except Exception as e:
            logger.error("scheduler failed to start: %s", e)
            ActivityLogContext("STARTUP").write("ERROR", f"start_scheduler_failed: {e}")

    @app.on_event("shutdown")
    def on_shutdown():
        scheduler_svc.stop_scheduler(app.state.scheduler)
        app.state.scheduler = None

    # Include routers (split by domain)
    from .routes import base as base_routes
    from .routes import auth as auth_routes
    from .routes import chores as chores_routes
    from .routes import recurring as recurring_routes
    from .routes import users as users_routes
    from .routes import families as families_routes
    from .routes import notifications as notifications_routes
    from .routes import achievements as achievements_routes
    from .routes import uploads as uploads_routes
    from .routes import backups as backups_routes
    from .routes import activity as activity_routes

    app.include_router(base_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(chores_routes.router)
    app.include_router(recurring_routes.router)
    app.include_router(users_routes.router)
    app.include_router(families_routes.router)
    app.include_router(notifications_routes.router)
    app.include_router(achievements_routes.router)
    app.include_router(uploads_routes.router)
    app.include_router(backups_routes.router)
    app.include_router(activity_routes.router)
    return app


app = create_app()
