"""
Name: FastAPI Application (FitSync backend)

Responsibilities:
  - Build the FastAPI application (title, version, lifespan)
  - Install the middleware pipeline and the exception handlers
  - Mount the users router under /api/users
  - Expose /health and the root banner

Collaborators:
  - RequestContextMiddleware / BodyLimitMiddleware (crosscutting.middleware)
  - CORSMiddleware (FRONTEND_URL origins, credentials allowed)
  - interfaces.api.http.routers.users
  - api.exception_handlers

Notes:
  - Request order: BodyLimit -> RequestContext (access log + security audit)
    -> CORS -> routes; errors end in the central handlers.
  - Starlette runs the LAST added middleware first.
  - Uptime is measured with a monotonic clock from module import.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import BodyLimitMiddleware, RequestContextMiddleware
from ..interfaces.api.http.routers.users import router as users_router
from ..interfaces.api.http.schemas.users import HealthRes
from .exception_handlers import register_exception_handlers

ROOT_BANNER = "FitSync Backend Running"

_started_at = time.monotonic()


def uptime_seconds() -> float:
    return round(time.monotonic() - _started_at, 3)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown logging."""
    settings = get_settings()

    logger.info(
        "FitSync API starting up",
        extra={
            "environment": settings.app_env,
            "port": settings.port,
            "fake_baas": settings.uses_fake_baas(),
            "rate_limit_enabled": settings.rate_limit_enabled,
            "allowed_origins": settings.get_allowed_origins_list(),
        },
    )
    try:
        yield
    finally:
        logger.info("FitSync API shutting down")


def create_app() -> FastAPI:
    settings = get_settings()

    application = FastAPI(
        title="FitSync API",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "users", "description": "Accounts, sessions and profiles"},
            {"name": "health", "description": "Liveness"},
        ],
    )

    # R: added innermost-first
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
        expose_headers=[
            "X-Request-Id",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )
    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(BodyLimitMiddleware)

    application.include_router(users_router, prefix="/api/users")
    register_exception_handlers(application)

    @application.get("/health", response_model=HealthRes, tags=["health"])
    def health():
        """Liveness: status, current time, process uptime, environment."""
        return HealthRes(
            status="OK",
            timestamp=datetime.now(timezone.utc),
            uptime=uptime_seconds(),
            environment=get_settings().app_env,
        )

    @application.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def root():
        return ROOT_BANNER

    return application


app = create_app()
