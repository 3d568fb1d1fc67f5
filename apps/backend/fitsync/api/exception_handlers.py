"""
===============================================================================
TARJETA CRC — fitsync/api/exception_handlers.py (Centralized exception mapping)
===============================================================================

Responsibilities:
  - Translate every failure into the error envelope.
  - Classify BaaS errors: Postgres/PostgREST codes from the table API and
    auth-service messages.
  - Request validation failures -> 400 with per-field details.
  - Unknown routes -> 404 "Route <path> not found".
  - Log every error (method, url, ip, user agent, user id) to the error log.
  - Never leak internals in production.

Collaborators:
  - crosscutting.error_responses: AppHTTPException, ErrorCode, render_error
  - crosscutting.exceptions: FitSyncError and subclasses
  - crosscutting.config.get_settings (detail level)
===============================================================================
"""

from __future__ import annotations

import re

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    conflict,
    internal_error,
    not_found,
    render_error,
    route_not_found,
    unauthorized,
    validation_error,
)
from ..crosscutting.exceptions import AuthServiceError, DataStoreError, FitSyncError
from ..crosscutting.logger import logger
from ..crosscutting.middleware import client_ip_from_scope

# Postgres / PostgREST codes surfaced by the table API
PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_NOT_NULL_VIOLATION = "23502"
PG_INVALID_TEXT_REPRESENTATION = "22P02"
PGRST_NO_ROWS = "PGRST116"

_KEY_FIELD_RE = re.compile(r"Key \((?P<field>[^)]+)\)=")
_COLUMN_RE = re.compile(r'column "(?P<column>[^"]+)"')

_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    413: ErrorCode.PAYLOAD_TOO_LARGE,
    429: ErrorCode.RATE_LIMITED,
}


def _log_error(
    request: Request, exc: BaseException, status_code: int, **extra
) -> None:
    payload = {
        "type": "ERROR",
        "status_code": status_code,
        "error": str(exc),
        "error_type": type(exc).__name__,
        "http_method": request.method,
        "url": str(request.url),
        "client_ip": client_ip_from_scope(request.scope),
        "user_agent": request.headers.get("user-agent"),
        "request_id": getattr(request.state, "request_id", None),
        **extra,
    }
    identity = getattr(request.state, "identity", None)
    if identity is not None:
        payload["user_id"] = str(identity.auth_id)

    if status_code >= 500:
        logger.error("Request failed", exc_info=exc, extra=payload)
    else:
        logger.warning("Request rejected", extra=payload)


# =============================================================================
# Classification
# =============================================================================


def classify_data_error(exc: DataStoreError) -> AppHTTPException:
    """Postgres / PostgREST code -> HTTP."""
    code = exc.code or ""
    text = " ".join(filter(None, [exc.details, exc.message]))

    if code == PG_UNIQUE_VIOLATION:
        match = _KEY_FIELD_RE.search(text)
        field = match.group("field") if match else "unknown"
        return conflict(f"Duplicate field value: {field}. Please use another value.")
    if code == PG_FOREIGN_KEY_VIOLATION:
        return validation_error("Referenced record does not exist")
    if code == PG_NOT_NULL_VIOLATION:
        match = _COLUMN_RE.search(text)
        column = match.group("column") if match else "unknown"
        return validation_error(f"Field '{column}' is required")
    if code == PG_INVALID_TEXT_REPRESENTATION:
        return validation_error("Invalid ID format")
    if code == PGRST_NO_ROWS:
        return not_found("Resource", "requested")
    return internal_error(_public_message(exc.message))


def classify_auth_error(exc: AuthServiceError) -> AppHTTPException:
    """Auth-service message/status -> HTTP."""
    message = exc.message or ""
    lowered = message.lower()

    if "invalid login credentials" in lowered:
        return unauthorized("Invalid email or password")
    if "email not confirmed" in lowered:
        return unauthorized("Please confirm your email address before logging in")
    if "already registered" in lowered or exc.code in {
        "user_already_exists",
        "email_exists",
    }:
        return conflict(message or "User already registered")
    if "jwt" in lowered:
        return unauthorized("Invalid or expired token")
    if exc.status is not None and 400 <= exc.status < 500:
        return validation_error(message)
    return internal_error(_public_message(message))


def _public_message(message: str | None) -> str:
    if get_settings().is_production() or not message:
        return "Internal Server Error"
    return message


# =============================================================================
# Handlers
# =============================================================================


async def auth_service_error_handler(
    request: Request, exc: AuthServiceError
) -> JSONResponse:
    app_exc = classify_auth_error(exc)
    _log_error(
        request,
        exc,
        app_exc.status_code,
        error_id=exc.error_id,
        auth_status=exc.status,
        auth_code=exc.code,
    )
    return render_error(request, app_exc, cause=exc)


async def data_store_error_handler(
    request: Request, exc: DataStoreError
) -> JSONResponse:
    app_exc = classify_data_error(exc)
    _log_error(
        request, exc, app_exc.status_code, error_id=exc.error_id, db_code=exc.code
    )
    return render_error(request, app_exc, cause=exc)


async def fitsync_error_handler(request: Request, exc: FitSyncError) -> JSONResponse:
    # R: base/internal errors (ConfigurationError included) are 500s
    _log_error(request, exc, 500, error_id=exc.error_id, code=exc.error_code)
    return render_error(request, internal_error(_public_message(exc.message)), cause=exc)


async def app_http_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    _log_error(request, exc, exc.status_code, code=exc.code.value)
    return render_error(request, exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    message = ", ".join(
        f"{d['field']}: {d['message']}" if d["field"] else d["message"]
        for d in details
    )
    app_exc = validation_error(message or "Validation failed", details)
    _log_error(request, exc, 400, code=ErrorCode.VALIDATION_ERROR.value)
    return render_error(request, app_exc)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Framework-raised HTTP errors (unknown route, method not allowed, ...)."""
    if exc.status_code == 404:
        app_exc = route_not_found(request.url.path)
    else:
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        app_exc = AppHTTPException(
            exc.status_code, code, str(exc.detail), headers=exc.headers
        )
    _log_error(request, exc, app_exc.status_code, code=app_exc.code.value)
    return render_error(request, app_exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for untyped exceptions: full log, generic body in production."""
    _log_error(request, exc, 500)
    return render_error(request, internal_error(_public_message(str(exc))), cause=exc)


def register_exception_handlers(app) -> None:
    """
    Register the handlers.

    More specific exception types first; Exception last as the fallback.
    """
    app.add_exception_handler(AuthServiceError, auth_service_error_handler)
    app.add_exception_handler(DataStoreError, data_store_error_handler)
    app.add_exception_handler(FitSyncError, fitsync_error_handler)
    app.add_exception_handler(AppHTTPException, app_http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "register_exception_handlers",
    "classify_auth_error",
    "classify_data_error",
]
