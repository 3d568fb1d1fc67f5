"""
===============================================================================
MODULE: Standard error responses
===============================================================================

Goal
----
Shape EVERY HTTP error the same way so that:
- The frontend can branch on a stable "error" code
- Logs and responses correlate through requestId
- Clients always get {error, message, statusCode}

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  AppHTTPException + handlers

Responsibilities:
  - Define the error code catalogue (ErrorCode)
  - Build the error envelope (ErrorBody)
  - Provide factories for frequent errors
  - Render AppHTTPException as a JSONResponse (render_error)

Collaborators:
  - crosscutting/middleware.py (request_id)
  - api/exception_handlers.py (maps BaaS / framework errors)
===============================================================================
"""

from __future__ import annotations

import traceback
from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    # 4xx
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"

    # 5xx
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorBody(BaseModel):
    """
    Error envelope.

    Extra fields:
    - details: validation problems (field + message)
    - retryAfter: seconds until a rate-limit window resets
    - requestId: correlation id of the failing request
    - stack: stack trace, only when stack exposure is enabled
    """

    model_config = ConfigDict(populate_by_name=True)

    error: ErrorCode
    message: str
    status_code: int = Field(serialization_alias="statusCode")
    details: list[dict[str, Any]] | None = None
    retry_after: int | None = Field(default=None, serialization_alias="retryAfter")
    request_id: str | None = Field(default=None, serialization_alias="requestId")
    stack: str | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_OPENAPI_ERROR_CONTENT = {
    "application/json": {"schema": {"$ref": "#/components/schemas/ErrorBody"}}
}

OPENAPI_ERROR_RESPONSES = {
    status: {"description": description, "model": ErrorBody, "content": _OPENAPI_ERROR_CONTENT}
    for status, description in (
        ("400", "Bad Request"),
        ("401", "Unauthorized"),
        ("403", "Forbidden"),
        ("404", "Not Found"),
        ("409", "Conflict"),
        ("429", "Too Many Requests"),
        ("default", "Error"),
    )
}


class AppHTTPException(HTTPException):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      AppHTTPException

    Responsibilities:
      - Carry a stable ErrorCode
      - Carry validation details (details[])
      - Allow custom headers (Retry-After, X-RateLimit-*)

    Collaborators:
      - render_error()
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        details: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.details = details
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# Error factories
# ---------------------------------------------------------------------------
def validation_error(
    detail: str, details: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.VALIDATION_ERROR, detail, details)


def not_found(resource: str, identifier: str) -> AppHTTPException:
    return AppHTTPException(
        404, ErrorCode.NOT_FOUND, f"{resource} '{identifier}' not found"
    )


def route_not_found(path: str) -> AppHTTPException:
    return AppHTTPException(404, ErrorCode.NOT_FOUND, f"Route {path} not found")


def conflict(detail: str) -> AppHTTPException:
    return AppHTTPException(409, ErrorCode.CONFLICT, detail)


def unauthorized(detail: str = "Authentication required") -> AppHTTPException:
    return AppHTTPException(401, ErrorCode.UNAUTHORIZED, detail)


def forbidden(detail: str = "Access denied") -> AppHTTPException:
    return AppHTTPException(403, ErrorCode.FORBIDDEN, detail)


def rate_limited(
    detail: str, retry_after: int, headers: dict[str, str] | None = None
) -> AppHTTPException:
    merged = {"Retry-After": str(retry_after), **(headers or {})}
    return AppHTTPException(
        429, ErrorCode.RATE_LIMITED, detail, headers=merged, retry_after=retry_after
    )


def payload_too_large(max_bytes: int) -> AppHTTPException:
    return AppHTTPException(
        413,
        ErrorCode.PAYLOAD_TOO_LARGE,
        f"Request body too large. Maximum allowed: {max_bytes} bytes",
    )


def internal_error(detail: str = "Internal Server Error") -> AppHTTPException:
    return AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
def build_error_body(
    request: Request | None,
    exc: AppHTTPException,
    *,
    cause: BaseException | None = None,
) -> ErrorBody:
    """
    Build the envelope for ``exc``.

    ``cause`` is the original exception; its stack trace is attached when
    stack exposure is enabled.
    """
    from .config import get_settings

    request_id = getattr(getattr(request, "state", None), "request_id", None)

    stack = None
    if get_settings().should_expose_error_stack():
        source = cause or exc
        stack = "".join(
            traceback.format_exception(type(source), source, source.__traceback__)
        )

    return ErrorBody(
        error=exc.code,
        message=str(exc.detail),
        status_code=exc.status_code,
        details=exc.details,
        retry_after=exc.retry_after,
        request_id=request_id,
        stack=stack,
    )


def render_error(
    request: Request | None,
    exc: AppHTTPException,
    *,
    cause: BaseException | None = None,
) -> JSONResponse:
    """
    Render ``exc`` as the error envelope.

    Rate-limit headers of the current request (``request.state.rate_limit``)
    are attached; headers carried by ``exc`` take precedence.
    """
    body = build_error_body(request, exc, cause=cause)

    headers: dict[str, str] = {}
    decision = getattr(getattr(request, "state", None), "rate_limit", None)
    if decision is not None:
        headers.update(decision.headers())
    headers.update(getattr(exc, "headers", None) or {})

    return JSONResponse(
        status_code=exc.status_code,
        content=body.to_content(),
        headers=headers or None,
    )
