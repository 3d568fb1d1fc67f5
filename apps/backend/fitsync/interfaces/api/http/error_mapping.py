"""
===============================================================================
TARJETA CRC — error_mapping.py (UseCase Error -> HTTP envelope)
===============================================================================

Responsibilities:
  - Translate user use-case error codes into AppHTTPException.
  - One place for the mapping so routers stay thin.

Rules:
  - Use cases return typed errors (code + message [+ resource]).
  - Infrastructure exceptions are handled by api/exception_handlers.py.

Collaborators:
  - application.usecases.users (UserError, UserErrorCode)
  - crosscutting.error_responses
===============================================================================
"""

from __future__ import annotations

from fitsync.application.usecases.users import UserError, UserErrorCode
from fitsync.crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    conflict,
    forbidden,
    unauthorized,
    validation_error,
)


def raise_user_error(error: UserError) -> None:
    """Translate UserError -> HTTP."""
    if error.code == UserErrorCode.UNAUTHORIZED:
        raise unauthorized(error.message)
    if error.code == UserErrorCode.FORBIDDEN:
        raise forbidden(error.message)
    if error.code == UserErrorCode.CONFLICT:
        raise conflict(error.message)
    if error.code == UserErrorCode.VALIDATION_ERROR:
        raise validation_error(error.message)
    if error.code == UserErrorCode.NOT_FOUND:
        raise AppHTTPException(404, ErrorCode.NOT_FOUND, error.message)

    # Unknown codes fall back to 400
    raise validation_error(error.message)
