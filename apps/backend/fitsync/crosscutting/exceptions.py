"""
===============================================================================
MODULE: Typed backend exceptions (internal errors)
===============================================================================

Goal
----
Keep internal errors coherent:
- stable error_code
- error_id to correlate with logs
- readable message (never secrets)
- the raw BaaS fields (status / code / details) needed to classify them

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  FitSyncError + subclasses

Responsibilities:
  - Standardize errors raised by adapters before they reach HTTP
  - Generate error_id for tracing

Collaborators:
  - infrastructure/supabase (raises AuthServiceError / DataStoreError)
  - api/exception_handlers.py (maps them to the HTTP taxonomy)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class FitSyncError(Exception):
    """Base class for internal errors."""

    error_code: str = "FITSYNC_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class AuthServiceError(FitSyncError):
    """Error reported by the hosted auth service (signup, login, admin API)."""

    error_code: str = "AUTH_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.status = status
        self.code = code


class DataStoreError(FitSyncError):
    """Error reported by the table API (Postgres / PostgREST codes)."""

    error_code: str = "DATA_STORE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.code = code
        self.details = details
        self.hint = hint


class ConfigurationError(FitSyncError):
    """The BaaS client cannot be built from the current settings."""

    error_code: str = "CONFIGURATION_ERROR"
