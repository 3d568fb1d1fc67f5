"""fitsync.infrastructure.services.retry

Name: Retry Helper with Exponential Backoff + Jitter

What it is
----------
Resilience utility for calls to the BaaS. It provides:
  - Error classification: **transient** (retry) vs **permanent** (fail fast)
  - A `tenacity` decorator with **exponential backoff + jitter**
  - Structured logging of every retry attempt

Only idempotent reads (list / get) go through it; writes are never retried.

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decide which errors are retryable
  - Provide the standard tenacity decorator
  - Log attempts with enough context for debugging
Collaborators:
  - tenacity (retry engine)
  - crosscutting.config.get_settings (attempts/delays)
  - crosscutting.logger
Constraints:
  - Retry ONLY transient failures (429, 5xx, timeouts, connection issues)
  - Never retry permanent ones (400, 401, 403, 404, 422)
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

T = TypeVar("T")


TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

PERMANENT_HTTP_CODES: frozenset[int] = frozenset({400, 401, 403, 404, 409, 422})


def get_http_status_code(exception: BaseException) -> int | None:
    """Extract an HTTP status code from the SDK exception types we meet.

    Supports (best-effort):
      - supabase auth errors (`status`)
      - httpx.HTTPStatusError (`response.status_code`)
      - any exception exposing an integer `status_code` or `code`
    """
    for attr in ("status", "status_code", "code"):
        value = getattr(exception, attr, None)
        if isinstance(value, int) and value >= 100:
            return value

    resp = getattr(exception, "response", None)
    status_code = getattr(resp, "status_code", None)
    if isinstance(status_code, int):
        return status_code

    return None


def is_transient_error(exception: BaseException) -> bool:
    """Decide whether an error is transient (retry) or permanent (fail fast).

    Rules (in order):
      1) HTTP status code when present
      2) Built-in timeout/connection errors
      3) Class-name heuristics for SDK errors (httpx, supabase)
      4) Default: fail fast
    """
    status_code = get_http_status_code(exception)
    if status_code is not None:
        if status_code in PERMANENT_HTTP_CODES:
            return False
        if status_code in TRANSIENT_HTTP_CODES:
            return True

    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True

    exception_name = type(exception).__name__.lower()
    transient_name_patterns = (
        "timeout",
        "connecterror",
        "connection",
        "retryable",
        "remoteprotocol",
        "unavailable",
    )
    return any(p in exception_name for p in transient_name_patterns)


def _log_retry(retry_state: RetryCallState) -> None:
    fn = getattr(retry_state, "fn", None)
    fn_name = getattr(fn, "__name__", "unknown")
    wait_time = (
        retry_state.next_action.sleep
        if getattr(retry_state, "next_action", None) is not None
        else 0
    )

    exc: Optional[BaseException] = None
    if getattr(retry_state, "outcome", None) is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Retrying BaaS call",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Build a `tenacity` decorator with exponential backoff + jitter."""
    settings = get_settings()

    _max_attempts = (
        settings.retry_max_attempts if max_attempts is None else max_attempts
    )
    _base_delay = (
        settings.retry_base_delay_seconds if base_delay is None else float(base_delay)
    )
    _max_delay = (
        settings.retry_max_delay_seconds if max_delay is None else float(max_delay)
    )

    if _max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if _base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if _max_delay <= 0:
        raise ValueError("max_delay must be > 0")

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay,
            max=_max_delay,
            jitter=_base_delay,
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
