"""
===============================================================================
MODULE: Structured (JSON) logging with request context
===============================================================================

Goal
----
Log in a way that is:
- Parseable (one JSON object per line)
- Correlatable (request_id / method / path / ip / user_id)
- Safe (secret redaction, size limits)
- Persisted (access.log / error.log, rotated by size)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Components:
  JSONFormatter, DateSuffixRotatingFileHandler, setup_logger(), setup_access_logger()

Responsibilities:
  - Format records as JSON
  - Enrich with request context (fitsync.context)
  - Redact sensitive fields and trim oversized values
  - Append to log files and rename them with a date suffix past max size

Collaborators:
  - fitsync/context.py (ContextVars)
  - crosscutting/config.py (level, JSON mode, file settings)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

ACCESS_LOG_FILENAME = "access.log"
ERROR_LOG_FILENAME = "error.log"

# LogRecord attributes that must not be copied as "extra".
_INTERNAL_LOGRECORD_KEYS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


class _Redactor:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      _Redactor

    Responsibilities:
      - Redact sensitive keys
      - Trim huge strings
      - Keep everything JSON-serializable

    Collaborators:
      - JSONFormatter
      - crosscutting.middleware (request bodies)
    ----------------------------------------------------------------------------
    """

    SENSITIVE_KEYS = {
        "password",
        "passwd",
        "secret",
        "token",
        "authorization",
        "api_key",
        "apikey",
        "access_token",
        "refresh_token",
        "admin_code",
        "admincode",
        "private_key",
        "credential",
        "supabase_service_role_key",
        "supabase_jwt_secret",
    }

    REDACTED = "***REDACTED***"

    def __init__(self, max_str: int = 8_000, max_depth: int = 4):
        self._max_str = max_str
        self._max_depth = max_depth

    def sanitize(self, value: Any, *, depth: int = 0, key: str | None = None) -> Any:
        if key and key.lower() in self.SENSITIVE_KEYS:
            return self.REDACTED

        if depth > self._max_depth:
            return "***TRUNCATED***"

        if isinstance(value, str):
            if len(value) <= self._max_str:
                return value
            return value[: self._max_str] + "...(truncated)"

        if isinstance(value, (bytes, bytearray)):
            return f"<bytes {len(value)}B>"

        if isinstance(value, dict):
            return {
                str(k): self.sanitize(v, depth=depth + 1, key=str(k))
                for k, v in value.items()
            }

        if isinstance(value, (list, tuple)):
            return [self.sanitize(v, depth=depth + 1, key=key) for v in value]

        try:
            json.dumps(value, default=str)
            return value
        except (TypeError, ValueError):
            return str(value)


redactor = _Redactor()


class JSONFormatter(logging.Formatter):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      JSONFormatter

    Responsibilities:
      - Turn a LogRecord into a single JSON line
      - Add request context
      - Attach the stack trace when there is an exception

    Collaborators:
      - fitsync.context.get_context_dict()
      - _Redactor
    ----------------------------------------------------------------------------
    """

    def __init__(self):
        super().__init__()
        self._redactor = redactor

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": os.getpid(),
        }

        from ..context import get_context_dict

        payload.update(get_context_dict())

        for k, v in record.__dict__.items():
            if k in _INTERNAL_LOGRECORD_KEYS:
                continue
            payload[k] = self._redactor.sanitize(v, key=k)

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            exc_msg = str(record.exc_info[1]) if record.exc_info[1] else None
            payload["exception"] = {
                "type": exc_type,
                "message": exc_msg,
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(
            payload, ensure_ascii=False, default=str, separators=(",", ":")
        )


class DateSuffixRotatingFileHandler(logging.FileHandler):
    """
    Append-only file handler that rotates by size.

    Before each write, a file larger than ``max_bytes`` is renamed to
    ``<name>.<YYYY-MM-DD>`` (``<name>.<YYYY-MM-DD>.<n>`` if that exists) and a
    fresh file is started.
    """

    def __init__(self, filename: str | os.PathLike, max_bytes: int):
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, mode="a", encoding="utf-8", delay=True)
        self.max_bytes = int(max_bytes)

    def should_rotate(self) -> bool:
        try:
            return os.path.getsize(self.baseFilename) > self.max_bytes
        except FileNotFoundError:
            return False

    def rotation_target(self, today: date | None = None) -> str:
        stamp = (today or datetime.now(timezone.utc).date()).isoformat()
        target = f"{self.baseFilename}.{stamp}"
        counter = 1
        while os.path.exists(target):
            target = f"{self.baseFilename}.{stamp}.{counter}"
            counter += 1
        return target

    def rotate(self) -> str:
        if self.stream:
            self.stream.close()
            self.stream = None
        target = self.rotation_target()
        os.rename(self.baseFilename, target)
        return target

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self.should_rotate():
                self.rotate()
        except OSError:
            self.handleError(record)
        super().emit(record)


def _load_log_settings() -> dict[str, Any]:
    # Defaults used when Settings cannot be built (e.g. invalid env at import).
    values: dict[str, Any] = {
        "level": "INFO",
        "use_json": True,
        "to_files": False,
        "log_dir": "logs",
        "max_bytes": 10 * 1024 * 1024,
    }
    try:
        from .config import get_settings

        s = get_settings()
    except ValueError:
        return values

    values.update(
        level=(s.log_level or "INFO").upper(),
        use_json=bool(s.log_json),
        to_files=bool(s.log_to_files),
        log_dir=s.log_dir,
        max_bytes=s.log_max_bytes,
    )
    return values


def setup_logger(name: str = "fitsync") -> logging.Logger:
    """
    Build the application logger.

    - stdout handler (JSON or plain)
    - error.log handler for WARNING and above when file logging is enabled
    - Never duplicates handlers on re-import
    """
    log = logging.getLogger(name)
    cfg = _load_log_settings()

    log.setLevel(getattr(logging, cfg["level"], logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if cfg["use_json"]
            else logging.Formatter("%(levelname)s %(message)s")
        )
        log.addHandler(handler)

        if cfg["to_files"]:
            error_file = DateSuffixRotatingFileHandler(
                Path(cfg["log_dir"]) / ERROR_LOG_FILENAME, cfg["max_bytes"]
            )
            error_file.setLevel(logging.WARNING)
            error_file.setFormatter(JSONFormatter())
            log.addHandler(error_file)

    return log


def setup_access_logger(name: str = "fitsync.access") -> logging.Logger:
    """
    Logger for REQUEST / RESPONSE / PERFORMANCE records.

    Writes only to access.log (no propagation to stdout).
    """
    log = logging.getLogger(name)
    cfg = _load_log_settings()

    log.setLevel(logging.INFO)
    log.propagate = False

    if not log.handlers:
        if cfg["to_files"]:
            handler: logging.Handler = DateSuffixRotatingFileHandler(
                Path(cfg["log_dir"]) / ACCESS_LOG_FILENAME, cfg["max_bytes"]
            )
            handler.setFormatter(JSONFormatter())
        else:
            handler = logging.NullHandler()
        log.addHandler(handler)

    return log


# Global instances (import-friendly)
logger = setup_logger()
access_logger = setup_access_logger()
