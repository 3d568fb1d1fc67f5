# apps/backend/fitsync/crosscutting/security.py
"""
===============================================================================
MODULE: Security audit (suspicious request patterns)
===============================================================================

Goal
----
Flag requests whose URL or body look like common attacks:
- directory traversal
- script injection (<script, javascript:)
- SQL injection (union select)

The request is NOT blocked: a SECURITY_WARNING record goes to error.log.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  find_suspicious_pattern() / audit_request()

Responsibilities:
  - Match URL and body text against the pattern list
  - Emit one warning per request (first match wins)

Collaborators:
  - crosscutting.middleware.RequestContextMiddleware
  - crosscutting.logger
===============================================================================
"""

from __future__ import annotations

import re
from typing import Any

from .logger import logger, redactor

SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.\./"),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"union\s+select", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
)


def find_suspicious_pattern(url: str, body_text: str = "") -> str | None:
    """Return the first matching pattern, or None."""
    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(url or "") or pattern.search(body_text or ""):
            return pattern.pattern
    return None


def audit_request(
    *,
    method: str,
    url: str,
    ip: str,
    user_agent: str | None,
    body_text: str,
    body: Any,
) -> str | None:
    pattern = find_suspicious_pattern(url, body_text)
    if pattern is None:
        return None

    logger.warning(
        "security warning",
        extra={
            "type": "SECURITY_WARNING",
            "url": url,
            "ip": ip,
            "user_agent": user_agent,
            "pattern": pattern,
            "body": redactor.sanitize(body),
        },
    )
    return pattern
