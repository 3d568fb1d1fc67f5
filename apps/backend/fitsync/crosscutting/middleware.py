# apps/backend/fitsync/crosscutting/middleware.py
"""
===============================================================================
MODULE: HTTP middlewares (context + access logs + payload limits)
===============================================================================

Goal
----
1) RequestContextMiddleware:
   - Generate/propagate request_id (X-Request-Id)
   - Set contextvars (method/path/ip)
   - REQUEST / RESPONSE / PERFORMANCE records in access.log
   - SLOW_REQUEST warnings and security audit in error.log

2) BodyLimitMiddleware:
   - Reject oversized payloads (including chunked uploads)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Components:
  - RequestContextMiddleware
  - BodyLimitMiddleware

Responsibilities:
  - Observability (request_id + access logs + performance)
  - Safety (strict body limit)

Collaborators:
  - fitsync/context.py
  - crosscutting/security.py
  - crosscutting/error_responses.py
===============================================================================
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any

from ..context import clear_context, set_request_context
from .error_responses import build_error_body, payload_too_large
from .logger import access_logger, logger, redactor
from .security import audit_request

_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _headers_of(scope) -> dict[str, str]:
    return {
        k.decode("latin-1").lower(): v.decode("latin-1")
        for k, v in scope.get("headers", [])
    }


def client_ip_from_scope(scope) -> str:
    """First X-Forwarded-For entry when proxies are trusted, else the peer."""
    from .config import get_settings

    headers = _headers_of(scope)
    if get_settings().trust_proxy:
        forwarded_for = headers.get("x-forwarded-for", "")
        ip = forwarded_for.split(",")[0].strip()
        if ip:
            return ip
    client = scope.get("client")
    if client:
        return client[0]
    return "unknown"


def _decode_body(body: bytes) -> tuple[str, Any]:
    text = body.decode("utf-8", errors="replace")
    if not text:
        return "", None
    try:
        return text, json.loads(text)
    except ValueError:
        return text, text


class RequestContextMiddleware:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      RequestContextMiddleware

    Responsibilities:
      - Accept or generate X-Request-Id and echo it on the response
      - Set contextvars for log correlation
      - Buffer the body once (replayed downstream) for logging and auditing
      - Emit REQUEST / RESPONSE / PERFORMANCE records
      - Always clear_context() to avoid leaks

    Collaborators:
      - crosscutting.logger (access_logger, logger)
      - crosscutting.security.audit_request
    ----------------------------------------------------------------------------
    """

    _QUIET_PATHS = {"/health"}

    def __init__(self, app):
        from .config import get_settings

        self.app = app
        self._slow_ms = get_settings().slow_request_ms

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = _headers_of(scope)
        incoming = (headers.get("x-request-id") or "").strip()
        request_id = (
            incoming if self._is_valid_request_id(incoming) else str(uuid.uuid4())
        )

        method = scope.get("method", "GET").upper()
        path = scope.get("path", "")
        query = scope.get("query_string", b"").decode("latin-1")
        url = f"{path}?{query}" if query else path
        ip = client_ip_from_scope(scope)
        user_agent = headers.get("user-agent")

        set_request_context(
            request_id=request_id, method=method, path=path, client_ip=ip
        )
        scope.setdefault("state", {})["request_id"] = request_id

        if method in _BODY_METHODS:
            body = await self._read_body(receive)
            receive = self._replay(body, receive)
        else:
            body = b""
        body_text, body_value = _decode_body(body)

        quiet = path in self._QUIET_PATHS
        if not quiet:
            access_logger.info(
                "request",
                extra={
                    "type": "REQUEST",
                    "url": url,
                    "user_agent": user_agent,
                    "headers": {
                        "content-type": headers.get("content-type"),
                        "authorization": "Bearer ***"
                        if headers.get("authorization")
                        else None,
                        "content-length": headers.get("content-length"),
                    },
                    "body": redactor.sanitize(body_value)
                    if method in _BODY_METHODS
                    else None,
                },
            )

        audit_request(
            method=method,
            url=url,
            ip=ip,
            user_agent=user_agent,
            body_text=body_text,
            body=body_value,
        )

        start = time.perf_counter()
        status_code = 500

        async def send_with_request_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                hdrs = list(message.get("headers", []))
                hdrs.append((b"x-request-id", request_id.encode()))
                message["headers"] = hdrs
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:
            logger.exception(
                "request failed",
                extra={
                    "status_code": 500,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            raise
        finally:
            latency_ms = round((time.perf_counter() - start) * 1000, 2)
            if not quiet:
                self._log_completion(url, ip, status_code, latency_ms)
            clear_context()

    def _log_completion(
        self, url: str, ip: str, status_code: int, latency_ms: float
    ) -> None:
        access_logger.info(
            "response",
            extra={
                "type": "RESPONSE",
                "url": url,
                "status_code": status_code,
                "duration": f"{latency_ms}ms",
            },
        )

        performance = {
            "type": "PERFORMANCE",
            "url": url,
            "status_code": status_code,
            "duration": f"{latency_ms:.2f}ms",
        }
        if latency_ms > self._slow_ms:
            logger.warning(
                "slow request", extra={**performance, "warning": "SLOW_REQUEST"}
            )
        else:
            access_logger.info("performance", extra=performance)

    @staticmethod
    async def _read_body(receive) -> bytes:
        chunks: list[bytes] = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b"") or b"")
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    @staticmethod
    def _replay(body: bytes, receive):
        sent = False

        async def replay_receive():
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        return replay_receive

    @staticmethod
    def _is_valid_request_id(value: str) -> bool:
        # UUIDs and reasonably short ids are accepted.
        return bool(value) and len(value) <= 128


class _BodyTooLarge(Exception):
    pass


class BodyLimitMiddleware:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      BodyLimitMiddleware

    Responsibilities:
      - Reject requests whose body exceeds max_body_bytes
      - Works with Content-Length and with chunked transfer

    Collaborators:
      - crosscutting.config.get_settings()
      - crosscutting.error_responses (envelope)
      - crosscutting.logger
    ----------------------------------------------------------------------------
    """

    def __init__(self, app):
        from .config import get_settings

        self.app = app
        self._max_bytes = get_settings().max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = _headers_of(scope)
        path = scope.get("path", "")

        cl = headers.get("content-length")
        if cl:
            try:
                if int(cl) > self._max_bytes:
                    logger.warning(
                        "payload too large (content-length)",
                        extra={
                            "content_length": cl,
                            "max_bytes": self._max_bytes,
                        },
                    )
                    await self._send_413(send)
                    return
            except ValueError:
                # Invalid Content-Length: fall back to the streaming check
                pass

        started = False

        async def send_wrapper(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        received = 0

        async def receive_limited():
            nonlocal received
            msg = await receive()
            if msg["type"] == "http.request":
                received += len(msg.get("body", b"") or b"")
                if received > self._max_bytes:
                    raise _BodyTooLarge()
            return msg

        try:
            await self.app(scope, receive_limited, send_wrapper)
        except _BodyTooLarge:
            # Once the response started another one would break the protocol
            if started:
                logger.error(
                    "payload exceeded limit after response start",
                    extra={"url": path},
                )
                raise
            logger.warning(
                "payload too large (streaming)",
                extra={"received_bytes": received, "max_bytes": self._max_bytes},
            )
            await self._send_413(send)

    async def _send_413(self, send) -> None:
        body = build_error_body(None, payload_too_large(self._max_bytes)).to_content()

        await send(
            {
                "type": "http.response.start",
                "status": 413,
                "headers": [(b"content-type", b"application/json")],
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": json.dumps(body, ensure_ascii=False).encode("utf-8"),
            }
        )
