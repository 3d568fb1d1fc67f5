"""
===============================================================================
MODULE: Rate limiting (Fixed Window) - in-memory, bounded
===============================================================================

Goal
----
Limit abuse per:
- client IP (signup/login, public endpoints)
- authenticated user id (protected endpoints, role-tiered)

Includes:
- Fixed-window counters (count + window reset time per key)
- Headers X-RateLimit-Limit / X-RateLimit-Remaining / X-RateLimit-Reset / Retry-After
- 429 error envelope with retryAfter

Memory bounds
-------------
- Capacity-limited LRU map (max_keys), no background timers
- Expired windows swept every 256 operations and whenever capacity is reached
- If still full after the sweep, the least recently used key is evicted

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Components:
  - FixedWindowCounter
  - RateLimitPolicy / RateLimiter
  - rate_limit() FastAPI dependency

Responsibilities:
  - Decide allow/deny per key and window
  - Emit 429 with Retry-After
  - Keep state thread-safe (sync handlers run in a threadpool)

Collaborators:
  - crosscutting.config
  - crosscutting.error_responses
  - crosscutting.logger
===============================================================================
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, Response

from .config import get_settings
from .error_responses import rate_limited
from .logger import logger
from .middleware import client_ip_from_scope

# Policy names used by the route table.
POLICY_AUTH = "auth"
POLICY_STANDARD = "standard"
POLICY_STRICT = "strict"
POLICY_USER = "user"

_SWEEP_EVERY_OPS = 0xFF


@dataclass
class WindowCounter:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one counted request."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after: int

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at.isoformat().replace("+00:00", "Z"),
            "Retry-After": str(self.retry_after),
        }


class FixedWindowCounter:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Class:
      FixedWindowCounter

    Responsibilities:
      - Count requests per key inside a fixed window
      - Start a fresh window once the previous one has elapsed
      - Sweep expired windows and evict LRU keys past max_keys

    Collaborators:
      - RateLimiter
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if max_keys <= 0:
            raise ValueError("max_keys must be > 0")
        self.window_seconds = float(window_seconds)
        self.max_requests = int(max_requests)
        self.max_keys = int(max_keys)

        self._clock = clock
        self._wall_clock = wall_clock
        self._counters: "OrderedDict[str, WindowCounter]" = OrderedDict()
        self._lock = threading.Lock()
        self._ops = 0

    def hit(self, key: str, *, limit: int | None = None) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it is allowed."""
        max_requests = self.max_requests if limit is None else int(limit)

        with self._lock:
            now = self._clock()
            self._ops += 1
            if (self._ops & _SWEEP_EVERY_OPS) == 0:
                self._sweep(now)

            counter = self._counters.get(key)
            if counter is None:
                self._ensure_capacity(now)
                counter = WindowCounter(count=0, reset_at=now + self.window_seconds)
                self._counters[key] = counter
            elif now >= counter.reset_at:
                counter.count = 0
                counter.reset_at = now + self.window_seconds

            counter.count += 1
            self._counters.move_to_end(key, last=True)

            seconds_left = max(0.0, counter.reset_at - now)
            return RateLimitDecision(
                allowed=counter.count <= max_requests,
                limit=max_requests,
                remaining=max(0, max_requests - counter.count),
                reset_at=datetime.fromtimestamp(
                    self._wall_clock() + seconds_left, tz=timezone.utc
                ),
                retry_after=math.ceil(seconds_left),
            )

    def get_count(self, key: str) -> int:
        """Requests counted for ``key`` in its current window (0 if expired)."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or self._clock() >= counter.reset_at:
                return 0
            return counter.count

    def sweep(self) -> int:
        """Drop every expired window. Returns how many keys were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    # --------------------------- internals ---------------------------

    def _sweep(self, now: float) -> int:
        expired = [k for k, c in self._counters.items() if now >= c.reset_at]
        for k in expired:
            del self._counters[k]
        return len(expired)

    def _ensure_capacity(self, now: float) -> None:
        if len(self._counters) < self.max_keys:
            return
        self._sweep(now)
        while len(self._counters) >= self.max_keys:
            evicted, _ = self._counters.popitem(last=False)
            logger.debug("rate limit key evicted", extra={"rate_limit_key": evicted})


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


def get_client_ip(request: Request) -> str:
    return client_ip_from_scope(request.scope)


@dataclass(frozen=True)
class RateLimitPolicy:
    """
    Window, maximum and key strategy of one limiter.

    role_limits: per-role maximum for authenticated callers; when set, callers
    are keyed by user id and anonymous callers use anonymous_limit.
    """

    name: str
    window_seconds: int
    max_requests: int
    message: str
    key_prefix: str = ""
    role_limits: dict[str, int] = field(default_factory=dict)
    anonymous_limit: int | None = None

    @property
    def per_user(self) -> bool:
        return bool(self.role_limits)


class RateLimiter:
    """Applies one RateLimitPolicy to incoming requests."""

    def __init__(self, policy: RateLimitPolicy, counter: FixedWindowCounter):
        self.policy = policy
        self.counter = counter

    def resolve(self, request: Request) -> tuple[str, int]:
        """Return the counter key and the maximum that applies to ``request``."""
        ip = get_client_ip(request)

        if not self.policy.per_user:
            prefix = self.policy.key_prefix or "ip"
            return f"{prefix}:{ip}", self.policy.max_requests

        identity = getattr(request.state, "identity", None)
        if identity is None:
            limit = self.policy.anonymous_limit or self.policy.max_requests
            return f"anonymous:{ip}", limit

        role = getattr(identity, "role", None)
        role_value = getattr(role, "value", role) or "user"
        limit = self.policy.role_limits.get(role_value, self.policy.max_requests)
        return f"user:{identity.auth_id}", limit

    def check(self, request: Request) -> RateLimitDecision:
        key, limit = self.resolve(request)
        decision = self.counter.hit(key, limit=limit)
        if not decision.allowed:
            logger.warning(
                "rate limit exceeded",
                extra={
                    "policy": self.policy.name,
                    "rate_limit_key": key,
                    "limit": decision.limit,
                    "retry_after": decision.retry_after,
                },
            )
        return decision


def build_policies() -> dict[str, RateLimitPolicy]:
    s = get_settings()
    window = s.rate_limit_window_seconds
    return {
        POLICY_AUTH: RateLimitPolicy(
            name=POLICY_AUTH,
            window_seconds=window,
            max_requests=s.rate_limit_auth_max,
            message="Too many authentication attempts, please try again later.",
            key_prefix="auth",
        ),
        POLICY_STANDARD: RateLimitPolicy(
            name=POLICY_STANDARD,
            window_seconds=window,
            max_requests=s.rate_limit_standard_max,
            message="Too many requests from this IP, please try again later.",
        ),
        POLICY_STRICT: RateLimitPolicy(
            name=POLICY_STRICT,
            window_seconds=s.rate_limit_strict_window_seconds,
            max_requests=s.rate_limit_strict_max,
            message="Too many sensitive operations, please try again later.",
            key_prefix="strict",
        ),
        POLICY_USER: RateLimitPolicy(
            name=POLICY_USER,
            window_seconds=window,
            max_requests=s.rate_limit_user_max,
            message="Too many requests, please try again later.",
            role_limits={
                "admin": s.rate_limit_admin_max,
                "premium": s.rate_limit_premium_max,
                "user": s.rate_limit_user_max,
            },
            anonymous_limit=s.rate_limit_anonymous_max,
        ),
    }


_rate_limiters: Optional[dict[str, RateLimiter]] = None
_limiters_lock = threading.Lock()


def get_rate_limiter(name: str) -> RateLimiter:
    global _rate_limiters
    with _limiters_lock:
        if _rate_limiters is None:
            max_keys = get_settings().rate_limit_max_keys
            _rate_limiters = {
                policy.name: RateLimiter(
                    policy,
                    FixedWindowCounter(
                        policy.window_seconds,
                        policy.max_requests,
                        max_keys=max_keys,
                    ),
                )
                for policy in build_policies().values()
            }
        return _rate_limiters[name]


def reset_rate_limiters() -> None:
    global _rate_limiters
    with _limiters_lock:
        _rate_limiters = None


def is_rate_limiting_enabled() -> bool:
    return get_settings().rate_limit_enabled


def rate_limit(policy_name: str) -> Callable:
    """
    FastAPI dependency: count the request under ``policy_name``.

    Sets the X-RateLimit-* headers on the response, raises 429 past the limit.
    The decision is kept on ``request.state.rate_limit`` so error responses
    rendered later carry the same headers.
    Declare it after the auth dependency so per-user policies see the identity.
    """

    def dependency(request: Request, response: Response) -> RateLimitDecision | None:
        if not is_rate_limiting_enabled():
            return None

        limiter = get_rate_limiter(policy_name)
        decision = limiter.check(request)
        request.state.rate_limit = decision
        headers = decision.headers()

        if not decision.allowed:
            raise rate_limited(limiter.policy.message, decision.retry_after, headers)

        for name, value in headers.items():
            response.headers[name] = value
        return decision

    return dependency
