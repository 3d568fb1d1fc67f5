"""
Name: Rate Limiter Tests

Responsibilities:
  - Test the fixed-window contract (N accepted, N+1 rejected, reset)
  - Test LRU capacity bound and expired-window sweeping
  - Test header values and key resolution per policy

Notes:
  - Unit tests (no external dependencies)
  - Uses an injectable fake clock
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fitsync.crosscutting.rate_limit import (
    POLICY_AUTH,
    POLICY_STANDARD,
    POLICY_STRICT,
    POLICY_USER,
    FixedWindowCounter,
    RateLimiter,
    build_policies,
)
from fitsync.domain.entities import UserRole

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _counter(window=60, max_requests=3, max_keys=100, clock=None):
    clock = clock or FakeClock()
    return (
        FixedWindowCounter(
            window,
            max_requests,
            max_keys=max_keys,
            clock=clock,
            wall_clock=lambda: 1_700_000_000.0,
        ),
        clock,
    )


class TestFixedWindowCounter:
    def test_requests_up_to_limit_are_allowed(self):
        counter, _ = _counter(max_requests=3)

        decisions = [counter.hit("k") for _ in range(3)]

        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    def test_request_past_limit_is_rejected(self):
        counter, _ = _counter(max_requests=3)
        for _ in range(3):
            counter.hit("k")

        decision = counter.hit("k")

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.retry_after == 60

    def test_new_window_after_elapsed(self):
        counter, clock = _counter(window=60, max_requests=2)
        counter.hit("k")
        counter.hit("k")
        assert counter.hit("k").allowed is False

        clock.advance(60)
        decision = counter.hit("k")

        assert decision.allowed is True
        assert counter.get_count("k") == 1

    def test_retry_after_rounds_up(self):
        counter, clock = _counter(window=60, max_requests=1)
        counter.hit("k")
        clock.advance(10.2)

        decision = counter.hit("k")

        assert decision.retry_after == 50

    def test_keys_are_independent(self):
        counter, _ = _counter(max_requests=1)
        counter.hit("a")

        assert counter.hit("a").allowed is False
        assert counter.hit("b").allowed is True

    def test_per_call_limit_overrides_default(self):
        counter, _ = _counter(max_requests=1)

        first = counter.hit("k", limit=2)
        second = counter.hit("k", limit=2)

        assert first.limit == 2
        assert second.allowed is True
        assert counter.hit("k", limit=2).allowed is False

    def test_capacity_evicts_least_recently_used(self):
        counter, _ = _counter(max_keys=2)
        counter.hit("a")
        counter.hit("b")
        counter.hit("a")  # b is now the LRU key

        counter.hit("c")

        assert len(counter) == 2
        assert counter.get_count("b") == 0
        assert counter.get_count("a") == 2

    def test_capacity_prefers_expired_keys(self):
        counter, clock = _counter(window=10, max_keys=2)
        counter.hit("old")
        clock.advance(5)
        counter.hit("recent")
        clock.advance(6)  # "old" expired, "recent" still live

        counter.hit("new")

        assert len(counter) == 2
        assert counter.get_count("recent") == 1
        assert counter.get_count("new") == 1

    def test_sweep_drops_expired(self):
        counter, clock = _counter(window=10)
        counter.hit("a")
        counter.hit("b")
        clock.advance(10)

        assert counter.sweep() == 2
        assert len(counter) == 0

    def test_periodic_sweep_runs_during_hits(self):
        counter, clock = _counter(window=1, max_keys=10_000)
        for i in range(100):
            counter.hit(f"key-{i}")
        clock.advance(2)

        for i in range(200):
            counter.hit(f"fresh-{i}")

        # the sweep on the 256th operation removed the expired keys
        assert len(counter) == 200

    def test_reset_header_is_iso_utc(self):
        counter, _ = _counter(window=60)

        headers = counter.hit("k").headers()

        reset = headers["X-RateLimit-Reset"]
        assert reset.endswith("Z")
        parsed = datetime.fromisoformat(reset.replace("Z", "+00:00"))
        assert parsed == datetime.fromtimestamp(1_700_000_060.0, tz=timezone.utc)
        assert headers["X-RateLimit-Limit"] == "3"
        assert headers["X-RateLimit-Remaining"] == "2"
        assert headers["Retry-After"] == "60"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"window_seconds": 0, "max_requests": 1},
            {"window_seconds": 1, "max_requests": 0},
            {"window_seconds": 1, "max_requests": 1, "max_keys": 0},
        ],
    )
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            FixedWindowCounter(**kwargs)


def _request(ip="10.0.0.1", identity=None, forwarded=None):
    headers = []
    if forwarded:
        headers.append((b"x-forwarded-for", forwarded.encode()))
    return SimpleNamespace(
        scope={"type": "http", "client": (ip, 1234), "headers": headers},
        state=SimpleNamespace(identity=identity) if identity else SimpleNamespace(),
    )


class TestRateLimiterPolicies:
    def test_default_policies(self):
        policies = build_policies()

        assert policies[POLICY_AUTH].max_requests == 5
        assert policies[POLICY_AUTH].window_seconds == 15 * 60
        assert policies[POLICY_STANDARD].max_requests == 100
        assert policies[POLICY_STRICT].max_requests == 10
        assert policies[POLICY_STRICT].window_seconds == 60 * 60
        assert policies[POLICY_USER].role_limits == {
            "admin": 1000,
            "premium": 500,
            "user": 100,
        }
        assert policies[POLICY_USER].anonymous_limit == 50

    def test_ip_policies_key_by_prefix(self):
        policies = build_policies()
        counter, _ = _counter()

        auth_key, _ = RateLimiter(policies[POLICY_AUTH], counter).resolve(_request())
        std_key, _ = RateLimiter(policies[POLICY_STANDARD], counter).resolve(
            _request()
        )
        strict_key, _ = RateLimiter(policies[POLICY_STRICT], counter).resolve(
            _request()
        )

        assert auth_key == "auth:10.0.0.1"
        assert std_key == "ip:10.0.0.1"
        assert strict_key == "strict:10.0.0.1"

    def test_forwarded_for_first_entry_is_used(self):
        limiter = RateLimiter(build_policies()[POLICY_AUTH], _counter()[0])

        key, _ = limiter.resolve(_request(forwarded="203.0.113.9, 10.0.0.2"))

        assert key == "auth:203.0.113.9"

    @pytest.mark.parametrize(
        "role,expected",
        [(UserRole.ADMIN, 1000), (UserRole.PREMIUM, 500), (UserRole.USER, 100)],
    )
    def test_user_policy_is_role_tiered(self, role, expected):
        limiter = RateLimiter(build_policies()[POLICY_USER], _counter()[0])
        identity = SimpleNamespace(auth_id=uuid4(), role=role)

        key, limit = limiter.resolve(_request(identity=identity))

        assert key == f"user:{identity.auth_id}"
        assert limit == expected

    def test_user_policy_anonymous_fallback(self):
        limiter = RateLimiter(build_policies()[POLICY_USER], _counter()[0])

        key, limit = limiter.resolve(_request())

        assert key == "anonymous:10.0.0.1"
        assert limit == 50
