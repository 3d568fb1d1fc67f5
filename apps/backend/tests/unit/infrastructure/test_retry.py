"""
Name: Retry Helper Tests

Responsibilities:
  - Test transient vs permanent error classification
  - Test the tenacity decorator (retries transient, fails fast on permanent)
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fitsync.infrastructure.services.retry import (
    create_retry_decorator,
    get_http_status_code,
    is_transient_error,
)

pytestmark = pytest.mark.unit


class _StatusError(Exception):
    def __init__(self, status):
        super().__init__(f"status {status}")
        self.status = status


class ReadTimeout(Exception):
    pass


class TestClassification:
    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_transient_statuses(self, status):
        assert is_transient_error(_StatusError(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_permanent_statuses(self, status):
        assert is_transient_error(_StatusError(status)) is False

    def test_status_from_response(self):
        exc = Exception("boom")
        exc.response = SimpleNamespace(status_code=502)

        assert get_http_status_code(exc) == 502
        assert is_transient_error(exc) is True

    def test_string_codes_are_ignored(self):
        exc = Exception("pg")
        exc.code = "23505"

        assert get_http_status_code(exc) is None

    def test_builtin_network_errors(self):
        assert is_transient_error(TimeoutError()) is True
        assert is_transient_error(ConnectionResetError()) is True

    def test_name_heuristics(self):
        assert is_transient_error(ReadTimeout()) is True
        assert is_transient_error(ValueError("nope")) is False


class TestRetryDecorator:
    def test_retries_transient_then_succeeds(self):
        fn = Mock(side_effect=[TimeoutError(), "ok"])

        result = create_retry_decorator(max_attempts=3, base_delay=0)(fn)()

        assert result == "ok"
        assert fn.call_count == 2

    def test_gives_up_after_max_attempts(self):
        fn = Mock(side_effect=TimeoutError("still down"))

        with pytest.raises(TimeoutError):
            create_retry_decorator(max_attempts=2, base_delay=0)(fn)()

        assert fn.call_count == 2

    def test_permanent_error_is_not_retried(self):
        fn = Mock(side_effect=_StatusError(404))

        with pytest.raises(_StatusError):
            create_retry_decorator(max_attempts=3, base_delay=0)(fn)()

        assert fn.call_count == 1

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_attempts": 0}, {"base_delay": -1}, {"max_delay": 0}],
    )
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            create_retry_decorator(**kwargs)
