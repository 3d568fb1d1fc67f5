"""
Name: Structured Logging Tests

Responsibilities:
  - Test redaction of sensitive keys and trimming of large values
  - Test JSON formatting with request context
  - Test size-based rotation with date-suffixed names
"""

import json
import logging
from datetime import date

import pytest
from fitsync.context import clear_context, set_request_context
from fitsync.crosscutting.logger import (
    DateSuffixRotatingFileHandler,
    JSONFormatter,
    redactor,
)

pytestmark = pytest.mark.unit


class TestRedactor:
    def test_sensitive_keys_are_redacted(self):
        body = {
            "email": "a@example.com",
            "password": "secret123",
            "adminCode": "x",
            "admin_code": "x",
            "nested": {"Authorization": "Bearer abc"},
        }

        clean = redactor.sanitize(body)

        assert clean["email"] == "a@example.com"
        assert clean["password"] == "***REDACTED***"
        assert clean["admin_code"] == "***REDACTED***"
        assert clean["adminCode"] == "***REDACTED***"
        assert clean["nested"]["Authorization"] == "***REDACTED***"

    def test_long_strings_are_truncated(self):
        clean = redactor.sanitize("x" * 10_000)

        assert clean.endswith("...(truncated)")
        assert len(clean) < 10_000

    def test_bytes_are_summarized(self):
        assert redactor.sanitize(b"12345") == "<bytes 5B>"


class TestJSONFormatter:
    def _record(self, **extra):
        record = logging.LogRecord(
            "fitsync", logging.INFO, __file__, 10, "hello %s", ("world",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_one_json_line_with_context(self):
        set_request_context(
            request_id="req-1", method="GET", path="/health", client_ip="1.2.3.4"
        )
        try:
            line = JSONFormatter().format(self._record(token="abc", status_code=200))
        finally:
            clear_context()

        payload = json.loads(line)
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-1"
        assert payload["path"] == "/health"
        assert payload["token"] == "***REDACTED***"
        assert payload["status_code"] == 200


class TestDateSuffixRotatingFileHandler:
    def test_rotation_target_uses_date_then_counter(self, tmp_path):
        handler = DateSuffixRotatingFileHandler(tmp_path / "error.log", max_bytes=10)
        day = date(2024, 3, 1)

        first = handler.rotation_target(day)
        (tmp_path / "error.log.2024-03-01").write_text("old")
        second = handler.rotation_target(day)
        (tmp_path / "error.log.2024-03-01.1").write_text("older")
        third = handler.rotation_target(day)

        assert first.endswith("error.log.2024-03-01")
        assert second.endswith("error.log.2024-03-01.1")
        assert third.endswith("error.log.2024-03-01.2")

    def test_rotates_when_file_exceeds_max_bytes(self, tmp_path):
        path = tmp_path / "access.log"
        handler = DateSuffixRotatingFileHandler(path, max_bytes=50)
        handler.setFormatter(logging.Formatter("%(message)s"))
        try:
            handler.emit(self._record("a" * 80))
            assert handler.should_rotate() is True

            handler.emit(self._record("second"))
        finally:
            handler.close()

        rotated = [p for p in tmp_path.iterdir() if p.name != "access.log"]
        assert len(rotated) == 1
        assert rotated[0].name.startswith("access.log.")
        assert path.read_text(encoding="utf-8").strip() == "second"

    def test_small_file_is_not_rotated(self, tmp_path):
        handler = DateSuffixRotatingFileHandler(tmp_path / "x.log", max_bytes=1024)
        handler.setFormatter(logging.Formatter("%(message)s"))
        try:
            handler.emit(self._record("one"))
            handler.emit(self._record("two"))
        finally:
            handler.close()

        assert [p.name for p in tmp_path.iterdir()] == ["x.log"]

    def test_missing_file_does_not_rotate(self, tmp_path):
        handler = DateSuffixRotatingFileHandler(tmp_path / "logs" / "e.log", 1)

        assert handler.should_rotate() is False
        assert (tmp_path / "logs").is_dir()

    @staticmethod
    def _record(message):
        return logging.LogRecord("t", logging.INFO, __file__, 1, message, None, None)
