"""
Name: Exception Handler Tests

Responsibilities:
  - Test classification of table-API and auth-service errors
  - Test the error envelope for unhandled and internal errors
  - Test that production responses hide internal messages
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fitsync.api.exception_handlers import (
    classify_auth_error,
    classify_data_error,
    register_exception_handlers,
)
from fitsync.crosscutting.config import get_settings
from fitsync.crosscutting.error_responses import ErrorCode
from fitsync.crosscutting.exceptions import (
    AuthServiceError,
    ConfigurationError,
    DataStoreError,
)

pytestmark = pytest.mark.unit


class TestClassifyDataError:
    def test_unique_violation_names_the_field(self):
        exc = DataStoreError(
            "duplicate key value violates unique constraint",
            code="23505",
            details="Key (email)=(a@example.com) already exists.",
        )

        app_exc = classify_data_error(exc)

        assert app_exc.status_code == 409
        assert app_exc.detail == (
            "Duplicate field value: email. Please use another value."
        )

    @pytest.mark.parametrize(
        "code,message,status,detail",
        [
            ("23503", "fk", 400, "Referenced record does not exist"),
            (
                "23502",
                'null value in column "username" violates not-null constraint',
                400,
                "Field 'username' is required",
            ),
            ("22P02", "invalid input syntax for type uuid", 400, "Invalid ID format"),
            ("PGRST116", "no rows", 404, "Resource 'requested' not found"),
        ],
    )
    def test_known_codes(self, code, message, status, detail):
        app_exc = classify_data_error(DataStoreError(message, code=code))

        assert app_exc.status_code == status
        assert app_exc.detail == detail

    def test_unknown_code_is_internal(self):
        app_exc = classify_data_error(DataStoreError("disk full", code="53100"))

        assert app_exc.status_code == 500
        assert app_exc.code == ErrorCode.INTERNAL_ERROR


class TestClassifyAuthError:
    @pytest.mark.parametrize(
        "message,status,code,expected_status,expected_detail",
        [
            ("Invalid login credentials", 400, None, 401, "Invalid email or password"),
            (
                "Email not confirmed",
                400,
                None,
                401,
                "Please confirm your email address before logging in",
            ),
            ("User already registered", 422, None, 409, "User already registered"),
            ("A user with this email exists", 422, "email_exists", 409, None),
            ("invalid JWT: token is expired", 403, None, 401, "Invalid or expired token"),
            ("Password should be at least 6 characters", 422, None, 400, None),
        ],
    )
    def test_mapping(
        self, message, status, code, expected_status, expected_detail
    ):
        app_exc = classify_auth_error(
            AuthServiceError(message, status=status, code=code)
        )

        assert app_exc.status_code == expected_status
        assert app_exc.detail == (expected_detail or message)

    def test_server_side_failure_is_internal(self):
        app_exc = classify_auth_error(AuthServiceError("upstream", status=502))

        assert app_exc.status_code == 500


def _app() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    @app.get("/config")
    def config():
        raise ConfigurationError("SUPABASE_URL is not configured")

    @app.get("/duplicate")
    def duplicate():
        raise DataStoreError(
            "duplicate", code="23505", details="Key (username)=(kim) already exists."
        )

    @app.get("/auth")
    def auth():
        raise AuthServiceError("Invalid login credentials", status=400)

    return TestClient(app, raise_server_exceptions=False)


class TestHandlers:
    def test_unhandled_error_envelope(self):
        response = _app().get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "INTERNAL_ERROR"
        assert body["statusCode"] == 500
        assert "stack" not in body

    def test_production_hides_message(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("FAKE_BAAS", "true")
        get_settings.cache_clear()

        response = _app().get("/boom")

        assert response.json()["message"] == "Internal Server Error"

    def test_stack_exposed_when_enabled(self, monkeypatch):
        monkeypatch.setenv("EXPOSE_ERROR_STACK", "true")
        get_settings.cache_clear()

        body = _app().get("/boom").json()

        assert "RuntimeError" in body["stack"]

    def test_configuration_error_is_internal(self):
        response = _app().get("/config")

        assert response.status_code == 500

    def test_data_store_error_is_mapped(self):
        response = _app().get("/duplicate")

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    def test_auth_service_error_is_mapped(self):
        response = _app().get("/auth")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_method_not_allowed(self):
        response = _app().post("/boom")

        assert response.status_code == 405
        assert response.json()["statusCode"] == 405
