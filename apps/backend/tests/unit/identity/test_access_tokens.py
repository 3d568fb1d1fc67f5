"""
Name: Access Token Verification Tests

Responsibilities:
  - Test verify_access_token claims handling (exp, aud, sub, signature)
  - Test the require_user / optional_user / require_role dependencies

Collaborators:
  - fitsync.identity.auth
  - conftest.make_token
"""

from uuid import uuid4

import pytest
from conftest import bearer, make_token
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from fitsync.api.exception_handlers import register_exception_handlers
from fitsync.crosscutting.config import get_settings
from fitsync.crosscutting.error_responses import AppHTTPException
from fitsync.crosscutting.exceptions import ConfigurationError
from fitsync.domain.entities import UserRole
from fitsync.identity import (
    AuthIdentity,
    optional_user,
    require_role,
    require_user,
    verify_access_token,
)

pytestmark = pytest.mark.unit


class TestVerifyAccessToken:
    def test_valid_token_yields_identity(self):
        sub = uuid4()

        identity = verify_access_token(
            make_token(sub=sub, email="a@example.com", role="premium")
        )

        assert identity.auth_id == sub
        assert identity.email == "a@example.com"
        assert identity.role == UserRole.PREMIUM
        assert identity.is_admin is False

    def test_missing_role_defaults_to_user(self):
        identity = verify_access_token(make_token(role=None))

        assert identity.role == UserRole.USER

    def test_expired_token(self):
        with pytest.raises(AppHTTPException) as exc_info:
            verify_access_token(make_token(expires_in=-60))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token expired. Please log in again."

    @pytest.mark.parametrize(
        "token",
        [
            make_token(secret="another-secret-another-secret-0000"),
            make_token(audience="anon"),
            make_token(sub="not-a-uuid"),
            "not.a.jwt",
        ],
        ids=["bad-signature", "wrong-audience", "non-uuid-sub", "garbage"],
    )
    def test_invalid_tokens(self, token):
        with pytest.raises(AppHTTPException) as exc_info:
            verify_access_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid token. Please log in again."

    def test_missing_secret_is_configuration_error(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_JWT_SECRET", "")
        get_settings.cache_clear()

        with pytest.raises(ConfigurationError):
            verify_access_token(make_token())


def _app() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/me")
    async def me(identity: AuthIdentity = Depends(require_user())):
        return {"id": str(identity.auth_id), "role": identity.role.value}

    @app.get("/maybe")
    async def maybe(identity: AuthIdentity | None = Depends(optional_user())):
        return {"anonymous": identity is None}

    @app.get("/premium")
    async def premium(identity: AuthIdentity = Depends(require_role(UserRole.PREMIUM))):
        return {"role": identity.role.value}

    return TestClient(app)


class TestAuthDependencies:
    def test_missing_header(self):
        response = _app().get("/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    def test_non_bearer_scheme(self):
        response = _app().get("/me", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    def test_bearer_token_accepted(self):
        sub = uuid4()

        response = _app().get("/me", headers=bearer(make_token(sub=sub)))

        assert response.status_code == 200
        assert response.json() == {"id": str(sub), "role": "user"}

    def test_optional_user_without_token(self):
        assert _app().get("/maybe").json() == {"anonymous": True}

    def test_optional_user_with_expired_token(self):
        response = _app().get("/maybe", headers=bearer(make_token(expires_in=-5)))

        assert response.json() == {"anonymous": True}

    def test_optional_user_with_valid_token(self):
        response = _app().get("/maybe", headers=bearer(make_token()))

        assert response.json() == {"anonymous": False}

    @pytest.mark.parametrize("role", ["premium", "admin"])
    def test_role_allowed(self, role):
        response = _app().get("/premium", headers=bearer(make_token(role=role)))

        assert response.status_code == 200
        assert response.json() == {"role": role}

    def test_role_denied(self):
        response = _app().get("/premium", headers=bearer(make_token(role="user")))

        assert response.status_code == 403
        assert response.json()["message"] == (
            "Role 'premium' is required to access this resource"
        )
