"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (APP_ENV=test => in-memory BaaS adapters)
  - Reset cached settings, adapters and rate limiters between tests
  - Provide the API client and token/user helpers

Collaborators:
  - pytest: Test framework
  - fastapi.testclient.TestClient
  - fitsync.container / fitsync.crosscutting.rate_limit (state resets)

Notes:
  - Settings never read a local .env during tests
  - Use @pytest.fixture(scope="function") for per-test isolation
"""

import os
import sys
import time
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import jwt
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_TO_FILES", "false")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-0123456789abcdef0123")
os.environ.setdefault("ADMIN_CODE", "test-admin-code")

from fitsync.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from fitsync.container import (  # noqa: E402
    get_auth_directory,
    get_profile_repository,
    reset_container,
)
from fitsync.crosscutting.rate_limit import reset_rate_limiters  # noqa: E402

TEST_JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
TEST_ADMIN_CODE = os.environ["ADMIN_CODE"]


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


def _reset_state() -> None:
    app_config.get_settings.cache_clear()
    reset_container()
    reset_rate_limiters()


@pytest.fixture(autouse=True)
def isolated_state():
    """R: Fresh settings, in-memory stores and rate-limit counters per test."""
    _reset_state()
    yield
    _reset_state()


# ============================================================================
# API client
# ============================================================================


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from fitsync.api.main import app

    return TestClient(app)


@pytest.fixture
def auth_directory():
    """R: The in-memory auth directory the app is wired to."""
    return get_auth_directory()


@pytest.fixture
def profile_repository():
    """R: The in-memory users table the app is wired to."""
    return get_profile_repository()


# ============================================================================
# Tokens
# ============================================================================


def make_token(
    *,
    sub: UUID | str | None = None,
    email: str = "user@example.com",
    role: str | None = "user",
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
    audience: str = "authenticated",
    extra: dict[str, Any] | None = None,
) -> str:
    """R: Access token shaped like the ones the auth service issues."""
    now = int(time.time())
    metadata = {"role": role} if role else {}
    payload: dict[str, Any] = {
        "sub": str(sub or uuid4()),
        "email": email,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": metadata,
        **(extra or {}),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# Users
# ============================================================================


class UserFactory:
    """R: Creates users in the in-memory stores and returns a bearer header."""

    def __init__(self, client, auth_directory):
        self._client = client
        self._auth = auth_directory

    def signup(
        self,
        email: str = "user@example.com",
        password: str = "secret123",
        **fields: Any,
    ):
        return self._client.post(
            "/api/users/signup",
            json={"email": email, "password": password, **fields},
        )

    def headers_for(self, email: str, password: str = "secret123") -> dict[str, str]:
        result = self._auth.sign_in_with_password(email, password)
        return bearer(result.session.access_token)

    def admin_headers(self, email: str = "admin@example.com") -> dict[str, str]:
        user = self._auth.create_user(
            email, "secret123", {"role": "admin", "username": "admin"}
        )
        return bearer(self._auth.issue_session(user).access_token)


@pytest.fixture
def users(client, auth_directory) -> UserFactory:
    return UserFactory(client, auth_directory)
