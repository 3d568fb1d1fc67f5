"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/auth_directory.py
============================================================
Class: InMemoryAuthDirectory

Responsibilities:
  - Stand in for the hosted auth service (tests / local dev without BaaS).
  - Keep users and credentials in memory, emails unique (case-insensitive).
  - Mint HS256 access tokens the same shape the auth service issues
    (sub, email, aud, exp, user_metadata), signed with the configured secret,
    so identity.auth verifies them exactly like real ones.
  - Raise the same AuthServiceError messages the real service produces.

Collaborators:
  - domain.repositories.AuthDirectory (contract)
  - crosscutting.config.get_settings (JWT secret / audience)

Constraints / Notes:
  - Thread-safe: every operation runs under a Lock.
  - NOT for production: credentials are held in process memory.
============================================================
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import jwt

from ....crosscutting.config import get_settings
from ....crosscutting.exceptions import AuthServiceError
from ....domain.entities import AuthResult, AuthSession, AuthUser

ACCESS_TOKEN_TTL_SECONDS = 3600


class InMemoryAuthDirectory:
    """
    In-memory auth service.

    _users maps auth id -> AuthUser; _passwords holds the credentials.
    """

    def __init__(self, token_ttl_seconds: int = ACCESS_TOKEN_TTL_SECONDS) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, AuthUser] = {}
        self._passwords: Dict[UUID, str] = {}
        self._token_ttl = token_ttl_seconds

    # =========================================================
    # Helpers
    # =========================================================
    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    def _find_by_email_locked(self, email: str) -> Optional[AuthUser]:
        wanted = self._normalize_email(email)
        for user in self._users.values():
            if (user.email or "").lower() == wanted:
                return user
        return None

    def _add_locked(
        self, email: str, password: str | None, metadata: dict[str, Any]
    ) -> AuthUser:
        if self._find_by_email_locked(email) is not None:
            raise AuthServiceError(
                "User already registered", status=422, code="user_already_exists"
            )
        now = self._now()
        user = AuthUser(
            id=uuid4(),
            email=self._normalize_email(email),
            user_metadata=dict(metadata),
            app_metadata={"provider": "email", "providers": ["email"]},
            email_confirmed_at=now,
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        if password:
            self._passwords[user.id] = password
        return user

    def issue_session(self, user: AuthUser) -> AuthSession:
        """Mint an access token for ``user`` (what the auth service returns on login)."""
        settings = get_settings()
        now = int(self._now().timestamp())
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "aud": settings.supabase_jwt_audience,
            "role": "authenticated",
            "iat": now,
            "exp": now + self._token_ttl,
            "user_metadata": dict(user.user_metadata),
        }
        token = jwt.encode(payload, settings.supabase_jwt_secret, algorithm="HS256")
        return AuthSession(
            access_token=token,
            refresh_token=secrets.token_urlsafe(24),
            expires_in=self._token_ttl,
            expires_at=now + self._token_ttl,
        )

    # =========================================================
    # AuthDirectory
    # =========================================================
    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthResult:
        with self._lock:
            user = self._add_locked(email, password, metadata)
        return AuthResult(user=user, session=self.issue_session(user))

    def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        with self._lock:
            user = self._find_by_email_locked(email)
            stored = self._passwords.get(user.id) if user else None
            if user is None or stored is None or not hmac.compare_digest(
                stored.encode(), (password or "").encode()
            ):
                raise AuthServiceError(
                    "Invalid login credentials",
                    status=400,
                    code="invalid_credentials",
                )
            user = replace(user, last_sign_in_at=self._now())
            self._users[user.id] = user
        return AuthResult(user=user, session=self.issue_session(user))

    def list_users(self) -> List[AuthUser]:
        with self._lock:
            return sorted(
                self._users.values(),
                key=lambda u: u.created_at or datetime.min.replace(tzinfo=timezone.utc),
            )

    def get_user(self, auth_id: UUID) -> Optional[AuthUser]:
        with self._lock:
            return self._users.get(auth_id)

    def find_user_by_email(self, email: str) -> Optional[AuthUser]:
        with self._lock:
            return self._find_by_email_locked(email)

    def create_user(
        self,
        email: str,
        password: str | None,
        metadata: dict[str, Any],
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        with self._lock:
            user = self._add_locked(email, password, metadata)
            if not email_confirm:
                user = replace(user, email_confirmed_at=None)
                self._users[user.id] = user
            return user

    def delete_user(self, auth_id: UUID) -> None:
        """Drop an auth record (used to reproduce orphaned profiles)."""
        with self._lock:
            self._users.pop(auth_id, None)
            self._passwords.pop(auth_id, None)
