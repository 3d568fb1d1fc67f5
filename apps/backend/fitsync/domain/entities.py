"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Module:
    User entities

Responsibilities:
    - AuthUser: record owned by the hosted auth service.
    - UserProfile: row of the application-owned `users` table.
    - MergedUser: read-time union of both (see domain/merge.py).
    - AuthSession: session issued by the auth service on login.

Collaborators:
    - domain.merge: builds MergedUser.
    - infrastructure.supabase: maps SDK objects -> entities.
    - interfaces.api.http.schemas: entities -> HTTP DTOs.

Notes:
    - Shapes only, no IO.
    - AuthUser.id and UserProfile.id live in different identifier spaces
      (see domain/value_objects.UserIdentifier).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class UserRole(str, Enum):
    """Roles stored in auth metadata and in the profile row."""

    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any, default: "UserRole | None" = None) -> "UserRole":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default or cls.USER


@dataclass(frozen=True, slots=True)
class AuthUser:
    """Auth-service record."""

    id: UUID
    email: str | None
    phone: str | None = None
    user_metadata: dict[str, Any] = field(default_factory=dict)
    app_metadata: dict[str, Any] = field(default_factory=dict)
    email_confirmed_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def metadata_role(self) -> str | None:
        return self.user_metadata.get("role") or None

    @property
    def metadata_username(self) -> str | None:
        return self.user_metadata.get("username") or None


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Row of the custom users table."""

    id: UUID
    auth_id: UUID | None
    username: str | None = None
    email: str | None = None
    role: str | None = None
    profile_data: dict[str, Any] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class NewProfile:
    """Values for a profile insert (ids and timestamps come from the table)."""

    auth_id: UUID
    username: str
    email: str
    role: UserRole = UserRole.USER
    profile_data: dict[str, Any] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MergedUser:
    """AuthUser + optional UserProfile, assembled at read time."""

    auth_id: UUID
    profile_id: UUID | None
    email: str | None
    phone: str | None
    username: str
    role: UserRole
    user_metadata: dict[str, Any]
    app_metadata: dict[str, Any]
    profile_data: dict[str, Any]
    preferences: dict[str, Any]
    email_confirmed_at: datetime | None
    last_sign_in_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True, slots=True)
class AuthSession:
    """Session issued by the auth service."""

    access_token: str
    refresh_token: str | None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Outcome of signup/login: the user and, when issued, a session."""

    user: AuthUser | None
    session: AuthSession | None = None
