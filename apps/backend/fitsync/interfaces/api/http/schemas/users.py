"""
===============================================================================
TARJETA CRC — schemas/users.py
===============================================================================

Module:
    HTTP schemas for the user routes

Responsibilities:
    - Request DTOs: signup, login, admin create user.
    - Validate and normalize fields (email lowercased, usernames trimmed).
    - Response DTOs: merged user, session, auth flows, profile.
    - Map domain entities -> response DTOs.

Collaborators:
    - domain.entities (MergedUser, AuthSession, UserRole)

Notes:
    - Unknown request fields are ignored (pydantic default).
===============================================================================
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from fitsync.domain.entities import AuthSession, MergedUser, UserRole
from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(v: str) -> str:
    email = (v or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("Please provide a valid email address")
    return email


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class SignupReq(BaseModel):
    """Self-service signup."""

    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=6, max_length=512)
    username: str | None = Field(default=None, min_length=3, max_length=30)
    admin_code: str | None = Field(default=None, max_length=256)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        # R: strip before the length constraints run
        return v.strip() if isinstance(v, str) else v


class LoginReq(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1, max_length=512)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class CreateUserReq(BaseModel):
    """Admin-side user creation."""

    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., max_length=320)
    password: str | None = Field(default=None, min_length=6, max_length=512)
    role: UserRole = Field(default=UserRole.USER)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class MergedUserRes(BaseModel):
    """Auth record + custom table row, merged."""

    id: UUID = Field(..., description="Auth identifier")
    auth_id: UUID
    profile_id: UUID | None = None
    email: str | None = None
    phone: str | None = None
    username: str
    role: UserRole
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    profile_data: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)
    email_confirmed_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionRes(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None


class SignupRes(BaseModel):
    user: MergedUserRes
    session: SessionRes | None = None
    message: str = "Signup successful"


class LoginRes(BaseModel):
    session: SessionRes
    user: MergedUserRes


class ProfileRes(BaseModel):
    user: MergedUserRes
    message: str


class MessageRes(BaseModel):
    message: str


class HealthRes(BaseModel):
    status: str = "OK"
    timestamp: datetime
    uptime: float = Field(..., description="Seconds since process start")
    environment: str


# -----------------------------------------------------------------------------
# Mapping
# -----------------------------------------------------------------------------
def to_merged_user_res(user: MergedUser) -> MergedUserRes:
    return MergedUserRes(
        id=user.auth_id,
        auth_id=user.auth_id,
        profile_id=user.profile_id,
        email=user.email,
        phone=user.phone,
        username=user.username,
        role=user.role,
        user_metadata=dict(user.user_metadata),
        app_metadata=dict(user.app_metadata),
        profile_data=dict(user.profile_data),
        preferences=dict(user.preferences),
        email_confirmed_at=user.email_confirmed_at,
        last_sign_in_at=user.last_sign_in_at,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_session_res(session: AuthSession) -> SessionRes:
    return SessionRes(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        token_type=session.token_type,
        expires_in=session.expires_in,
        expires_at=session.expires_at,
    )
