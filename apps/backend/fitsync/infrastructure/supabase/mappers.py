"""
============================================================
TARJETA CRC — infrastructure/supabase/mappers.py
============================================================
Module: SDK objects <-> domain entities

Responsibilities:
  - Map supabase auth objects (User, Session) and table rows to entities.
  - Map NewProfile to an insert row.
  - Translate SDK exceptions into AuthServiceError / DataStoreError.

Collaborators:
  - domain.entities
  - crosscutting.exceptions

Notes:
  - SDK objects are pydantic models; they are dumped to JSON-mode dicts
    first so rows and auth objects go through the same parsing.
  - Unparseable timestamps map to None rather than failing a read.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from supabase import AuthError, PostgrestAPIError

from ...crosscutting.exceptions import AuthServiceError, DataStoreError
from ...domain.entities import AuthSession, AuthUser, NewProfile, UserProfile


def as_dict(obj: Any) -> dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return dict(vars(obj))


def parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_uuid(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _dict_field(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return dict(value) if isinstance(value, Mapping) else {}


# ============================================================
# Auth objects
# ============================================================
def to_auth_user(obj: Any) -> AuthUser:
    data = as_dict(obj)
    return AuthUser(
        id=parse_uuid(data["id"]),
        email=data.get("email") or None,
        phone=data.get("phone") or None,
        user_metadata=_dict_field(data, "user_metadata"),
        app_metadata=_dict_field(data, "app_metadata"),
        email_confirmed_at=parse_datetime(data.get("email_confirmed_at")),
        last_sign_in_at=parse_datetime(data.get("last_sign_in_at")),
        created_at=parse_datetime(data.get("created_at")),
        updated_at=parse_datetime(data.get("updated_at")),
    )


def to_auth_session(obj: Any) -> AuthSession | None:
    data = as_dict(obj)
    if not data.get("access_token"):
        return None
    return AuthSession(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        token_type=data.get("token_type") or "bearer",
        expires_in=data.get("expires_in"),
        expires_at=data.get("expires_at"),
    )


# ============================================================
# Table rows
# ============================================================
def row_to_profile(row: Mapping[str, Any]) -> UserProfile:
    return UserProfile(
        id=parse_uuid(row["id"]),
        auth_id=parse_uuid(row.get("auth_id")),
        username=row.get("username"),
        email=row.get("email"),
        role=row.get("role"),
        profile_data=_dict_field(row, "profile_data"),
        preferences=_dict_field(row, "preferences"),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def profile_to_row(profile: NewProfile) -> dict[str, Any]:
    return {
        "auth_id": str(profile.auth_id),
        "username": profile.username,
        "email": profile.email,
        "role": profile.role.value,
        "profile_data": dict(profile.profile_data),
        "preferences": dict(profile.preferences),
    }


# ============================================================
# Errors
# ============================================================
def translate_auth_error(exc: AuthError) -> AuthServiceError:
    return AuthServiceError(
        getattr(exc, "message", None) or str(exc),
        status=getattr(exc, "status", None),
        code=getattr(exc, "code", None),
        original_error=exc,
    )


def translate_data_error(exc: PostgrestAPIError) -> DataStoreError:
    return DataStoreError(
        getattr(exc, "message", None) or str(exc),
        code=getattr(exc, "code", None),
        details=getattr(exc, "details", None),
        hint=getattr(exc, "hint", None),
        original_error=exc,
    )
