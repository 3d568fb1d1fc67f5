"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/profiles.py
============================================================
Class: InMemoryProfileRepository

Responsibilities:
  - Hold the custom users table in memory (tests / local dev).
  - Enforce the table's unique columns (auth_id, email, username) with the
    same code the database reports (23505), so error mapping is exercised.
  - Return copies ordered by created_at.

Collaborators:
  - domain.repositories.ProfileRepository (contract)
  - crosscutting.exceptions.DataStoreError

Constraints / Notes:
  - Thread-safe: access guarded by a Lock.
============================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from ....crosscutting.exceptions import DataStoreError
from ....domain.entities import NewProfile, UserProfile

UNIQUE_VIOLATION = "23505"


class InMemoryProfileRepository:
    """Thread-safe in-memory users table."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._rows: Dict[UUID, UserProfile] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _check_unique_locked(self, profile: NewProfile) -> None:
        checks = (
            ("auth_id", lambda r: r.auth_id == profile.auth_id, profile.auth_id),
            (
                "email",
                lambda r: (r.email or "").lower() == profile.email.lower(),
                profile.email,
            ),
            ("username", lambda r: r.username == profile.username, profile.username),
        )
        for column, matches, value in checks:
            if any(matches(r) for r in self._rows.values()):
                raise DataStoreError(
                    f'duplicate key value violates unique constraint "users_{column}_key"',
                    code=UNIQUE_VIOLATION,
                    details=f"Key ({column})=({value}) already exists.",
                )

    def list_profiles(self) -> List[UserProfile]:
        with self._lock:
            return sorted(
                self._rows.values(),
                key=lambda p: p.created_at or datetime.min.replace(tzinfo=timezone.utc),
            )

    def get_by_id(self, profile_id: UUID) -> Optional[UserProfile]:
        with self._lock:
            return self._rows.get(profile_id)

    def get_by_auth_id(self, auth_id: UUID) -> Optional[UserProfile]:
        with self._lock:
            for row in self._rows.values():
                if row.auth_id == auth_id:
                    return row
            return None

    def get_by_email(self, email: str) -> Optional[UserProfile]:
        wanted = (email or "").strip().lower()
        with self._lock:
            for row in self._rows.values():
                if (row.email or "").lower() == wanted:
                    return row
            return None

    def insert(self, profile: NewProfile) -> UserProfile:
        with self._lock:
            self._check_unique_locked(profile)
            now = self._now()
            row = UserProfile(
                id=uuid4(),
                auth_id=profile.auth_id,
                username=profile.username,
                email=profile.email,
                role=profile.role.value,
                profile_data=dict(profile.profile_data),
                preferences=dict(profile.preferences),
                created_at=now,
                updated_at=now,
            )
            self._rows[row.id] = row
            return row
