"""
CRC — domain/value_objects.py

Name
- User identifiers

Responsibilities
- Make the two identifier spaces explicit: the auth-service id and the
  custom-table (profile) id.
- Force callers to say which one they hold.

Collaborators
- application.usecases.users.get_user
- interfaces.api.http.routers.users (id_type query parameter)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class IdentifierKind(str, Enum):
    AUTH = "auth"
    PROFILE = "profile"


@dataclass(frozen=True, slots=True)
class UserIdentifier:
    kind: IdentifierKind
    value: UUID

    @classmethod
    def auth(cls, value: UUID) -> "UserIdentifier":
        return cls(kind=IdentifierKind.AUTH, value=value)

    @classmethod
    def profile(cls, value: UUID) -> "UserIdentifier":
        return cls(kind=IdentifierKind.PROFILE, value=value)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"
