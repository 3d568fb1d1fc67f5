"""
===============================================================================
USER USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    User Use Case Results

Business Goal:
    Shared result and error models for the user use cases, with a stable
    contract for validation, authorization, missing resources and conflicts.

Why:
    - Use cases return typed results instead of raising business errors, so
      the HTTP layer maps them to status codes in one place.
    - Infrastructure failures (AuthServiceError / DataStoreError) are NOT
      results: they propagate to the central exception handlers.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Component:
    user_results models (module)

Responsibilities:
    - UserErrorCode: small, stable set of business error categories.
    - UserError: code + message.
    - UserResult / UserListResult / AuthFlowResult.

Collaborators:
    - domain.entities.MergedUser, AuthSession
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ....domain.entities import AuthSession, MergedUser


class UserErrorCode(str, Enum):
    """Business error categories for user use cases."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class UserError:
    code: UserErrorCode
    message: str
    resource: str | None = None


@dataclass
class UserResult:
    """One merged user, or an error."""

    user: MergedUser | None = None
    error: UserError | None = None


@dataclass
class UserListResult:
    """
    Merged users listing.

    `degraded` is True when the custom table could not be read and the users
    carry merge defaults only.
    """

    users: List[MergedUser] = field(default_factory=list)
    error: UserError | None = None
    degraded: bool = False


@dataclass
class AuthFlowResult:
    """Signup / login outcome: the user and the session when one was issued."""

    user: MergedUser | None = None
    session: AuthSession | None = None
    error: UserError | None = None
