"""
===============================================================================
USE CASE: Create User (admin)
===============================================================================

Business Goal:
    Admin-side provisioning: a confirmed auth account plus its profile row,
    returned as one merged user.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    CreateUserUseCase

Responsibilities:
    - Require an admin actor.
    - Reject duplicate emails before touching the auth service.
    - Create the auth account (email confirmed, username/role metadata).
    - Insert the profile row; a failure here propagates.

Collaborators:
    - AuthDirectory.create_user
    - ProfileRepository.insert
    - signup.email_already_registered

Error Mapping:
    - FORBIDDEN: actor is not an admin
    - CONFLICT: email already registered
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from ....crosscutting.logger import logger
from ....domain.entities import NewProfile, UserRole
from ....domain.merge import merge_user
from ....domain.repositories import AuthDirectory, ProfileRepository
from .signup import DUPLICATE_EMAIL_MESSAGE, email_already_registered
from .user_results import UserError, UserErrorCode, UserResult


@dataclass(frozen=True)
class CreateUserInput:
    username: str
    email: str
    actor_id: UUID
    actor_role: UserRole
    password: str | None = None
    role: UserRole = UserRole.USER


class CreateUserUseCase:
    def __init__(self, auth: AuthDirectory, profiles: ProfileRepository) -> None:
        self._auth = auth
        self._profiles = profiles

    def execute(self, input_data: CreateUserInput) -> UserResult:
        if input_data.actor_role != UserRole.ADMIN:
            return UserResult(
                error=UserError(
                    UserErrorCode.FORBIDDEN, "Only admins can create users"
                )
            )

        email = input_data.email.strip().lower()
        username = input_data.username.strip()

        if email_already_registered(email, self._auth, self._profiles):
            return UserResult(
                error=UserError(UserErrorCode.CONFLICT, DUPLICATE_EMAIL_MESSAGE)
            )

        auth_user = self._auth.create_user(
            email,
            input_data.password,
            {"username": username, "role": input_data.role.value},
            email_confirm=True,
        )
        profile = self._profiles.insert(
            NewProfile(
                auth_id=auth_user.id,
                username=username,
                email=email,
                role=input_data.role,
            )
        )

        logger.info(
            "User created by admin",
            extra={
                "actor_id": str(input_data.actor_id),
                "auth_id": str(auth_user.id),
                "role": input_data.role.value,
            },
        )
        return UserResult(user=merge_user(auth_user, profile))
