"""
===============================================================================
USE CASE: Signup
===============================================================================

Business Goal:
    Self-service account creation: an auth-service account plus its row in
    the custom users table.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    SignupUseCase

Responsibilities:
    - Normalize the email and reject duplicates (custom table first, then the
      auth directory) before calling the auth service.
    - Resolve the role: admin only when the configured admin code matches.
    - Create the auth account with username/role metadata.
    - Insert the profile row best-effort (a failure is logged, signup stands).
    - Return the merged user and the session, if the service issued one.

Collaborators:
    - AuthDirectory.find_user_by_email / sign_up
    - ProfileRepository.get_by_email / insert
    - domain.merge.merge_user

Error Mapping:
    - CONFLICT: email already registered
    - AuthServiceError / DataStoreError from the duplicate check propagate
===============================================================================
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from ....crosscutting.exceptions import DataStoreError
from ....crosscutting.logger import logger
from ....domain.entities import NewProfile, UserProfile, UserRole
from ....domain.merge import email_local_part, merge_user
from ....domain.repositories import AuthDirectory, ProfileRepository
from .user_results import AuthFlowResult, UserError, UserErrorCode

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"


@dataclass(frozen=True)
class SignupInput:
    email: str
    password: str
    username: str | None = None
    admin_code: str | None = None


def resolve_signup_role(admin_code: str | None, configured_code: str) -> UserRole:
    """Admin only when a code is configured and the caller's code matches it."""
    if not configured_code or not admin_code:
        return UserRole.USER
    if hmac.compare_digest(admin_code.encode(), configured_code.encode()):
        return UserRole.ADMIN
    return UserRole.USER


def email_already_registered(
    email: str, auth: AuthDirectory, profiles: ProfileRepository
) -> bool:
    if profiles.get_by_email(email) is not None:
        return True
    return auth.find_user_by_email(email) is not None


class SignupUseCase:
    def __init__(
        self,
        auth: AuthDirectory,
        profiles: ProfileRepository,
        admin_code: str = "",
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._admin_code = admin_code

    def execute(self, input_data: SignupInput) -> AuthFlowResult:
        email = input_data.email.strip().lower()

        if email_already_registered(email, self._auth, self._profiles):
            return AuthFlowResult(
                error=UserError(UserErrorCode.CONFLICT, DUPLICATE_EMAIL_MESSAGE)
            )

        role = resolve_signup_role(input_data.admin_code, self._admin_code)
        username = (input_data.username or "").strip() or email_local_part(email)

        outcome = self._auth.sign_up(
            email,
            input_data.password,
            {"username": username, "role": role.value},
        )
        if outcome.user is None:
            # R: the auth service accepted the request but returned no user
            return AuthFlowResult(
                error=UserError(UserErrorCode.CONFLICT, DUPLICATE_EMAIL_MESSAGE)
            )

        profile = self._insert_profile(
            NewProfile(
                auth_id=outcome.user.id,
                username=username,
                email=email,
                role=role,
            )
        )

        if role == UserRole.ADMIN:
            logger.info(
                "Admin account created through signup",
                extra={"auth_id": str(outcome.user.id)},
            )

        return AuthFlowResult(
            user=merge_user(outcome.user, profile),
            session=outcome.session,
        )

    def _insert_profile(self, new_profile: NewProfile) -> UserProfile | None:
        try:
            return self._profiles.insert(new_profile)
        except DataStoreError as exc:
            logger.warning(
                "Profile row not created after signup",
                extra={
                    "auth_id": str(new_profile.auth_id),
                    "db_code": exc.code,
                    "error": exc.message,
                },
            )
            return None
