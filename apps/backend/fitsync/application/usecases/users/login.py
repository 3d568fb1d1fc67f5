"""
===============================================================================
USE CASE: Login
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Class:
    LoginUseCase

Responsibilities:
    - Exchange email + password for an auth-service session.
    - Attach the merged user (profile row when it can be read).

Collaborators:
    - AuthDirectory.sign_in_with_password
    - ProfileRepository.get_by_auth_id

Notes:
    - Bad credentials surface as AuthServiceError and are classified by the
      central handlers (401, no session in the body).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from ....crosscutting.exceptions import DataStoreError
from ....crosscutting.logger import logger
from ....domain.entities import UserProfile
from ....domain.merge import merge_user
from ....domain.repositories import AuthDirectory, ProfileRepository
from .user_results import AuthFlowResult, UserError, UserErrorCode


@dataclass(frozen=True)
class LoginInput:
    email: str
    password: str


class LoginUseCase:
    def __init__(self, auth: AuthDirectory, profiles: ProfileRepository) -> None:
        self._auth = auth
        self._profiles = profiles

    def execute(self, input_data: LoginInput) -> AuthFlowResult:
        outcome = self._auth.sign_in_with_password(
            input_data.email.strip().lower(), input_data.password
        )
        if outcome.user is None or outcome.session is None:
            return AuthFlowResult(
                error=UserError(UserErrorCode.UNAUTHORIZED, "Login failed")
            )

        profile: UserProfile | None = None
        try:
            profile = self._profiles.get_by_auth_id(outcome.user.id)
        except DataStoreError as exc:
            logger.warning(
                "Profile unavailable on login",
                extra={"auth_id": str(outcome.user.id), "db_code": exc.code},
            )

        return AuthFlowResult(
            user=merge_user(outcome.user, profile), session=outcome.session
        )
