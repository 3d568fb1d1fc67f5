"""
===============================================================================
USE CASE: Get User
===============================================================================

Name:
    Get User by identifier

Business Goal:
    Fetch one merged user given an identifier whose space (auth id or profile
    id) the caller states explicitly.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    GetUserUseCase

Responsibilities:
    - auth id: auth record (required) + its profile row (optional).
    - profile id: profile row (required) + its auth record (required; an
      orphaned row is reported as NOT_FOUND).
    - Merge both with domain.merge.merge_user.

Collaborators:
    - AuthDirectory.get_user
    - ProfileRepository.get_by_id / get_by_auth_id
    - domain.value_objects.UserIdentifier
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.logger import logger
from ....domain.merge import merge_user
from ....domain.repositories import AuthDirectory, ProfileRepository
from ....domain.value_objects import IdentifierKind, UserIdentifier
from .user_results import UserError, UserErrorCode, UserResult


class GetUserUseCase:
    def __init__(self, auth: AuthDirectory, profiles: ProfileRepository) -> None:
        self._auth = auth
        self._profiles = profiles

    def execute(self, identifier: UserIdentifier) -> UserResult:
        if identifier.kind == IdentifierKind.PROFILE:
            return self._by_profile_id(identifier)
        return self._by_auth_id(identifier)

    def _by_auth_id(self, identifier: UserIdentifier) -> UserResult:
        auth_user = self._auth.get_user(identifier.value)
        if auth_user is None:
            return self._not_found(identifier)

        profile = self._profiles.get_by_auth_id(auth_user.id)
        return UserResult(user=merge_user(auth_user, profile))

    def _by_profile_id(self, identifier: UserIdentifier) -> UserResult:
        profile = self._profiles.get_by_id(identifier.value)
        if profile is None or profile.auth_id is None:
            return self._not_found(identifier)

        auth_user = self._auth.get_user(profile.auth_id)
        if auth_user is None:
            logger.warning(
                "Orphaned profile row",
                extra={"profile_id": str(profile.id), "auth_id": str(profile.auth_id)},
            )
            return self._not_found(identifier)

        return UserResult(user=merge_user(auth_user, profile))

    @staticmethod
    def _not_found(identifier: UserIdentifier) -> UserResult:
        return UserResult(
            error=UserError(
                UserErrorCode.NOT_FOUND,
                f"User '{identifier.value}' not found",
                resource="User",
            )
        )
