"""
===============================================================================
USE CASE: List Users
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Class:
    ListUsersUseCase

Responsibilities:
    - Read every auth user and every profile row, merge them by auth id.
    - Omit orphaned profile rows (no auth record).
    - Degrade to auth users with merge defaults when the custom table cannot
      be read.

Collaborators:
    - AuthDirectory.list_users
    - ProfileRepository.list_profiles
    - domain.merge.merge_users
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.exceptions import DataStoreError
from ....crosscutting.logger import logger
from ....domain.merge import merge_users
from ....domain.repositories import AuthDirectory, ProfileRepository
from .user_results import UserListResult


class ListUsersUseCase:
    def __init__(self, auth: AuthDirectory, profiles: ProfileRepository) -> None:
        self._auth = auth
        self._profiles = profiles

    def execute(self) -> UserListResult:
        auth_users = self._auth.list_users()

        try:
            profiles = self._profiles.list_profiles()
        except DataStoreError as exc:
            logger.warning(
                "Custom users table unavailable; listing auth users only",
                extra={"db_code": exc.code, "error": exc.message},
            )
            return UserListResult(users=merge_users(auth_users, []), degraded=True)

        return UserListResult(users=merge_users(auth_users, profiles))
