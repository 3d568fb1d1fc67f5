"""
============================================================
TARJETA CRC — infrastructure/supabase/profile_repository.py
============================================================
Class: SupabaseProfileRepository

Responsibilities:
  - Implement domain.repositories.ProfileRepository on the custom `users`
    table through the PostgREST table API.
  - Map rows -> UserProfile.
  - Translate PostgrestAPIError -> DataStoreError (code/details/hint kept
    so the HTTP layer can classify 23505, 23503, 23502, 22P02, PGRST116).

Collaborators:
  - infrastructure.supabase.client.get_admin_client
  - infrastructure.supabase.mappers
  - infrastructure.services.retry (reads only)

Constraints:
  - Returns None when no row matches.
  - Emails are compared as stored (callers normalize to lowercase).
============================================================
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional
from uuid import UUID

from supabase import Client, PostgrestAPIError

from ...crosscutting.exceptions import DataStoreError
from ...crosscutting.logger import logger
from ...domain.entities import NewProfile, UserProfile
from ..services.retry import create_retry_decorator
from .client import get_admin_client
from .mappers import profile_to_row, row_to_profile, translate_data_error


class SupabaseProfileRepository:
    """R: Custom users table adapter."""

    def __init__(
        self,
        table: str = "users",
        client_factory: Callable[[], Client] = get_admin_client,
    ):
        self._table_name = table
        self._client = client_factory
        self._retry = create_retry_decorator()

    def list_profiles(self) -> List[UserProfile]:
        rows = self._read(
            lambda: self._table().select("*").execute().data,
            "list_profiles",
        )
        return [row_to_profile(r) for r in rows or []]

    def get_by_id(self, profile_id: UUID) -> Optional[UserProfile]:
        return self._get_one("id", str(profile_id))

    def get_by_auth_id(self, auth_id: UUID) -> Optional[UserProfile]:
        return self._get_one("auth_id", str(auth_id))

    def get_by_email(self, email: str) -> Optional[UserProfile]:
        return self._get_one("email", email)

    def insert(self, profile: NewProfile) -> UserProfile:
        try:
            rows = self._table().insert(profile_to_row(profile)).execute().data
        except PostgrestAPIError as exc:
            logger.warning(
                "Profile insert failed",
                extra={
                    "auth_id": str(profile.auth_id),
                    "db_code": getattr(exc, "code", None),
                },
            )
            raise translate_data_error(exc) from exc

        if not rows:
            raise DataStoreError(f"Insert into {self._table_name} returned no rows")
        return row_to_profile(rows[0])

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------
    def _table(self):
        return self._client().table(self._table_name)

    def _get_one(self, column: str, value: str) -> Optional[UserProfile]:
        rows = self._read(
            lambda: self._table()
            .select("*")
            .eq(column, value)
            .limit(1)
            .execute()
            .data,
            f"get_by_{column}",
        )
        return row_to_profile(rows[0]) if rows else None

    def _read(self, query: Callable[[], Any], operation: str) -> Any:
        try:
            return self._retry(query)()
        except PostgrestAPIError as exc:
            logger.exception(
                "Profile read failed",
                extra={
                    "operation": operation,
                    "table": self._table_name,
                    "db_code": getattr(exc, "code", None),
                },
            )
            raise translate_data_error(exc) from exc
