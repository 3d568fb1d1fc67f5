"""
============================================================
TARJETA CRC — infrastructure/supabase/auth_directory.py
============================================================
Class: SupabaseAuthDirectory

Responsibilities:
  - Implement domain.repositories.AuthDirectory on top of Supabase Auth.
  - Signup/login through a fresh session client; admin operations through
    the service-role client.
  - Page through the admin user listing.
  - Translate AuthError -> AuthServiceError with structured logging.

Collaborators:
  - infrastructure.supabase.client (client factories)
  - infrastructure.supabase.mappers
  - infrastructure.services.retry (idempotent reads only)

Constraints:
  - Returns None for "user not found"; every other failure raises.
  - Writes (sign_up, create_user) are never retried.
============================================================
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional
from uuid import UUID

from supabase import AuthError, Client

from ...crosscutting.exceptions import AuthServiceError
from ...crosscutting.logger import logger
from ...domain.entities import AuthResult, AuthUser
from ..services.retry import create_retry_decorator
from .client import get_admin_client, new_session_client
from .mappers import to_auth_session, to_auth_user, translate_auth_error

# R: admin listing page size (the auth API caps it at 1000)
LIST_PAGE_SIZE = 1000


def _is_user_not_found(exc: AuthError) -> bool:
    return getattr(exc, "status", None) == 404 or (
        getattr(exc, "code", None) == "user_not_found"
    )


class SupabaseAuthDirectory:
    """R: Supabase Auth adapter."""

    def __init__(
        self,
        admin_client_factory: Callable[[], Client] = get_admin_client,
        session_client_factory: Callable[[], Client] = new_session_client,
        page_size: int = LIST_PAGE_SIZE,
    ):
        self._admin = admin_client_factory
        self._session = session_client_factory
        self._page_size = page_size
        self._retry = create_retry_decorator()

    # ------------------------------------------------------------
    # Session flows
    # ------------------------------------------------------------
    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthResult:
        try:
            response = self._session().auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": dict(metadata)},
                }
            )
        except AuthError as exc:
            logger.warning(
                "Auth signup rejected",
                extra={"email": email, "error": str(exc)},
            )
            raise translate_auth_error(exc) from exc

        return self._to_result(response)

    def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        try:
            response = self._session().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as exc:
            logger.info("Auth login rejected", extra={"email": email})
            raise translate_auth_error(exc) from exc

        return self._to_result(response)

    # ------------------------------------------------------------
    # Admin reads
    # ------------------------------------------------------------
    def list_users(self) -> List[AuthUser]:
        users: list[AuthUser] = []
        page = 1
        while True:
            batch = self._call_read(self._list_page, page)
            users.extend(to_auth_user(u) for u in batch)
            if len(batch) < self._page_size:
                return users
            page += 1

    def get_user(self, auth_id: UUID) -> Optional[AuthUser]:
        try:
            response = self._retry(self._admin().auth.admin.get_user_by_id)(
                str(auth_id)
            )
        except AuthError as exc:
            if _is_user_not_found(exc):
                return None
            logger.exception(
                "Auth user lookup failed", extra={"auth_id": str(auth_id)}
            )
            raise translate_auth_error(exc) from exc

        user = getattr(response, "user", None)
        return to_auth_user(user) if user is not None else None

    def find_user_by_email(self, email: str) -> Optional[AuthUser]:
        wanted = (email or "").strip().lower()
        if not wanted:
            return None
        for user in self.list_users():
            if (user.email or "").lower() == wanted:
                return user
        return None

    # ------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------
    def create_user(
        self,
        email: str,
        password: str | None,
        metadata: dict[str, Any],
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        attributes: dict[str, Any] = {
            "email": email,
            "email_confirm": email_confirm,
            "user_metadata": dict(metadata),
        }
        if password:
            attributes["password"] = password

        try:
            response = self._admin().auth.admin.create_user(attributes)
        except AuthError as exc:
            logger.warning(
                "Auth admin create rejected",
                extra={"email": email, "error": str(exc)},
            )
            raise translate_auth_error(exc) from exc

        if getattr(response, "user", None) is None:
            raise AuthServiceError("Auth service returned no user", status=500)
        return to_auth_user(response.user)

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------
    def _list_page(self, page: int) -> list[Any]:
        return list(
            self._admin().auth.admin.list_users(page=page, per_page=self._page_size)
        )

    def _call_read(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return self._retry(fn)(*args)
        except AuthError as exc:
            logger.exception("Auth admin read failed", extra={"error": str(exc)})
            raise translate_auth_error(exc) from exc

    @staticmethod
    def _to_result(response: Any) -> AuthResult:
        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        return AuthResult(
            user=to_auth_user(user) if user is not None else None,
            session=to_auth_session(session) if session is not None else None,
        )
