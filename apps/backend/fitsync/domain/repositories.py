"""
CRC — domain/repositories.py

Name
- Domain ports (Protocols) for the two user stores

Responsibilities
- AuthDirectory: the hosted auth service (signup, login, admin user API).
- ProfileRepository: the application-owned custom users table.
- Keep application code independent from the BaaS SDK.

Collaborators
- domain.entities: AuthUser, UserProfile, NewProfile, AuthResult
- infrastructure.supabase: Supabase implementations
- infrastructure.repositories.in_memory: test/dev implementations

Constraints
- Pure interfaces only: no IO, no SDK imports.
- "Not found" is expressed as None; every other failure is raised as
  crosscutting.exceptions.AuthServiceError / DataStoreError.
"""

from typing import Any, List, Optional, Protocol
from uuid import UUID

from .entities import AuthResult, AuthUser, NewProfile, UserProfile


class AuthDirectory(Protocol):
    """
    R: Interface to the hosted auth service.
    """

    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthResult:
        """R: Self-service signup; may or may not return a session."""
        ...

    def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        """R: Exchange credentials for a session. Bad credentials raise."""
        ...

    def list_users(self) -> List[AuthUser]:
        """R: Every auth user (admin API)."""
        ...

    def get_user(self, auth_id: UUID) -> Optional[AuthUser]:
        """R: One auth user by auth id, None if missing."""
        ...

    def find_user_by_email(self, email: str) -> Optional[AuthUser]:
        """R: One auth user by (case-insensitive) email, None if missing."""
        ...

    def create_user(
        self,
        email: str,
        password: str | None,
        metadata: dict[str, Any],
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        """R: Admin-side creation (no session)."""
        ...


class ProfileRepository(Protocol):
    """
    R: Interface to the custom users table.
    """

    def list_profiles(self) -> List[UserProfile]:
        ...

    def get_by_id(self, profile_id: UUID) -> Optional[UserProfile]:
        ...

    def get_by_auth_id(self, auth_id: UUID) -> Optional[UserProfile]:
        ...

    def get_by_email(self, email: str) -> Optional[UserProfile]:
        ...

    def insert(self, profile: NewProfile) -> UserProfile:
        ...
