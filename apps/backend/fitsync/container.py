"""
===============================================================================
TARJETA CRC — fitsync/container.py (Composition Root / manual DI)
===============================================================================

Responsibilities:
  - Compose adapters (auth directory, profile repository) and use cases.
  - Expose factories for FastAPI (Depends).
  - Keep adapters as lazy singletons (lru_cache).
  - Pick in-memory adapters in test env or when FAKE_BAAS is set.

Collaborators:
  - fitsync.crosscutting.config.get_settings
  - fitsync.domain.repositories (ports)
  - fitsync.infrastructure.* (implementations)
  - fitsync.application.usecases.users

Notes:
  - No business logic here.
  - No FastAPI imports (factories only).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.usecases.users import (
    CreateUserUseCase,
    GetUserUseCase,
    ListUsersUseCase,
    LoginUseCase,
    SignupUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import AuthDirectory, ProfileRepository
from .infrastructure.repositories.in_memory import (
    InMemoryAuthDirectory,
    InMemoryProfileRepository,
)
from .infrastructure.supabase import SupabaseAuthDirectory, SupabaseProfileRepository

# =============================================================================
# Adapters (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_auth_directory() -> AuthDirectory:
    """Auth directory (in-memory in test/fake mode; Supabase Auth otherwise)."""
    if get_settings().uses_fake_baas():
        return InMemoryAuthDirectory()
    return SupabaseAuthDirectory()


@lru_cache(maxsize=1)
def get_profile_repository() -> ProfileRepository:
    """Custom users table (in-memory in test/fake mode; Supabase otherwise)."""
    settings = get_settings()
    if settings.uses_fake_baas():
        return InMemoryProfileRepository()
    return SupabaseProfileRepository(table=settings.users_table)


def reset_container() -> None:
    """Drop cached adapters (tests)."""
    get_auth_directory.cache_clear()
    get_profile_repository.cache_clear()


# =============================================================================
# Use cases
# =============================================================================


def get_signup_use_case() -> SignupUseCase:
    return SignupUseCase(
        auth=get_auth_directory(),
        profiles=get_profile_repository(),
        admin_code=get_settings().admin_code,
    )


def get_login_use_case() -> LoginUseCase:
    return LoginUseCase(auth=get_auth_directory(), profiles=get_profile_repository())


def get_list_users_use_case() -> ListUsersUseCase:
    return ListUsersUseCase(
        auth=get_auth_directory(), profiles=get_profile_repository()
    )


def get_get_user_use_case() -> GetUserUseCase:
    return GetUserUseCase(auth=get_auth_directory(), profiles=get_profile_repository())


def get_create_user_use_case() -> CreateUserUseCase:
    """Admin-only provisioning (auth account + profile row)."""
    return CreateUserUseCase(
        auth=get_auth_directory(), profiles=get_profile_repository()
    )
