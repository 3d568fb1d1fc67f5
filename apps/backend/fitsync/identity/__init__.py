"""Identity: access-token verification and FastAPI auth dependencies."""

from .auth import (
    AuthIdentity,
    optional_user,
    require_role,
    require_user,
    verify_access_token,
)

__all__ = [
    "AuthIdentity",
    "verify_access_token",
    "require_user",
    "optional_user",
    "require_role",
]
