"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Module:
    Domain layer exports

Responsibilities:
    - Central exports for application/interfaces imports.
    - Never import infrastructure here.
===============================================================================
"""

from .entities import (
    AuthResult,
    AuthSession,
    AuthUser,
    MergedUser,
    NewProfile,
    UserProfile,
    UserRole,
)
from .merge import merge_user, merge_users
from .repositories import AuthDirectory, ProfileRepository
from .value_objects import IdentifierKind, UserIdentifier

__all__ = [
    # Entities
    "AuthUser",
    "UserProfile",
    "NewProfile",
    "MergedUser",
    "AuthSession",
    "AuthResult",
    "UserRole",
    # Merge
    "merge_user",
    "merge_users",
    # Ports
    "AuthDirectory",
    "ProfileRepository",
    # Value objects
    "IdentifierKind",
    "UserIdentifier",
]
