"""
CRC — domain/merge.py

Name
- User merge rule

Responsibilities
- Combine an AuthUser with its optional UserProfile into a MergedUser.
- Custom-table fields win; auth metadata and the email local-part are fallbacks.
- Index profiles by auth id for list merges.

Constraints
- Pure functions: no IO, no logging.
- Empty strings and empty dicts count as absent.
- At most one profile per auth id is assumed; the first one seen wins.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from .entities import AuthUser, MergedUser, UserProfile, UserRole

DEFAULT_USERNAME = "user"


def email_local_part(email: str | None) -> str | None:
    if not email:
        return None
    local = email.split("@", 1)[0].strip()
    return local or None


def derive_username(auth_user: AuthUser, profile: UserProfile | None = None) -> str:
    """profile.username -> auth metadata username -> email local-part."""
    return (
        (profile.username if profile else None)
        or auth_user.metadata_username
        or email_local_part(auth_user.email)
        or DEFAULT_USERNAME
    )


def derive_role(auth_user: AuthUser, profile: UserProfile | None = None) -> UserRole:
    raw = (profile.role if profile else None) or auth_user.metadata_role
    return UserRole.parse(raw)


def merge_user(auth_user: AuthUser, profile: UserProfile | None = None) -> MergedUser:
    """Build the merged view; ``profile`` must belong to ``auth_user`` if given."""
    if profile is not None and profile.auth_id not in (None, auth_user.id):
        raise ValueError(
            f"profile {profile.id} belongs to auth user {profile.auth_id}, "
            f"not {auth_user.id}"
        )

    return MergedUser(
        auth_id=auth_user.id,
        profile_id=profile.id if profile else None,
        email=auth_user.email or (profile.email if profile else None),
        phone=auth_user.phone,
        username=derive_username(auth_user, profile),
        role=derive_role(auth_user, profile),
        user_metadata=dict(auth_user.user_metadata),
        app_metadata=dict(auth_user.app_metadata),
        profile_data=dict(profile.profile_data) if profile and profile.profile_data else {},
        preferences=dict(profile.preferences) if profile and profile.preferences else {},
        email_confirmed_at=auth_user.email_confirmed_at,
        last_sign_in_at=auth_user.last_sign_in_at,
        created_at=(profile.created_at if profile else None) or auth_user.created_at,
        updated_at=(profile.updated_at if profile else None) or auth_user.updated_at,
    )


def index_profiles_by_auth_id(
    profiles: Iterable[UserProfile],
) -> dict[UUID, UserProfile]:
    index: dict[UUID, UserProfile] = {}
    for profile in profiles:
        if profile.auth_id is not None and profile.auth_id not in index:
            index[profile.auth_id] = profile
    return index


def merge_users(
    auth_users: Iterable[AuthUser], profiles: Iterable[UserProfile]
) -> list[MergedUser]:
    """
    Merge every auth user with its profile.

    Profiles without an auth record (orphans) are not part of the result.
    """
    by_auth_id = index_profiles_by_auth_id(profiles)
    return [merge_user(u, by_auth_id.get(u.id)) for u in auth_users]
