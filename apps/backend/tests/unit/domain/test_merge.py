"""
Name: User Merge Rule Tests

Responsibilities:
  - Test field precedence (profile > auth metadata > email local-part)
  - Test list merges (profiles indexed by auth id, orphans excluded)
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fitsync.domain.entities import AuthUser, UserProfile, UserRole
from fitsync.domain.merge import (
    email_local_part,
    index_profiles_by_auth_id,
    merge_user,
    merge_users,
)

pytestmark = pytest.mark.unit

_T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
_T1 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _auth(email="sam@example.com", **metadata):
    return AuthUser(id=uuid4(), email=email, user_metadata=metadata, created_at=_T0)


def _profile(auth_id, **fields):
    defaults = {
        "id": uuid4(),
        "auth_id": auth_id,
        "username": "sam_profile",
        "email": "sam@example.com",
        "role": "premium",
        "created_at": _T1,
    }
    defaults.update(fields)
    return UserProfile(**defaults)


class TestMergeUser:
    def test_profile_fields_win(self):
        auth = _auth(username="sam_meta", role="user")
        profile = _profile(auth.id, preferences={"units": "metric"})

        merged = merge_user(auth, profile)

        assert merged.auth_id == auth.id
        assert merged.profile_id == profile.id
        assert merged.username == "sam_profile"
        assert merged.role == UserRole.PREMIUM
        assert merged.preferences == {"units": "metric"}
        assert merged.created_at == _T1

    def test_metadata_fallback_without_profile(self):
        auth = _auth(username="sam_meta", role="admin")

        merged = merge_user(auth)

        assert merged.profile_id is None
        assert merged.username == "sam_meta"
        assert merged.role == UserRole.ADMIN
        assert merged.created_at == _T0
        assert merged.profile_data == {}

    def test_email_local_part_fallback(self):
        merged = merge_user(_auth(email="lifter@example.com"))

        assert merged.username == "lifter"
        assert merged.role == UserRole.USER

    def test_empty_profile_values_fall_through(self):
        auth = _auth(username="sam_meta")
        profile = _profile(auth.id, username="", role="")

        merged = merge_user(auth, profile)

        assert merged.username == "sam_meta"
        assert merged.role == UserRole.USER

    def test_unknown_role_is_user(self):
        assert merge_user(_auth(role="superuser")).role == UserRole.USER

    def test_mismatched_profile_is_rejected(self):
        with pytest.raises(ValueError):
            merge_user(_auth(), _profile(uuid4()))


class TestMergeUsers:
    def test_orphans_are_excluded(self):
        a, b = _auth("a@example.com"), _auth("b@example.com")
        profiles = [_profile(a.id, username="aa"), _profile(uuid4(), username="ghost")]

        merged = merge_users([a, b], profiles)

        assert [m.auth_id for m in merged] == [a.id, b.id]
        assert merged[0].username == "aa"
        assert merged[1].username == "b"

    def test_first_profile_per_auth_id_wins(self):
        auth_id = uuid4()
        first = _profile(auth_id, username="first")
        second = _profile(auth_id, username="second")

        index = index_profiles_by_auth_id([first, second, _profile(None)])

        assert index == {auth_id: first}


@pytest.mark.parametrize(
    "email,expected",
    [("a.b@example.com", "a.b"), ("", None), (None, None), ("@example.com", None)],
)
def test_email_local_part(email, expected):
    assert email_local_part(email) == expected
