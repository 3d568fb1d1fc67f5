"""
Supabase adapters (production BaaS).

Auth directory on Supabase Auth, profile repository on the custom users table.
"""

from .auth_directory import SupabaseAuthDirectory
from .client import get_admin_client, new_session_client, reset_admin_client
from .profile_repository import SupabaseProfileRepository

__all__ = [
    "SupabaseAuthDirectory",
    "SupabaseProfileRepository",
    "get_admin_client",
    "new_session_client",
    "reset_admin_client",
]
