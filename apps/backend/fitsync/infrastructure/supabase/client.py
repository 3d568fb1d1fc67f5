"""
===============================================================================
CRC CARD — infrastructure/supabase/client.py
===============================================================================

Component:
  Supabase client factory

Responsibilities:
  - Build the admin client (service-role key): admin auth API + table access.
  - Build short-lived session clients (anon key) for signup/login, so one
    caller's session never leaks into the shared admin client.
  - Fail fast when the BaaS is not configured.

Collaborators:
  - supabase.create_client / ClientOptions
  - crosscutting.config.get_settings
  - crosscutting.exceptions.ConfigurationError

Principles:
  - One admin client per process (lazy singleton, guarded by a lock).
  - Session clients never persist or refresh tokens.
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from supabase import Client, ClientOptions, create_client

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import ConfigurationError
from ...crosscutting.logger import logger

_admin_client: Optional[Client] = None
_client_lock = threading.Lock()


def _stateless_options() -> ClientOptions:
    return ClientOptions(auto_refresh_token=False, persist_session=False)


def _require(value: str, name: str) -> str:
    if not value:
        raise ConfigurationError(f"{name} is not configured")
    return value


def get_admin_client() -> Client:
    """Process-wide client authenticated with the service-role key."""
    global _admin_client

    with _client_lock:
        if _admin_client is None:
            settings = get_settings()
            url = _require(settings.supabase_url, "SUPABASE_URL")
            key = _require(
                settings.supabase_service_role_key, "SUPABASE_SERVICE_ROLE_KEY"
            )
            logger.info("Initializing Supabase admin client", extra={"url": url})
            _admin_client = create_client(url, key, options=_stateless_options())
        return _admin_client


def new_session_client() -> Client:
    """
    Fresh client for one signup/login call.

    Uses the anon key when set (falls back to the service-role key).
    """
    settings = get_settings()
    url = _require(settings.supabase_url, "SUPABASE_URL")
    key = settings.supabase_anon_key or settings.supabase_service_role_key
    _require(key, "SUPABASE_ANON_KEY")
    return create_client(url, key, options=_stateless_options())


def reset_admin_client() -> None:
    """Drop the cached admin client (tests / settings reload)."""
    global _admin_client

    with _client_lock:
        _admin_client = None
