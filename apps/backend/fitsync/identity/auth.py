"""
===============================================================================
TARJETA CRC — identity/auth.py
===============================================================================

Module:
    Access-token verification (Supabase JWT)

Responsibilities:
    - Verify access tokens issued by the auth service (signature, exp, aud).
    - Build the request identity (auth id, email, role) from verified claims.
    - Expose FastAPI dependencies: require_user, optional_user, require_role.
    - Extract the token from `Authorization: Bearer <token>`.

Collaborators:
    - crosscutting.config.get_settings: JWT secret and audience.
    - crosscutting.error_responses: unauthorized/forbidden.
    - context.set_user_context: user id for logs.
    - crosscutting.rate_limit: reads request.state.identity for per-user limits.

Design decisions:
    - Verified-only: claims are never read from an unverified token.
    - Role comes from the `user_metadata.role` claim (default "user").
    - Tokens and secrets are never logged.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import UUID

import jwt
from fastapi import Header, Request

from ..context import set_user_context
from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import AppHTTPException, forbidden, unauthorized
from ..crosscutting.exceptions import ConfigurationError
from ..crosscutting.logger import logger
from ..domain.entities import UserRole

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

JWT_ALGORITHM: str = "HS256"

CLAIM_SUB: str = "sub"
CLAIM_EMAIL: str = "email"
CLAIM_EXP: str = "exp"
CLAIM_USER_METADATA: str = "user_metadata"

TOKEN_REQUIRED_MESSAGE = "Access token required"
TOKEN_EXPIRED_MESSAGE = "Token expired. Please log in again."
TOKEN_INVALID_MESSAGE = "Invalid token. Please log in again."


@dataclass(frozen=True, slots=True)
class AuthIdentity:
    """Caller identity derived from a verified access token."""

    auth_id: UUID
    email: str | None
    role: UserRole
    user_metadata: dict[str, Any] = field(default_factory=dict)
    exp: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def verify_access_token(token: str) -> AuthIdentity:
    """Verify ``token`` and return the identity it carries.

    Errors:
        - 401 "Token expired..." when `exp` is in the past.
        - 401 "Invalid token..." for bad signature/audience/claims.
        - ConfigurationError when no JWT secret is configured.
    """
    settings = get_settings()
    secret = settings.supabase_jwt_secret
    if not secret:
        raise ConfigurationError("SUPABASE_JWT_SECRET is not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            audience=settings.supabase_jwt_audience,
            options={"require": [CLAIM_SUB, CLAIM_EXP]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise unauthorized(TOKEN_EXPIRED_MESSAGE) from exc
    except jwt.InvalidTokenError as exc:
        raise unauthorized(TOKEN_INVALID_MESSAGE) from exc

    try:
        auth_id = UUID(str(payload[CLAIM_SUB]))
    except ValueError as exc:
        raise unauthorized(TOKEN_INVALID_MESSAGE) from exc

    metadata = payload.get(CLAIM_USER_METADATA) or {}
    if not isinstance(metadata, dict):
        metadata = {}

    return AuthIdentity(
        auth_id=auth_id,
        email=payload.get(CLAIM_EMAIL),
        role=UserRole.parse(metadata.get("role")),
        user_metadata=metadata,
        exp=payload.get(CLAIM_EXP),
    )


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def _bind_identity(request: Request, identity: AuthIdentity) -> None:
    request.state.identity = identity
    set_user_context(str(identity.auth_id))


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def require_user() -> Callable:
    """Dependency: a verified bearer token is mandatory."""

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> AuthIdentity:
        token = _extract_bearer_token(authorization)
        if not token:
            raise unauthorized(TOKEN_REQUIRED_MESSAGE)

        identity = verify_access_token(token)
        _bind_identity(request, identity)
        return identity

    return dependency


def optional_user() -> Callable:
    """Dependency: identity when a valid token is present, None otherwise."""

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> AuthIdentity | None:
        token = _extract_bearer_token(authorization)
        if not token:
            return None

        try:
            identity = verify_access_token(token)
        except AppHTTPException as exc:
            logger.info(
                "Ignoring unverifiable token on optional auth route",
                extra={"reason": exc.detail},
            )
            return None

        _bind_identity(request, identity)
        return identity

    return dependency


def require_role(role: UserRole | str) -> Callable:
    """Dependency: authenticated caller with ``role`` (admins always pass)."""
    required_role = UserRole(role)
    authenticate = require_user()

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> AuthIdentity:
        identity = await authenticate(request, authorization)
        if identity.role != required_role and not identity.is_admin:
            logger.warning(
                "Role check failed",
                extra={"required_role": required_role.value, "role": identity.role.value},
            )
            raise forbidden(
                f"Role '{required_role.value}' is required to access this resource"
            )
        return identity

    return dependency
