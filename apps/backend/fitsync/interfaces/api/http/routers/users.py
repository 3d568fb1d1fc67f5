"""
===============================================================================
TARJETA CRC — fitsync/interfaces/api/http/routers/users.py
===============================================================================

Class/Module:
    Users Router (mounted under /api/users)

Responsibilities:
    - Expose signup/login, user listing, lookup, admin creation and profile.
    - Convert HTTP requests -> use case inputs.
    - Translate UserError -> error envelope.
    - Enforce auth, roles and rate-limit policies at the edge.

Collaborators:
    - fitsync.application.usecases.users
    - fitsync.identity (require_user, optional_user, require_role)
    - fitsync.crosscutting.rate_limit (rate_limit policies)
    - fitsync.container (DI factories)
    - schemas.users (pydantic DTOs)

Notes:
    - The identity dependency is declared before the rate-limit dependency
      so per-user policies key on the authenticated caller.
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fitsync.application.usecases.users import (
    CreateUserInput,
    CreateUserUseCase,
    GetUserUseCase,
    ListUsersUseCase,
    LoginInput,
    LoginUseCase,
    SignupInput,
    SignupUseCase,
)
from fitsync.container import (
    get_create_user_use_case,
    get_get_user_use_case,
    get_list_users_use_case,
    get_login_use_case,
    get_signup_use_case,
)
from fitsync.crosscutting.error_responses import (
    OPENAPI_ERROR_RESPONSES,
    internal_error,
)
from fitsync.crosscutting.rate_limit import (
    POLICY_AUTH,
    POLICY_STANDARD,
    POLICY_STRICT,
    POLICY_USER,
    rate_limit,
)
from fitsync.domain.entities import UserRole
from fitsync.domain.value_objects import IdentifierKind, UserIdentifier
from fitsync.identity import AuthIdentity, optional_user, require_role, require_user

from ..error_mapping import raise_user_error
from ..schemas.users import (
    CreateUserReq,
    LoginReq,
    LoginRes,
    MergedUserRes,
    MessageRes,
    ProfileRes,
    SignupReq,
    SignupRes,
    to_merged_user_res,
    to_session_res,
)

router = APIRouter(tags=["users"], responses=OPENAPI_ERROR_RESPONSES)

PROFILE_OK_MESSAGE = "Profile retrieved successfully"
PROFILE_ANONYMOUS_MESSAGE = (
    "No authenticated user. Please log in for full profile access."
)
ADMIN_PLACEHOLDER_MESSAGE = "Admin users endpoint - implement as needed"


# =============================================================================
# Auth flows (public)
# =============================================================================


@router.post("/signup", response_model=SignupRes, status_code=201)
def signup(
    req: SignupReq,
    _rl=Depends(rate_limit(POLICY_AUTH)),
    use_case: SignupUseCase = Depends(get_signup_use_case),
):
    """Create an auth account (+ profile row). Admin role needs the admin code."""
    result = use_case.execute(
        SignupInput(
            email=req.email,
            password=req.password,
            username=req.username,
            admin_code=req.admin_code,
        )
    )
    if result.error is not None:
        raise_user_error(result.error)
    if result.user is None:
        raise internal_error("Signup returned no user")

    return SignupRes(
        user=to_merged_user_res(result.user),
        session=to_session_res(result.session) if result.session else None,
    )


@router.post("/login", response_model=LoginRes)
def login(
    req: LoginReq,
    _rl=Depends(rate_limit(POLICY_AUTH)),
    use_case: LoginUseCase = Depends(get_login_use_case),
):
    """Exchange credentials for a session."""
    result = use_case.execute(LoginInput(email=req.email, password=req.password))
    if result.error is not None:
        raise_user_error(result.error)
    if result.user is None or result.session is None:
        raise internal_error("Login returned no session")

    return LoginRes(
        session=to_session_res(result.session),
        user=to_merged_user_res(result.user),
    )


# =============================================================================
# Users (authenticated)
# =============================================================================


@router.get("", response_model=list[MergedUserRes])
def list_users(
    _identity: AuthIdentity = Depends(require_user()),
    _rl=Depends(rate_limit(POLICY_USER)),
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
):
    """Every auth user merged with its profile row."""
    result = use_case.execute()
    if result.error is not None:
        raise_user_error(result.error)
    return [to_merged_user_res(u) for u in result.users]


@router.post("", response_model=MergedUserRes, status_code=201)
def create_user(
    req: CreateUserReq,
    identity: AuthIdentity = Depends(require_role(UserRole.ADMIN)),
    _rl=Depends(rate_limit(POLICY_STRICT)),
    use_case: CreateUserUseCase = Depends(get_create_user_use_case),
):
    """Admin-only: provision an auth account and its profile row."""
    result = use_case.execute(
        CreateUserInput(
            username=req.username,
            email=req.email,
            password=req.password,
            role=req.role,
            actor_id=identity.auth_id,
            actor_role=identity.role,
        )
    )
    if result.error is not None:
        raise_user_error(result.error)
    return to_merged_user_res(result.user)


@router.get("/id/{user_id}", response_model=MergedUserRes)
def get_user(
    user_id: UUID,
    id_type: IdentifierKind = Query(
        IdentifierKind.AUTH, description="Identifier space: auth | profile"
    ),
    _identity: AuthIdentity = Depends(require_user()),
    _rl=Depends(rate_limit(POLICY_USER)),
    use_case: GetUserUseCase = Depends(get_get_user_use_case),
):
    """One merged user by auth id (default) or profile id."""
    result = use_case.execute(UserIdentifier(kind=id_type, value=user_id))
    if result.error is not None:
        raise_user_error(result.error)
    return to_merged_user_res(result.user)


@router.get("/profile", response_model=ProfileRes | MessageRes)
def get_profile(
    identity: AuthIdentity | None = Depends(optional_user()),
    _rl=Depends(rate_limit(POLICY_STANDARD)),
    use_case: GetUserUseCase = Depends(get_get_user_use_case),
):
    """Caller's merged user when authenticated; a hint message otherwise."""
    if identity is None:
        return MessageRes(message=PROFILE_ANONYMOUS_MESSAGE)

    result = use_case.execute(UserIdentifier.auth(identity.auth_id))
    if result.error is not None:
        raise_user_error(result.error)
    return ProfileRes(user=to_merged_user_res(result.user), message=PROFILE_OK_MESSAGE)


@router.get("/admin/users", response_model=MessageRes)
def admin_users(
    _identity: AuthIdentity = Depends(require_role(UserRole.ADMIN)),
    _rl=Depends(rate_limit(POLICY_USER)),
):
    return MessageRes(message=ADMIN_PLACEHOLDER_MESSAGE)
