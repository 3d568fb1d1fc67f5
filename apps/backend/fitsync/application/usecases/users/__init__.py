"""
===============================================================================
USER USE CASES PACKAGE (Public API / Exports)
===============================================================================

Single import point for the user use cases, their inputs and results.
===============================================================================
"""

from __future__ import annotations

from .create_user import CreateUserInput, CreateUserUseCase
from .get_user import GetUserUseCase
from .list_users import ListUsersUseCase
from .login import LoginInput, LoginUseCase
from .signup import SignupInput, SignupUseCase, resolve_signup_role
from .user_results import (
    AuthFlowResult,
    UserError,
    UserErrorCode,
    UserListResult,
    UserResult,
)

__all__ = [
    # Use cases
    "SignupUseCase",
    "LoginUseCase",
    "ListUsersUseCase",
    "GetUserUseCase",
    "CreateUserUseCase",
    # Inputs
    "SignupInput",
    "LoginInput",
    "CreateUserInput",
    # Results
    "AuthFlowResult",
    "UserResult",
    "UserListResult",
    "UserError",
    "UserErrorCode",
    # Helpers
    "resolve_signup_role",
]
