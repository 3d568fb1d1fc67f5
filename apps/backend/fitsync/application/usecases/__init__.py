"""
Use cases grouped by subdomain.

Only `users` exists today; see application/usecases/users.
"""

from .users import (
    CreateUserUseCase,
    GetUserUseCase,
    ListUsersUseCase,
    LoginUseCase,
    SignupUseCase,
)

__all__ = [
    "SignupUseCase",
    "LoginUseCase",
    "ListUsersUseCase",
    "GetUserUseCase",
    "CreateUserUseCase",
]
