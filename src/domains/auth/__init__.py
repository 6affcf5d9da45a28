# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain: identity provider, JWT sessions, password hashing.

Exports:
    IdentityProvider: Account boundary used by the rest of the system.
    LocalIdentityProvider: Database-backed provider.
    JWTManager: JWT token creation and validation.
    PasswordHasher: bcrypt hashing.
"""

from src.domains.auth.identity import (
    AccountExistsError,
    AccountInactiveError,
    IdentityError,
    IdentityProvider,
    InvalidCredentialsError,
    LocalIdentityProvider,
)
from src.domains.auth.jwt import JWTManager, TokenPair, TokenPayload
from src.domains.auth.password import PasswordHasher, generate_temporary_password

__all__ = [
    "IdentityProvider",
    "LocalIdentityProvider",
    "IdentityError",
    "AccountExistsError",
    "AccountInactiveError",
    "InvalidCredentialsError",
    "JWTManager",
    "TokenPair",
    "TokenPayload",
    "PasswordHasher",
    "generate_temporary_password",
]
