# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account passwords: bcrypt hashes and generated temporary passwords."""

import logging
import secrets
import string

import bcrypt

logger = logging.getLogger(__name__)

# No 0/O or 1/l/I, so printed passwords can be read back
TEMP_PASSWORD_ALPHABET = "".join(
    c for c in string.ascii_letters + string.digits if c not in "0O1lI"
)
MIN_TEMP_PASSWORD_LENGTH = 8


class PasswordHasher:
    """bcrypt with a configurable cost; tests use a low round count."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))
        return digest.decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password; empty input or a corrupt stored hash is a mismatch."""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
        except ValueError:
            logger.warning("Stored password hash is not a bcrypt hash")
            return False


def generate_temporary_password(length: int = 10) -> str:
    """Random password given to a teacher account created by import.

    Raises:
        ValueError: If length is below MIN_TEMP_PASSWORD_LENGTH.
    """
    if length < MIN_TEMP_PASSWORD_LENGTH:
        raise ValueError(
            f"Temporary passwords must be at least {MIN_TEMP_PASSWORD_LENGTH} characters"
        )
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))
