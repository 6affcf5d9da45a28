# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Signed session tokens.

Sign-in returns an access token (short lived, carries the role used by the
role guards) and a refresh token (long lived, carries only identity).

Example:
    >>> manager = JWTManager(get_settings().jwt)
    >>> pair = manager.create_token_pair(user_id="acct-1", role="teacher")
    >>> manager.decode_token(pair.access_token, expected_type="access").role
    'teacher'
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

Role = Literal["admin", "teacher"]
TokenType = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """Claims of a decoded token. ``sub`` is the account id."""

    sub: str
    type: TokenType
    role: Role = "teacher"
    email: str | None = None
    full_name: str | None = None
    exp: int
    iat: int
    jti: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class JWTError(Exception):
    """A token could not be accepted."""


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    pass


class JWTManager:
    """Issues and checks HMAC-signed tokens with python-jose."""

    def __init__(self, settings: JWTSettings) -> None:
        self._key = settings.secret_key.get_secret_value()
        self._algorithm = settings.algorithm
        self._access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self._refresh_ttl = timedelta(days=settings.refresh_token_expire_days)

    def _sign(self, token_type: TokenType, user_id: str, ttl: timedelta, **extra: Any) -> str:
        issued = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "type": token_type,
            "iat": int(issued.timestamp()),
            "exp": int((issued + ttl).timestamp()),
            "jti": secrets.token_urlsafe(16),
            **extra,
        }
        return jwt.encode(claims, self._key, algorithm=self._algorithm)

    def create_token_pair(
        self,
        user_id: str,
        role: Role,
        email: str | None = None,
        full_name: str | None = None,
    ) -> TokenPair:
        """Issue the token pair returned by sign-in."""
        user_id = str(user_id)
        return TokenPair(
            access_token=self._sign(
                "access",
                user_id,
                self._access_ttl,
                role=role,
                email=email,
                full_name=full_name,
            ),
            refresh_token=self._sign("refresh", user_id, self._refresh_ttl, role=role),
            expires_in=int(self._access_ttl.total_seconds()),
            refresh_expires_in=int(self._refresh_ttl.total_seconds()),
        )

    def decode_token(self, token: str, expected_type: TokenType | None = None) -> TokenPayload:
        """Verify signature and expiry, then parse the claims.

        Raises:
            TokenExpiredError: The token is past its exp claim.
            InvalidTokenError: Bad signature, malformed claims or wrong type.
        """
        try:
            claims = jwt.decode(token, self._key, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.info("Rejected token: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {e}") from e

        token_type = claims.get("type")
        if expected_type is not None and token_type != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {token_type}")

        try:
            return TokenPayload.model_validate(claims)
        except ValidationError as e:
            raise InvalidTokenError(f"Invalid token claims: {e}") from e
