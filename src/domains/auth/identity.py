# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity provider boundary.

Everything outside this module talks to accounts through IdentityProvider:
create, delete, sign in, look up. LocalIdentityProvider keeps accounts in
the ``user_accounts`` table with bcrypt hashes and issues JWT sessions.

Example:
    >>> provider = LocalIdentityProvider(db, JWTManager(settings.jwt))
    >>> account = await provider.create_account(
    ...     "t@school.org", "s3cret-pass", {"full_name": "T Teacher", "role": "teacher"}
    ... )
    >>> tokens = await provider.sign_in("t@school.org", "s3cret-pass")
"""

import logging
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.jwt import JWTManager, TokenPair
from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.models.account import UserAccount
from src.models.auth import AccountInfo
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ROLES = ("admin", "teacher")


class IdentityError(Exception):
    """Base exception for identity provider errors."""

    pass


class AccountExistsError(IdentityError):
    """Raised when an account with the email already exists."""

    pass


class InvalidCredentialsError(IdentityError):
    """Raised when the email/password pair does not match."""

    pass


class AccountInactiveError(IdentityError):
    """Raised when signing in to a deactivated account."""

    pass


class IdentityProvider(Protocol):
    async def create_account(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AccountInfo: ...

    async def delete_account(self, account_id: str) -> None: ...

    async def sign_in(self, email: str, password: str) -> TokenPair: ...

    async def get_user(self, account_id: str) -> AccountInfo | None: ...


class LocalIdentityProvider:
    """Accounts stored in the application database.

    Every write commits immediately, so a caller can compensate with
    delete_account after a later step fails.

    Attributes:
        _db: Async database session.
        _jwt_manager: Token issuer.
        _hasher: Password hasher.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._db = db
        self._jwt_manager = jwt_manager
        self._hasher = hasher or PasswordHasher()

    async def create_account(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> AccountInfo:
        """Create a login account.

        Args:
            email: Login email, stored lowercase.
            password: Initial password.
            metadata: ``full_name`` and ``role`` (admin or teacher).

        Raises:
            AccountExistsError: If the email is taken.
            IdentityError: If the role is unknown.
        """
        normalized = email.strip().lower()
        role = metadata.get("role", "teacher")
        if role not in ROLES:
            raise IdentityError(f"Unknown role: {role}")

        existing = await self._db.execute(
            select(UserAccount.id).where(UserAccount.email == normalized)
        )
        if existing.scalar_one_or_none() is not None:
            raise AccountExistsError(f"A user with email {normalized} already exists")

        account = UserAccount(
            email=normalized,
            password_hash=self._hasher.hash(password),
            role=role,
            full_name=metadata.get("full_name"),
        )
        self._db.add(account)
        try:
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            raise AccountExistsError(f"A user with email {normalized} already exists") from e
        await self._db.refresh(account)

        logger.info("Created %s account: %s", role, account.id)
        return self._to_info(account)

    async def delete_account(self, account_id: str) -> None:
        await self._db.execute(delete(UserAccount).where(UserAccount.id == str(account_id)))
        await self._db.commit()
        logger.info("Deleted account: %s", account_id)

    async def authenticate(self, email: str, password: str) -> AccountInfo:
        """Check credentials and record the login.

        Raises:
            InvalidCredentialsError: If the pair does not match.
            AccountInactiveError: If the account is deactivated.
        """
        result = await self._db.execute(
            select(UserAccount).where(UserAccount.email == email.strip().lower())
        )
        account = result.scalar_one_or_none()

        if account is None or not self._hasher.verify(password, account.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        if not account.is_active:
            raise AccountInactiveError("Account is inactive")

        account.last_login_at = utc_now()
        await self._db.commit()
        return self._to_info(account)

    def issue_tokens(self, account: AccountInfo) -> TokenPair:
        return self._jwt_manager.create_token_pair(
            user_id=account.id,
            role=account.role,
            email=account.email,
            full_name=account.full_name,
        )

    async def sign_in(self, email: str, password: str) -> TokenPair:
        account = await self.authenticate(email, password)
        return self.issue_tokens(account)

    async def get_user(self, account_id: str) -> AccountInfo | None:
        result = await self._db.execute(
            select(UserAccount).where(UserAccount.id == str(account_id))
        )
        account = result.scalar_one_or_none()
        return self._to_info(account) if account else None

    def _to_info(self, account: UserAccount) -> AccountInfo:
        return AccountInfo(
            id=str(account.id),
            email=account.email,
            full_name=account.full_name,
            role=account.role,
            is_active=account.is_active,
        )
