# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request-scoped dependencies shared by the v1 routers.

Role guards return the CurrentUser so handlers can pass its scope_id to
services. Admins pass every guard.
"""

import logging
from typing import Annotated, AsyncGenerator, Callable

from fastapi import Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.auth.identity import LocalIdentityProvider
from src.domains.auth.jwt import JWTManager
from src.domains.performance.cache import PerformanceCache
from src.domains.term.service import NoTermError, TermNotFoundError, TermService
from src.infrastructure.cache import get_redis_optional
from src.infrastructure.database.connection import get_session

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session() as session:
        yield session


def require_auth(request: Request) -> CurrentUser:
    """The signed-in account, or 401."""
    user = get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _role_guard(*roles: str, detail: str) -> Callable[[Request], CurrentUser]:
    def guard(request: Request) -> CurrentUser:
        user = require_auth(request)
        if user.role not in roles:
            logger.info("Denied %s %s to role %s", request.method, request.url.path, user.role)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return guard


require_admin = _role_guard("admin", detail="Admin access required")
require_teacher_or_admin = _role_guard("admin", "teacher", detail="Teacher or admin access required")


async def term_or_404(db: AsyncSession, term_id: str | None) -> str:
    """Resolve a term: the given id, else the active term, else the latest ended one.

    Raises:
        HTTPException: 404 if the id is unknown or no term exists yet.
    """
    try:
        return await TermService(db).resolve_term(term_id)
    except (TermNotFoundError, NoTermError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


async def resolve_term(
    term_id: Annotated[
        str | None, Query(description="Term to report on; defaults to the active term")
    ] = None,
    db: AsyncSession = Depends(get_db),
) -> str:
    """term_or_404 for a ``?term_id=`` query parameter."""
    return await term_or_404(db, term_id)


def get_jwt_manager() -> JWTManager:
    return JWTManager(get_settings().jwt)


def get_identity_provider(
    db: AsyncSession = Depends(get_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> LocalIdentityProvider:
    return LocalIdentityProvider(db=db, jwt_manager=jwt_manager)


def get_performance_cache() -> PerformanceCache:
    """Aggregate cache; a no-op when disabled or Redis is down."""
    performance = get_settings().performance
    redis = get_redis_optional() if performance.cache_enabled else None
    return PerformanceCache(redis, ttl_seconds=performance.cache_ttl_seconds)
