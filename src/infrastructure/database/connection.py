# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async PostgreSQL engine and request sessions.

One engine per process, created at startup from DatabaseSettings. Request
handlers receive a session through get_session(), which commits when the
handler returns and rolls back when it raises. Bulk imports commit
per level or per row themselves; the closing commit then has nothing left
to flush.
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import DatabaseSettings, Settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class DatabaseError(Exception):
    """The database is unavailable or a statement failed outside a service."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(f"{message}: {cause}" if cause else message)
        self.cause = cause


def build_engine(db: "DatabaseSettings") -> AsyncEngine:
    """Create the asyncpg engine described by DB_* settings."""
    return create_async_engine(
        db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_pre_ping=True,
        echo=db.echo,
    )


async def init_database(settings: "Settings") -> None:
    """Create the process-wide engine and session factory.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    global _engine, _session_factory

    try:
        _engine = build_engine(settings.db)
    except SQLAlchemyError as e:
        raise DatabaseError("Could not create database engine", e) from e

    _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    logger.info("Database engine ready for %s/%s", settings.db.host, settings.db.database)


async def close_database() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session bound to the request's unit of work.

    Raises:
        DatabaseError: If the database was never initialized, or a
            statement failed without a service translating the error.
    """
    if _session_factory is None:
        raise DatabaseError("Database not initialized")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """True when a trivial query succeeds."""
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database ping failed: %s", str(e))
        return False
    return True
