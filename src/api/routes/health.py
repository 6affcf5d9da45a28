# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Liveness and dependency health.

The database decides whether the API is healthy. The cache only degrades
it, since every cached read falls back to the database.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Literal

from fastapi import APIRouter
from pydantic import BaseModel

from src import __version__
from src.core.config import get_settings
from src.infrastructure.cache import get_redis_optional
from src.infrastructure.database.connection import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

_started_at = time.monotonic()

CheckStatus = Literal["healthy", "unhealthy", "disabled"]


class DependencyCheck(BaseModel):
    status: CheckStatus
    latency_ms: float | None = None


class HealthReport(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    environment: str
    uptime_seconds: int
    checked_at: datetime
    database: DependencyCheck
    cache: DependencyCheck


async def _timed(check: Callable[[], Awaitable[bool]]) -> DependencyCheck:
    started = time.perf_counter()
    if not await check():
        return DependencyCheck(status="unhealthy")
    return DependencyCheck(status="healthy", latency_ms=round((time.perf_counter() - started) * 1000, 2))


async def check_cache() -> DependencyCheck:
    client = get_redis_optional()
    if client is None:
        return DependencyCheck(status="disabled")
    return await _timed(client.ping)


@router.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {"service": "schoolboard", "version": __version__}


@router.get("/health", response_model=HealthReport)
async def health_check() -> HealthReport:
    database = await _timed(check_database_connection)
    cache = await check_cache()

    if database.status != "healthy":
        overall = "unhealthy"
        logger.error("Health check: database unreachable")
    elif cache.status == "unhealthy":
        overall = "degraded"
        logger.warning("Health check: cache unreachable")
    else:
        overall = "healthy"

    return HealthReport(
        status=overall,
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.monotonic() - _started_at),
        checked_at=datetime.now(timezone.utc),
        database=database,
        cache=cache,
    )
