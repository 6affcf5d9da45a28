# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Short-lived cache of aggregated performance reads.

Entries are keyed by (scope, term). Grades change rarely compared to how
often dashboards are read, so a TTL of about a minute is enough, and
writes that touch a term drop every entry of that term.

A cache failure never fails a read: it is logged and the read goes to the
database.
"""

import logging
from typing import Any

from src.infrastructure.cache.redis_client import RedisClient, RedisError

logger = logging.getLogger(__name__)


class PerformanceCache:
    """(scope, term) keyed JSON cache over Redis.

    Attributes:
        _redis: Redis client, or None when caching is unavailable.
        _ttl: Entry lifetime in seconds.
    """

    PREFIX = "perf"

    def __init__(self, redis: RedisClient | None, ttl_seconds: int = 60) -> None:
        self._redis = redis
        self._ttl = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    def key(self, scope: str, term_id: str) -> str:
        return f"{self.PREFIX}:{scope}:{term_id}"

    async def get(self, scope: str, term_id: str) -> Any:
        if self._redis is None:
            return None
        try:
            return await self._redis.get(self.key(scope, term_id))
        except RedisError as e:
            logger.warning("Performance cache read failed for %s: %s", scope, str(e))
            return None

    async def set(self, scope: str, term_id: str, value: Any) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(self.key(scope, term_id), value, expire_seconds=self._ttl)
        except RedisError as e:
            logger.warning("Performance cache write failed for %s: %s", scope, str(e))

    async def invalidate_term(self, term_id: str) -> None:
        """Drop every cached aggregate of one term."""
        await self._drop(f"{self.PREFIX}:*:{term_id}", f"term {term_id}")

    async def invalidate_all(self) -> None:
        """Drop every cached aggregate. Roster changes span all terms."""
        await self._drop(f"{self.PREFIX}:*", "all terms")

    async def _drop(self, pattern: str, label: str) -> None:
        if self._redis is None:
            return
        try:
            deleted = await self._redis.delete_pattern(pattern)
            logger.debug("Invalidated %d cached aggregates for %s", deleted, label)
        except RedisError as e:
            logger.warning("Performance cache invalidation failed for %s: %s", label, str(e))
