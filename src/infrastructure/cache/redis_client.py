# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis backend for cached performance aggregates.

Values are stored as JSON under ``<key_prefix>:<key>``. The client exposes
only what the performance cache needs: JSON get/set with expiry, pattern
deletion for term invalidation, and a ping for the health endpoint.

The process-wide client is optional. When Redis is unreachable at startup
the application runs without it and get_redis_optional() returns None.

Example:
    await init_redis(settings)
    client = get_redis_optional()
    await client.set("perf:flags:all:t1", rows, expire_seconds=60)
    await client.delete_pattern("perf:*:t1")
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from redis.asyncio import Redis
from redis.exceptions import RedisError as RedisLibraryError

if TYPE_CHECKING:
    from src.core.config.settings import RedisSettings, Settings

logger = logging.getLogger(__name__)

_client: "RedisClient | None" = None


class RedisError(Exception):
    """A Redis command failed or the client is not connected."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(f"{message}: {cause}" if cause else message)
        self.cause = cause


class RedisClient:
    """Namespaced JSON store on one redis.asyncio connection pool."""

    def __init__(self, settings: "RedisSettings") -> None:
        self._url = settings.url
        self._max_connections = settings.max_connections
        self._prefix = settings.key_prefix
        self._redis: Redis | None = None

    async def connect(self) -> None:
        """Open the pool and verify the server answers.

        Raises:
            RedisError: If the server cannot be reached.
        """
        redis = Redis.from_url(
            self._url,
            max_connections=self._max_connections,
            decode_responses=True,
        )
        try:
            await redis.ping()
        except RedisLibraryError as e:
            await redis.aclose()
            raise RedisError("Redis unreachable", e) from e
        self._redis = redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    def namespaced(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _conn(self) -> Redis:
        if self._redis is None:
            raise RedisError("Redis client is not connected")
        return self._redis

    async def get(self, key: str) -> Any:
        """Return the decoded JSON value, or None when the key is absent."""
        try:
            raw = await self._conn().get(self.namespaced(key))
        except RedisLibraryError as e:
            raise RedisError(f"GET {key} failed", e) from e
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any, expire_seconds: int | None = None) -> None:
        payload = json.dumps(value, default=str)
        try:
            await self._conn().set(self.namespaced(key), payload, ex=expire_seconds)
        except RedisLibraryError as e:
            raise RedisError(f"SET {key} failed", e) from e

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; returns the count removed."""
        conn = self._conn()
        keys: list[str] = []
        try:
            async for key in conn.scan_iter(match=self.namespaced(pattern), count=200):
                keys.append(key)
            if not keys:
                return 0
            return await conn.delete(*keys)
        except RedisLibraryError as e:
            raise RedisError(f"DELETE {pattern} failed", e) from e

    async def ping(self) -> bool:
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.ping())
        except RedisLibraryError:
            return False


async def init_redis(settings: "Settings") -> None:
    """Connect the process-wide client.

    Raises:
        RedisError: If the server cannot be reached.
    """
    global _client

    client = RedisClient(settings.redis)
    await client.connect()
    _client = client
    logger.info("Redis cache connected with key prefix %s", settings.redis.key_prefix)


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.close()
        _client = None


def get_redis_optional() -> RedisClient | None:
    """The process-wide client, or None when caching is unavailable."""
    return _client
