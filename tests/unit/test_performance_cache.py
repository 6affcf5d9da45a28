# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the performance aggregate cache."""

from unittest.mock import AsyncMock

import pytest

from src.domains.performance.cache import PerformanceCache
from src.infrastructure.cache.redis_client import RedisError


@pytest.fixture
def redis() -> AsyncMock:
    return AsyncMock()


class TestPerformanceCache:
    def test_key_layout(self, redis: AsyncMock) -> None:
        cache = PerformanceCache(redis)

        assert cache.key("dashboard:all", "term-1") == "perf:dashboard:all:term-1"

    @pytest.mark.asyncio
    async def test_disabled_cache_is_a_no_op(self) -> None:
        cache = PerformanceCache(None)

        assert cache.enabled is False
        assert await cache.get("flags:all", "term-1") is None
        await cache.set("flags:all", "term-1", [])
        await cache.invalidate_term("term-1")

    @pytest.mark.asyncio
    async def test_set_uses_ttl(self, redis: AsyncMock) -> None:
        cache = PerformanceCache(redis, ttl_seconds=30)

        await cache.set("classes:t1", "term-1", [{"class_id": "c1"}])

        redis.set.assert_awaited_once_with(
            "perf:classes:t1:term-1", [{"class_id": "c1"}], expire_seconds=30
        )

    @pytest.mark.asyncio
    async def test_invalidate_term_drops_every_scope(self, redis: AsyncMock) -> None:
        redis.delete_pattern.return_value = 3
        cache = PerformanceCache(redis)

        await cache.invalidate_term("term-1")

        redis.delete_pattern.assert_awaited_once_with("perf:*:term-1")

    @pytest.mark.asyncio
    async def test_redis_errors_never_fail_reads(self, redis: AsyncMock) -> None:
        redis.get.side_effect = RedisError("connection refused")
        redis.set.side_effect = RedisError("connection refused")
        redis.delete_pattern.side_effect = RedisError("connection refused")
        cache = PerformanceCache(redis)

        assert await cache.get("dashboard:all", "term-1") is None
        await cache.set("dashboard:all", "term-1", {"class_count": 1})
        await cache.invalidate_term("term-1")

    @pytest.mark.asyncio
    async def test_invalidate_all(self, redis: AsyncMock) -> None:
        redis.delete_pattern.return_value = 7
        cache = PerformanceCache(redis)

        await cache.invalidate_all()

        redis.delete_pattern.assert_awaited_once_with("perf:*")
