# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the namespaced Redis client."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.config.settings import RedisSettings
from src.infrastructure.cache.redis_client import RedisClient, RedisError


async def _aiter(items):
    for item in items:
        yield item


@pytest.fixture
def conn() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(conn: AsyncMock) -> RedisClient:
    redis_client = RedisClient(RedisSettings(key_prefix="sb"))
    redis_client._redis = conn
    return redis_client


class TestRedisClient:
    @pytest.mark.asyncio
    async def test_set_stores_json_under_prefix(self, client: RedisClient, conn: AsyncMock) -> None:
        await client.set("perf:flags:all:t1", [{"score": 72.5}], expire_seconds=60)

        conn.set.assert_awaited_once_with(
            "sb:perf:flags:all:t1", json.dumps([{"score": 72.5}]), ex=60
        )

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, client: RedisClient, conn: AsyncMock) -> None:
        conn.get.return_value = '{"class_count": 3}'

        assert await client.get("perf:dashboard:all:t1") == {"class_count": 3}
        conn.get.assert_awaited_once_with("sb:perf:dashboard:all:t1")

    @pytest.mark.asyncio
    async def test_get_missing_key(self, client: RedisClient, conn: AsyncMock) -> None:
        conn.get.return_value = None

        assert await client.get("perf:x:t1") is None

    @pytest.mark.asyncio
    async def test_delete_pattern(self, client: RedisClient, conn: AsyncMock) -> None:
        conn.scan_iter = MagicMock(return_value=_aiter(["sb:perf:a:t1", "sb:perf:b:t1"]))
        conn.delete.return_value = 2

        assert await client.delete_pattern("perf:*:t1") == 2
        conn.scan_iter.assert_called_once_with(match="sb:perf:*:t1", count=200)
        conn.delete.assert_awaited_once_with("sb:perf:a:t1", "sb:perf:b:t1")

    @pytest.mark.asyncio
    async def test_delete_pattern_without_matches(self, client: RedisClient, conn: AsyncMock) -> None:
        conn.scan_iter = MagicMock(return_value=_aiter([]))

        assert await client.delete_pattern("perf:*:t9") == 0
        conn.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_library_errors_are_wrapped(self, client: RedisClient, conn: AsyncMock) -> None:
        conn.get.side_effect = RedisConnectionError("refused")

        with pytest.raises(RedisError):
            await client.get("perf:x:t1")

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        client = RedisClient(RedisSettings())

        assert client.connected is False
        assert await client.ping() is False
        with pytest.raises(RedisError):
            await client.set("k", 1)
