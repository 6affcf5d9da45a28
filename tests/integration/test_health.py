# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health endpoint against stubbed database and cache checks."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.routes import health


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


def cache_client(reachable: bool) -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock(return_value=reachable)
    return client


class TestHealth:
    @patch("src.api.routes.health.get_redis_optional", return_value=None)
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_healthy_without_cache(self, mock_db_check, _redis, client: TestClient) -> None:
        mock_db_check.return_value = True

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"]["status"] == "healthy"
        assert body["cache"] == {"status": "disabled", "latency_ms": None}

    @patch("src.api.routes.health.get_redis_optional")
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_cache_down_degrades(self, mock_db_check, mock_redis, client: TestClient) -> None:
        mock_db_check.return_value = True
        mock_redis.return_value = cache_client(reachable=False)

        assert client.get("/health").json()["status"] == "degraded"

    @patch("src.api.routes.health.get_redis_optional")
    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_database_down_is_unhealthy(self, mock_db_check, mock_redis, client: TestClient) -> None:
        mock_db_check.return_value = False
        mock_redis.return_value = cache_client(reachable=True)

        body = client.get("/health").json()

        assert body["status"] == "unhealthy"
        assert body["cache"]["status"] == "healthy"

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").json()["service"] == "schoolboard"
