# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis cache infrastructure."""

from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis_optional,
    init_redis,
)

__all__ = [
    "RedisClient",
    "RedisError",
    "close_redis",
    "get_redis_optional",
    "init_redis",
]
