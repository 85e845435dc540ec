# src/officine_api/infrastructure/caching/redis_client.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Process-wide asyncio Redis client for the analytics result cache.

The bootstrap calls :func:`init_redis` when caching is enabled and
:func:`close_redis` on shutdown. Tests replace ``_client`` with a fakeredis
instance.
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from officine_api.config.settings import Settings, get_settings
from officine_api.infrastructure.logging.logger import get_json_logger

__all__ = ["close_redis", "get_redis_client", "init_redis"]

logger = get_json_logger(__name__)

_client: Any | None = None


def init_redis(settings: Settings) -> None:
    """Create the shared client once. No connection is opened until first use."""
    global _client
    if _client is not None:
        return
    _client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=settings.redis_health_check_interval_s,
        socket_timeout=settings.redis_socket_timeout_s,
        socket_connect_timeout=settings.redis_socket_connect_timeout_s,
    )
    logger.info("redis.client_ready")


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is None:
        return
    try:
        await client.aclose()
    except RedisConnectionError:
        logger.warning("redis.close_failed")


def get_redis_client() -> Any:
    """Return the shared client, creating it from settings if needed."""
    if _client is None:
        init_redis(get_settings())
    return _client
