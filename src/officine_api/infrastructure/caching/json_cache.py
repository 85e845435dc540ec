# src/officine_api/infrastructure/caching/json_cache.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""JSON result caches: Redis for deployments, in-process for tests.

Redis keys are ``<namespace>:<key>`` where the namespace carries service,
vertical and schema version (``officine:analytics:v1``). Bumping the version
orphans every entry written with an older DTO shape. Values are UTF-8 JSON,
never pickles. Each Redis operation is timed and counted in Prometheus.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Final

from officine_api.application.interfaces.cache_port import CachePort, JsonObject
from officine_api.infrastructure.caching.redis_client import get_redis_client
from officine_api.infrastructure.observability.metrics import (
    get_cache_operation_duration_seconds,
    get_cache_operations_total,
)

__all__ = ["DEFAULT_NAMESPACE", "InMemoryJsonCache", "RedisJsonCache"]

DEFAULT_NAMESPACE: Final[str] = "officine:analytics:v1"


class RedisJsonCache(CachePort):
    """:class:`CachePort` over the shared asyncio Redis client.

    Args:
        namespace: Prefix prepended to every key.
    """

    def __init__(self, *, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._namespace = namespace

    @staticmethod
    def make_key(*segments: str) -> str:
        """Join non-empty segments with ``:``; the namespace is added on access."""
        return ":".join(s.strip(":") for s in map(str, segments) if s)

    def _qualify(self, key: str) -> str:
        return f"{self._namespace}:{key.lstrip(':')}"

    def _record(self, operation: str, hit: str, started: float) -> None:
        labels = {"operation": operation, "namespace": self._namespace, "hit": hit}
        get_cache_operation_duration_seconds().labels(**labels).observe(
            time.perf_counter() - started
        )
        get_cache_operations_total().labels(**labels).inc()

    async def get_json(self, key: str) -> JsonObject | None:
        started = time.perf_counter()
        raw = await get_redis_client().get(self._qualify(key))
        self._record("get_json", "false" if raw is None else "true", started)
        return None if raw is None else json.loads(raw)

    async def set_json(self, key: str, value: JsonObject, *, ttl: int) -> None:
        if ttl <= 0:
            return
        started = time.perf_counter()
        await get_redis_client().set(self._qualify(key), json.dumps(value), ex=ttl)
        self._record("set_json", "n/a", started)


class InMemoryJsonCache(CachePort):
    """Dict-backed :class:`CachePort` with TTL; ``clock`` is injectable for tests."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[float, str]] = {}
        self._clock = clock

    async def get_json(self, key: str) -> JsonObject | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: JsonObject, *, ttl: int) -> None:
        if ttl > 0:
            self._entries[key] = (self._clock() + ttl, json.dumps(value))
