# src/officine_api/application/interfaces/cache_port.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Result cache port used by the ranking use cases.

Values are JSON objects (mappings); keys are opaque strings built by the
caller. A TTL of zero or less means the value must not be stored.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

JsonObject = Mapping[str, Any]


class CachePort(Protocol):
    async def get_json(self, key: str) -> JsonObject | None:
        """Return the stored object, or ``None`` on a miss or after expiry."""

    async def set_json(self, key: str, value: JsonObject, *, ttl: int) -> None:
        """Store ``value`` for ``ttl`` seconds."""


async def read_through_json(
    cache: CachePort,
    key: str,
    *,
    ttl: int,
    loader: Callable[[], Awaitable[JsonObject | None]],
) -> tuple[JsonObject | None, bool]:
    """Serve ``key`` from ``cache`` or compute it with ``loader``.

    A computed ``None`` is returned but never stored.

    Returns:
        ``(value, hit)``; ``hit`` is ``True`` when the value came from the cache.
    """
    cached = await cache.get_json(key)
    if cached is not None:
        return cached, True

    value = await loader()
    if value is not None:
        await cache.set_json(key, value, ttl=ttl)
    return value, False
