# src/officine_api/dependencies/core/bootstrap.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Startup and shutdown of the shared DB engine and Redis client.

:func:`bootstrap` is entered by the FastAPI lifespan. Resources are released
in reverse order of creation; a failing release is logged and does not stop
the others from running.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI

from officine_api.config.settings import Settings, get_settings
from officine_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


@dataclass(frozen=True, slots=True)
class BootstrapState:
    settings: Settings


def _guarded(event: str, close: Callable[[], Awaitable[None]]) -> Callable[[], Awaitable[None]]:
    async def _run() -> None:
        try:
            await close()
        except Exception:
            logger.exception(event)

    return _run


@asynccontextmanager
async def bootstrap(app: FastAPI) -> AsyncIterator[BootstrapState]:
    """Open infrastructure for the lifetime of ``app``.

    Yields:
        BootstrapState: The settings the resources were built from.
    """
    settings = get_settings()
    logger.info(
        "bootstrap.start",
        extra={
            "environment": settings.environment.value,
            "cache_enabled": settings.analytics_cache_enabled,
        },
    )

    # Resolved at call time so tests can monkeypatch the module functions.
    from officine_api.infrastructure.caching import redis_client
    from officine_api.infrastructure.database import session as db_session

    async with AsyncExitStack() as stack:
        db_session.init_engine_and_sessionmaker(settings)
        stack.push_async_callback(
            _guarded("bootstrap.db_dispose_failed", db_session.dispose_engine)
        )
        if settings.analytics_cache_enabled:
            redis_client.init_redis(settings)
        stack.push_async_callback(
            _guarded("bootstrap.redis_close_failed", redis_client.close_redis)
        )

        yield BootstrapState(settings=settings)

    logger.info("bootstrap.stop")
