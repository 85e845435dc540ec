# src/officine_api/infrastructure/database/session.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Async SQLAlchemy engine and per-fetch sessions.

The engine and its ``async_sessionmaker`` are process globals created by the
bootstrap and disposed on shutdown. Analytics reads go through
:func:`get_db_session`, which hands out one short-lived ``AsyncSession`` per
period fetch: the current and comparison queries of a request run
concurrently and each needs its own connection.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from sqlalchemy.exc import IllegalStateChangeError, InvalidRequestError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from officine_api.config.settings import Settings, get_settings
from officine_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def init_engine_and_sessionmaker(settings: Settings) -> None:
    """Create the engine and sessionmaker once; later calls are no-ops.

    Raises:
        ValueError: If ``DATABASE_URL`` is empty.
    """
    global _engine, _sessionmaker
    if not settings.database_url:
        raise ValueError("DATABASE_URL must be configured")
    if _engine is not None:
        return

    # Read-only workload: sessions never commit, so nothing needs expiring.
    _engine = create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
    )
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info("db.engine_ready", extra={"pool_size": settings.db_pool_size})


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is None:
        return
    engine, _engine, _sessionmaker = _engine, None, None
    await engine.dispose()


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return the sessionmaker, raising ``RuntimeError`` before initialization."""
    if _sessionmaker is None:
        raise RuntimeError("database not initialized; call init_engine_and_sessionmaker()")
    return _sessionmaker


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Open a session for a single aggregation query.

    Initializes the engine lazily when no lifespan ran (scripts, some test
    transports). Any open transaction is rolled back on exit and the
    connection returns to the pool.
    """
    if _sessionmaker is None:
        init_engine_and_sessionmaker(get_settings())

    session = get_sessionmaker()()
    try:
        yield session
    finally:
        with suppress(InvalidRequestError):
            if session.in_transaction():
                await session.rollback()
        with suppress(InvalidRequestError, IllegalStateChangeError):
            await session.close()
