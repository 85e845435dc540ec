# tests/unit/infrastructure/test_db_session.py
from __future__ import annotations

import pytest

import officine_api.infrastructure.database.session as db_session
from officine_api.config.settings import Settings


def _settings(url: str) -> Settings:
    return Settings(DATABASE_URL=url, REDIS_URL="redis://localhost:6379/0")


@pytest.mark.asyncio
async def test_engine_lifecycle() -> None:
    await db_session.dispose_engine()
    with pytest.raises(RuntimeError):
        db_session.get_sessionmaker()

    db_session.init_engine_and_sessionmaker(_settings("postgresql+asyncpg://u:p@localhost/db"))
    maker = db_session.get_sessionmaker()
    db_session.init_engine_and_sessionmaker(_settings("postgresql+asyncpg://u:p@other/db"))

    assert db_session.get_sessionmaker() is maker

    await db_session.dispose_engine()
    with pytest.raises(RuntimeError):
        db_session.get_sessionmaker()


def test_empty_url_is_rejected() -> None:
    with pytest.raises(ValueError):
        db_session.init_engine_and_sessionmaker(_settings(""))
