# tests/unit/infrastructure/test_logger.py
from __future__ import annotations

import json
import logging
from decimal import Decimal

import pytest

from officine_api.infrastructure.logging.logger import (
    _JsonFormatter,  # internal but importable
    configure_root_logging,
    set_request_context,
)


def _render(msg: str, **extra) -> dict:
    logger = logging.getLogger("test.logger")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn="test_logger",
        lno=1,
        msg=msg,
        args=(),
        exc_info=None,
        extra=extra or None,
    )
    return json.loads(_JsonFormatter().format(record))


def test_configure_root_logging_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    root = logging.getLogger()
    saved, saved_level = list(root.handlers), root.level
    root.handlers.clear()
    try:
        configure_root_logging()
        configure_root_logging()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, _JsonFormatter)
    finally:
        root.handlers[:] = saved
        root.setLevel(saved_level)


def test_extras_become_top_level_keys() -> None:
    payload = _render(
        "analytics.ranking.success",
        subject="laboratories",
        total=Decimal("3"),
        extra={"nested": True},
    )

    assert payload["message"] == "analytics.ranking.success"
    assert payload["level"] == "INFO"
    assert payload["subject"] == "laboratories"
    assert payload["total"] == "3"
    assert payload["nested"] is True
    assert "ts" in payload


def test_request_id_comes_from_context() -> None:
    set_request_context(request_id="req-42")

    assert _render("hello")["request_id"] == "req-42"
