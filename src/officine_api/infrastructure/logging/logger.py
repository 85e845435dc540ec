# src/officine_api/infrastructure/logging/logger.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""JSON logging for the analytics service.

One line per record with the stable keys ``ts``, ``level``, ``logger`` and
``message``, the current ``request_id`` when one is bound, exception type and
message for ``logger.exception`` calls, and every ``extra={...}`` field as a
top-level key. Messages are dotted event names (``analytics.fetch.failed``);
the context travels in ``extra``. Decimals, dates and enums render via
``str`` so metric values log without loss.

Call :func:`configure_root_logging` once at startup; modules then use
:func:`get_json_logger` (or plain ``logging.getLogger``).
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Final

__all__ = [
    "configure_root_logging",
    "get_json_logger",
    "get_request_id",
    "set_request_context",
]

_request_id: ContextVar[str | None] = ContextVar("officine_request_id", default=None)

# Anything on a LogRecord outside this set was passed through ``extra``.
_STANDARD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime", "taskName", "request_id"}


def set_request_context(*, request_id: str | None = None) -> None:
    """Bind ``request_id`` to the current task's logging context."""
    if request_id is not None:
        _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def _extra_fields(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in vars(record).items():
        if key in _STANDARD_ATTRS:
            continue
        # ``extra={"extra": {...}}`` is flattened one level.
        if key == "extra" and isinstance(value, dict):
            yield from value.items()
        else:
            yield key, value


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or _request_id.get()
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exc_message"] = str(record.exc_info[1])
        payload.update(_extra_fields(record))
        return json.dumps(payload, default=str, ensure_ascii=False, separators=(",", ":"))


def configure_root_logging(level: str | int | None = None) -> None:
    """Install the JSON handler on the root logger.

    Safe to call repeatedly (module reloads, app factories in tests): the
    level is always updated, the handler is added only once.

    Args:
        level: Level name or number; defaults to ``$LOG_LEVEL`` then ``INFO``.
    """
    root = logging.getLogger()
    if level is None:
        level = (os.getenv("LOG_LEVEL") or "INFO").upper()
    root.setLevel(level)

    if not any(isinstance(h.formatter, _JsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        root.addHandler(handler)


def get_json_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; records reach the root JSON handler."""
    return logging.getLogger(name)
