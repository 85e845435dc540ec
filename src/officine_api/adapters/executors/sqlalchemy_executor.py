# src/officine_api/adapters/executors/sqlalchemy_executor.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""SQLAlchemy query executor.

Purpose:
    Run one aggregation (an :class:`AggregationSpec` plus a
    :class:`PredicateSet`) on the analytics database and map every result
    row to an :class:`EntityMetricRow`.

Layer:
    adapters/executors

Design:
    * One short-lived ``AsyncSession`` per call; concurrent period fetches
      never share a session or connection.
    * SQL is executed through ``sqlalchemy.text`` with named binds only.
    * Driver errors are wrapped in :class:`ExecutorFailure`. Neither the SQL
      text nor bound values are logged or surfaced to clients.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.exceptions.analytics import ExecutorFailure
from officine_api.domain.interfaces.query_executor import AggregationSpec, QueryExecutor
from officine_api.domain.services.predicate_builder import PredicateSet
from officine_api.infrastructure.database.session import get_db_session
from officine_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class SqlAlchemyQueryExecutor(QueryExecutor):
    """Executes aggregation specs with SQLAlchemy async sessions.

    Args:
        session_factory: Zero-arg callable returning an async context manager
            that yields an ``AsyncSession``. Defaults to the application
            sessionmaker.
    """

    def __init__(self, session_factory: SessionFactory = get_db_session) -> None:
        self._session_factory = session_factory

    async def execute(
        self, predicates: PredicateSet, spec: AggregationSpec
    ) -> list[EntityMetricRow]:
        sql, params = spec.render(predicates)
        started = time.perf_counter()
        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                records = list(result.mappings().all())
        except SQLAlchemyError as exc:
            logger.error(
                "analytics.executor.query_failed",
                extra={
                    "aggregation": spec.name,
                    "fragments": predicates.fragment_count,
                    "error_type": type(exc).__name__,
                },
            )
            raise ExecutorFailure(
                "Analytics query failed", details={"aggregation": spec.name}
            ) from exc

        # Entities without a key cannot be joined across periods.
        rows = [
            self._to_row(rec, spec) for rec in records if rec.get(spec.key_field) is not None
        ]
        logger.debug(
            "analytics.executor.query_done",
            extra={
                "aggregation": spec.name,
                "rows": len(rows),
                "fragments": predicates.fragment_count,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return rows

    @staticmethod
    def _to_row(record: Mapping[str, Any], spec: AggregationSpec) -> EntityMetricRow:
        label = record.get(spec.label_field) if spec.label_field else None
        return EntityMetricRow(
            entity_key=str(record[spec.key_field]),
            label=_as_text(label),
            metrics={name: record.get(name) for name in spec.metric_fields},
            attributes={name: _as_text(record.get(name)) for name in spec.attribute_fields},
        )


__all__ = ["SessionFactory", "SqlAlchemyQueryExecutor"]
