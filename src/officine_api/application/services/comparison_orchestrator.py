# src/officine_api/application/services/comparison_orchestrator.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Comparison orchestrator.

Purpose:
    Fan out the current-period and comparison-period fetches concurrently,
    join them, and hand both collections to the ranking calculator.

Layer:
    application/services

Failure semantics:
    * The first failing fetch wins: the sibling task is cancelled and the
      error propagates. Analytics errors pass through unchanged; anything
      else is wrapped in :class:`ExecutorFailure`.
    * An optional timeout bounds the joint wait and surfaces as
      :class:`ExecutorFailure`.
    * A requested comparison is never silently dropped: a missing
      comparison result raises :class:`PartialResultForbidden`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Collection, Sequence

from officine_api.domain.entities.entity_metrics import EntityMetricRow, RankedComparisonRow
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import DateInterval, PeriodContext
from officine_api.domain.exceptions.analytics import (
    AnalyticsError,
    ExecutorFailure,
    PartialResultForbidden,
)
from officine_api.domain.services.ranking_engine import compute_ranked_comparison
from officine_api.infrastructure.logging.logger import get_json_logger
from officine_api.infrastructure.observability.metrics import (
    get_analytics_fetch_failures_total,
    get_analytics_fetch_latency_seconds,
)

__all__ = ["ComparisonOrchestrator", "FetchFn"]

logger = get_json_logger(__name__)

FetchFn = Callable[[FilterSelection, DateInterval], Awaitable[Sequence[EntityMetricRow]]]

_CURRENT = "current"
_COMPARISON = "comparison"


class ComparisonOrchestrator:
    """Run both period fetches concurrently and rank the joined result.

    Args:
        timeout_s: Optional upper bound in seconds for the joint wait.
        subject: Label used in logs and metrics.
    """

    def __init__(self, *, timeout_s: float | None = None, subject: str = "unknown") -> None:
        self._timeout_s = timeout_s
        self._subject = subject

    async def run(
        self,
        selection: FilterSelection,
        period: PeriodContext,
        fetch_fn: FetchFn,
        *,
        rank_metric: str,
        percentage_metrics: Collection[str] = frozenset(),
        share_metric: str | None = None,
    ) -> list[RankedComparisonRow]:
        """Fetch, join and rank.

        Args:
            selection: Filter state passed unchanged to both fetches.
            period: Resolved periods; the comparison fetch runs only when a
                comparison interval is present.
            fetch_fn: ``fetch_fn(selection, interval)`` returning raw rows.
            rank_metric: Metric used for both rankings.
            percentage_metrics: Metrics evolving as point deltas.
            share_metric: Metric used for market share.

        Returns:
            Ranked, evolution-annotated rows.

        Raises:
            AnalyticsError: Propagated from a fetch.
            ExecutorFailure: A fetch failed with a non-analytics error or the
                timeout expired.
            PartialResultForbidden: The comparison result is missing although
                a comparison was requested.
        """
        intervals: dict[str, DateInterval] = {_CURRENT: period.current}
        if period.comparison is not None:
            intervals[_COMPARISON] = period.comparison

        results = await self._gather(selection, intervals, fetch_fn)

        current = results.get(_CURRENT)
        if current is None:
            raise ExecutorFailure("Current period fetch returned no result")
        comparison = results.get(_COMPARISON)
        if period.has_comparison and comparison is None:
            raise PartialResultForbidden(
                "Comparison was requested but its result is missing",
                details={"subject": self._subject},
            )

        return compute_ranked_comparison(
            current,
            comparison,
            rank_metric,
            percentage_metrics=percentage_metrics,
            share_metric=share_metric,
        )

    async def _timed_fetch(
        self,
        label: str,
        selection: FilterSelection,
        interval: DateInterval,
        fetch_fn: FetchFn,
    ) -> Sequence[EntityMetricRow]:
        started = time.perf_counter()
        try:
            return await fetch_fn(selection, interval)
        finally:
            get_analytics_fetch_latency_seconds().labels(
                subject=self._subject, period=label
            ).observe(time.perf_counter() - started)

    async def _gather(
        self,
        selection: FilterSelection,
        intervals: dict[str, DateInterval],
        fetch_fn: FetchFn,
    ) -> dict[str, Sequence[EntityMetricRow]]:
        tasks: dict[str, asyncio.Task[Sequence[EntityMetricRow]]] = {
            label: asyncio.create_task(
                self._timed_fetch(label, selection, interval, fetch_fn),
                name=f"analytics.fetch.{self._subject}.{label}",
            )
            for label, interval in intervals.items()
        }
        try:
            done, pending = await asyncio.wait(
                tasks.values(),
                timeout=self._timeout_s,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except BaseException:
            self._cancel(tasks.values())
            raise

        if pending:
            self._cancel(pending)

        for label, task in tasks.items():
            if task in done and task.exception() is not None:
                self._fail(label, task.exception())

        if pending:
            get_analytics_fetch_failures_total().labels(
                subject=self._subject, reason="timeout"
            ).inc()
            logger.warning(
                "analytics.orchestrator.timeout",
                extra={"subject": self._subject, "timeout_s": self._timeout_s},
            )
            raise ExecutorFailure(
                "Analytics query timed out",
                details={"subject": self._subject, "timeout_s": self._timeout_s},
            )

        return {label: task.result() for label, task in tasks.items()}

    def _fail(self, label: str, exc: BaseException | None) -> None:
        """Record and re-raise the first fetch failure."""
        reason = type(exc).__name__
        get_analytics_fetch_failures_total().labels(subject=self._subject, reason=reason).inc()
        if isinstance(exc, AnalyticsError):
            raise exc
        logger.error(
            "analytics.orchestrator.fetch_failed",
            extra={"subject": self._subject, "period": label, "error_type": reason},
        )
        raise ExecutorFailure(
            "Analytics query failed",
            details={"subject": self._subject, "period": label},
        ) from exc

    @staticmethod
    def _cancel(tasks: Collection[asyncio.Task[Sequence[EntityMetricRow]]]) -> None:
        # Best-effort: executors may ignore cancellation, so never wait on them.
        for task in tasks:
            if not task.done():
                task.cancel()
                task.add_done_callback(_discard_outcome)


def _discard_outcome(task: asyncio.Task[Sequence[EntityMetricRow]]) -> None:
    if not task.cancelled():
        task.exception()
