# src/officine_api/domain/services/ranking_engine.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Ranking & evolution calculator.

Purpose:
    Turn two unordered collections of per-entity metrics (current and
    comparison period) into one ranked, evolution-annotated collection.
    Every analytic endpoint goes through this module so ranking and
    comparison arithmetic stay identical across subjects.

Layer:
    domain/services

Design:
    * Pure functions over immutable rows; ``Decimal`` arithmetic only.
    * Ranks come from a stable descending sort (ties keep input order,
      missing values sort last); ``rank = index + 1``.
    * Previous ranks come from an independent sort of the comparison rows,
      joined on exact ``entity_key``.
    * Amount/quantity metrics get a percentage evolution; percentage metrics
      (margin rate, market share) get a point delta.
    * Arithmetic edge cases degrade to ``None`` or
      :attr:`EvolutionMarker.NEW`; nothing here raises for data reasons.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from decimal import Decimal

from officine_api.domain.entities.entity_metrics import (
    EntityMetricRow,
    EvolutionMarker,
    MetricComparison,
    PercentEvolution,
    RankedComparisonRow,
)

__all__ = [
    "compute_ranked_comparison",
    "market_share",
    "percent_evolution",
    "point_delta",
    "rank_rows",
]

_HUNDRED = Decimal(100)
_ZERO = Decimal(0)


def _sort_key(value: Decimal | None) -> tuple[int, Decimal]:
    if value is None:
        return (1, _ZERO)
    return (0, -value)


def rank_rows(rows: Iterable[EntityMetricRow], metric: str) -> list[EntityMetricRow]:
    """Return rows sorted descending by ``metric`` (stable, ``None`` last)."""
    return sorted(rows, key=lambda r: _sort_key(r.metric(metric)))


def percent_evolution(current: Decimal | None, previous: Decimal | None) -> PercentEvolution:
    """Percentage change from ``previous`` to ``current``.

    Returns:
        * ``None`` when either value is missing.
        * :attr:`EvolutionMarker.NEW` when ``previous`` is zero and
          ``current`` is positive.
        * ``None`` when ``previous`` is zero otherwise.
        * ``(current - previous) / previous * 100`` in every other case.
    """
    if current is None or previous is None:
        return None
    if previous == 0:
        return EvolutionMarker.NEW if current > 0 else None
    return (current - previous) / previous * _HUNDRED


def point_delta(current: Decimal | None, previous: Decimal | None) -> Decimal | None:
    """Difference in percentage points, or ``None`` when a side is missing."""
    if current is None or previous is None:
        return None
    return current - previous


def market_share(value: Decimal | None, total: Decimal) -> Decimal | None:
    """Share of ``total`` as a percentage; ``0`` when the total is zero."""
    if value is None:
        return None
    if total == 0:
        return _ZERO
    return value / total * _HUNDRED


def _total(rows: Iterable[EntityMetricRow], metric: str) -> Decimal:
    return sum((v for r in rows if (v := r.metric(metric)) is not None), _ZERO)


def _index_first(rows: Sequence[EntityMetricRow]) -> dict[str, tuple[int, EntityMetricRow]]:
    index: dict[str, tuple[int, EntityMetricRow]] = {}
    for position, row in enumerate(rows, start=1):
        index.setdefault(row.entity_key, (position, row))
    return index


def compute_ranked_comparison(
    current: Sequence[EntityMetricRow],
    comparison: Sequence[EntityMetricRow] | None,
    rank_metric: str,
    *,
    percentage_metrics: Collection[str] = frozenset(),
    share_metric: str | None = None,
) -> list[RankedComparisonRow]:
    """Rank ``current`` and annotate it against ``comparison``.

    Args:
        current: Current-period rows (any order).
        comparison: Comparison-period rows, or ``None`` in single-period mode.
            An empty sequence is a valid comparison with no entities.
        rank_metric: Metric used for both rankings.
        percentage_metrics: Metrics already expressed as percentages; their
            evolution is a point delta instead of a percentage.
        share_metric: Metric used for market share (defaults to
            ``rank_metric``). Shares are computed over the same collection
            for each period independently.

    Returns:
        Rows in rank order. Empty when ``current`` is empty.
    """
    if not current:
        return []

    share_on = share_metric or rank_metric
    ranked = rank_rows(current, rank_metric)
    current_total = _total(current, share_on)

    previous_index: dict[str, tuple[int, EntityMetricRow]] = {}
    previous_total = _ZERO
    if comparison is not None:
        previous_index = _index_first(rank_rows(comparison, rank_metric))
        previous_total = _total(comparison, share_on)

    out: list[RankedComparisonRow] = []
    for position, row in enumerate(ranked, start=1):
        prev_rank: int | None = None
        prev_row: EntityMetricRow | None = None
        if row.entity_key in previous_index:
            prev_rank, prev_row = previous_index[row.entity_key]

        metrics: dict[str, MetricComparison] = {}
        for name, value in row.metrics.items():
            if comparison is None:
                metrics[name] = MetricComparison(current=value)
                continue
            prev_value = prev_row.metric(name) if prev_row is not None else None
            if name in percentage_metrics:
                metrics[name] = MetricComparison(
                    current=value,
                    previous=prev_value,
                    point_delta_evolution=point_delta(value, prev_value),
                )
            else:
                metrics[name] = MetricComparison(
                    current=value,
                    previous=prev_value,
                    percent_evolution=percent_evolution(value, prev_value),
                )

        share_now = market_share(row.metric(share_on), current_total)
        if comparison is None:
            share = MetricComparison(current=share_now)
        else:
            share_before = (
                market_share(prev_row.metric(share_on), previous_total)
                if prev_row is not None
                else None
            )
            share = MetricComparison(
                current=share_now,
                previous=share_before,
                point_delta_evolution=point_delta(share_now, share_before),
            )

        out.append(
            RankedComparisonRow(
                entity_key=row.entity_key,
                label=row.label,
                rank=position,
                metrics=metrics,
                market_share=share,
                attributes=row.attributes,
                previous_rank=prev_rank,
                rank_gain=(prev_rank - position) if prev_rank is not None else None,
            )
        )
    return out
