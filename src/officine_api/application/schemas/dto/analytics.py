# src/officine_api/application/schemas/dto/analytics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Application DTOs for ranked analytics.

Synopsis:
    Strict (Pydantic v2) DTOs returned by the ranking use cases. They are
    also the cache payload: ``to_payload()`` on write and
    ``from_payload()`` on read.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from officine_api.application.schemas.dto.base import BaseDTO
from officine_api.domain.entities.entity_metrics import (
    EvolutionMarker,
    MetricComparison,
    RankedComparisonRow,
)
from officine_api.domain.entities.period_context import DateInterval


class MetricValueDTO(BaseDTO):
    """One metric across the current and comparison periods.

    Attributes:
        current: Current-period value.
        previous: Comparison-period value (None without comparison).
        percent_evolution: Percentage change, or ``"NEW"`` for a new entrant.
        point_delta_evolution: Percentage-point change for percentage metrics.
    """

    current: Decimal | None
    previous: Decimal | None = None
    percent_evolution: Decimal | Literal["NEW"] | None = None
    point_delta_evolution: Decimal | None = None

    @classmethod
    def from_domain(cls, value: MetricComparison) -> MetricValueDTO:
        evolution: Decimal | Literal["NEW"] | None
        if isinstance(value.percent_evolution, EvolutionMarker):
            evolution = "NEW"
        else:
            evolution = value.percent_evolution
        return cls(
            current=value.current,
            previous=value.previous,
            percent_evolution=evolution,
            point_delta_evolution=value.point_delta_evolution,
        )


class RankedEntityDTO(BaseDTO):
    """A ranked entity with its per-metric comparison."""

    entity_key: str
    label: str | None = None
    rank: int
    previous_rank: int | None = None
    rank_gain: int | None = None
    metrics: dict[str, MetricValueDTO]
    market_share: MetricValueDTO
    attributes: dict[str, str | None] = {}

    @classmethod
    def from_domain(cls, row: RankedComparisonRow) -> RankedEntityDTO:
        return cls(
            entity_key=row.entity_key,
            label=row.label,
            rank=row.rank,
            previous_rank=row.previous_rank,
            rank_gain=row.rank_gain,
            metrics={k: MetricValueDTO.from_domain(v) for k, v in row.metrics.items()},
            market_share=MetricValueDTO.from_domain(row.market_share),
            attributes=dict(row.attributes),
        )


class PeriodDTO(BaseDTO):
    """Closed date interval."""

    start: date
    end: date

    @classmethod
    def from_domain(cls, interval: DateInterval) -> PeriodDTO:
        return cls(start=interval.start, end=interval.end)


class RankingPageDTO(BaseDTO):
    """One page of a ranking.

    Ranks are global: pagination happens after ranking, so the first row of
    page 2 carries rank ``page_size + 1``.
    """

    subject: str
    items: list[RankedEntityDTO]
    total: int
    page: int
    page_size: int
    current_period: PeriodDTO
    comparison_period: PeriodDTO | None = None
    query_time_ms: int = 0
    cached: bool = False


class RegionDeviationDTO(BaseDTO):
    """Average sales per pharmacy of one region against the national average."""

    region: str
    average_sales: Decimal
    deviation_pct: Decimal


class RegionalStatsDTO(BaseDTO):
    """Regional ranking plus the national benchmark."""

    ranking: RankingPageDTO
    national_total_sales: Decimal
    national_pharmacy_count: int
    national_average_sales: Decimal
    deviations: list[RegionDeviationDTO]


__all__ = [
    "MetricValueDTO",
    "PeriodDTO",
    "RankedEntityDTO",
    "RankingPageDTO",
    "RegionDeviationDTO",
    "RegionalStatsDTO",
]
