# src/officine_api/domain/entities/entity_metrics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Per-entity metric rows, raw and ranked.

Purpose:
    * ``EntityMetricRow``: raw output of one aggregation for one period.
    * ``RankedComparisonRow``: current-period row annotated with ranks,
      comparison values and evolutions.

Layer:
    domain/entities

Notes:
    Numeric values are ``Decimal`` end to end; ``None`` means "no value",
    which is distinct from zero and must be preserved through serialization.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType


class EvolutionMarker(str, Enum):
    """Sentinel evolution values that are not numbers."""

    NEW = "NEW"


#: A percentage evolution: a number, the new-entrant marker, or no value.
PercentEvolution = Decimal | EvolutionMarker | None


@dataclass(frozen=True, slots=True)
class EntityMetricRow:
    """Aggregated metrics for one entity over one period.

    Attributes:
        entity_key: Stable identity used to join periods (exact match).
        label: Display label, when it differs from the key.
        metrics: Metric name to value.
        attributes: Non-numeric descriptors (e.g. a product's laboratory).
    """

    entity_key: str
    label: str | None = None
    metrics: Mapping[str, Decimal | None] = field(default_factory=dict)
    attributes: Mapping[str, str | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.entity_key:
            raise ValueError("entity_key must be non-empty")
        coerced = {
            name: (None if value is None else Decimal(str(value)))
            for name, value in self.metrics.items()
        }
        object.__setattr__(self, "metrics", MappingProxyType(coerced))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def metric(self, name: str) -> Decimal | None:
        return self.metrics.get(name)


@dataclass(frozen=True, slots=True)
class MetricComparison:
    """One metric across both periods.

    Only one of ``percent_evolution`` (amounts/quantities) or
    ``point_delta_evolution`` (percentage metrics) is ever populated.
    """

    current: Decimal | None
    previous: Decimal | None = None
    percent_evolution: PercentEvolution = None
    point_delta_evolution: Decimal | None = None


@dataclass(frozen=True, slots=True)
class RankedComparisonRow:
    """Current-period entity enriched with comparison-period annotations."""

    entity_key: str
    label: str | None
    rank: int
    metrics: Mapping[str, MetricComparison]
    market_share: MetricComparison
    attributes: Mapping[str, str | None] = field(default_factory=dict)
    previous_rank: int | None = None
    rank_gain: int | None = None


__all__ = [
    "EntityMetricRow",
    "EvolutionMarker",
    "MetricComparison",
    "PercentEvolution",
    "RankedComparisonRow",
]
