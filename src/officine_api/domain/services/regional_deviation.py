# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Regional deviation from the national average sales per pharmacy.

Design:
    Pure domain logic. The national figures are derived from the same
    regional rows (a pharmacy belongs to exactly one region), so no second
    aggregation is needed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from officine_api.domain.entities.entity_metrics import EntityMetricRow

__all__ = ["NationalBenchmark", "RegionalDeviation", "compute_regional_deviation"]

_ZERO = Decimal(0)


@dataclass(frozen=True, slots=True)
class NationalBenchmark:
    """National totals across every region in the selection."""

    total_sales: Decimal
    pharmacy_count: int
    average_sales: Decimal


@dataclass(frozen=True, slots=True)
class RegionalDeviation:
    """Region average sales per pharmacy against the national average."""

    region: str
    average_sales: Decimal
    deviation_pct: Decimal


def compute_regional_deviation(
    rows: Sequence[EntityMetricRow],
    *,
    sales_metric: str = "sales_ttc",
    count_metric: str = "pharmacy_count",
) -> tuple[NationalBenchmark, list[RegionalDeviation]]:
    """Compute the national benchmark and per-region deviation.

    A region (or the nation) without pharmacies averages 0, and every
    deviation against a zero national average is 0.

    Args:
        rows: Current-period region rows.
        sales_metric: Metric holding total sales per region.
        count_metric: Metric holding the number of pharmacies per region.

    Returns:
        The national benchmark and one deviation per input row, in input order.
    """
    total_sales = sum((r.metric(sales_metric) or _ZERO for r in rows), _ZERO)
    total_count = sum(int(r.metric(count_metric) or 0) for r in rows)
    national_avg = total_sales / total_count if total_count > 0 else _ZERO

    deviations: list[RegionalDeviation] = []
    for row in rows:
        count = int(row.metric(count_metric) or 0)
        sales = row.metric(sales_metric) or _ZERO
        average = sales / count if count > 0 else _ZERO
        deviation = (
            (average - national_avg) / national_avg * Decimal(100) if national_avg > 0 else _ZERO
        )
        deviations.append(
            RegionalDeviation(region=row.entity_key, average_sales=average, deviation_pct=deviation)
        )

    benchmark = NationalBenchmark(
        total_sales=total_sales, pharmacy_count=total_count, average_sales=national_avg
    )
    return benchmark, deviations
