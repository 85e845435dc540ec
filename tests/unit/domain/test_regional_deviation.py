# tests/unit/domain/test_regional_deviation.py
from __future__ import annotations

from decimal import Decimal

from officine_api.domain.services.regional_deviation import compute_regional_deviation


def test_national_benchmark_and_deviation(make_row) -> None:
    rows = [
        make_row("Nord", sales_ttc=300, pharmacy_count=2),
        make_row("Sud", sales_ttc=100, pharmacy_count=2),
    ]

    national, deviations = compute_regional_deviation(rows)

    assert national.total_sales == Decimal(400)
    assert national.pharmacy_count == 4
    assert national.average_sales == Decimal(100)
    assert [(d.region, d.average_sales, d.deviation_pct) for d in deviations] == [
        ("Nord", Decimal(150), Decimal(50)),
        ("Sud", Decimal(50), Decimal(-50)),
    ]


def test_regions_without_pharmacies_average_zero(make_row) -> None:
    national, deviations = compute_regional_deviation(
        [make_row("Empty", sales_ttc=0, pharmacy_count=0)]
    )

    assert national.average_sales == Decimal(0)
    assert deviations[0].average_sales == Decimal(0)
    assert deviations[0].deviation_pct == Decimal(0)


def test_no_rows() -> None:
    national, deviations = compute_regional_deviation([])

    assert national.pharmacy_count == 0
    assert deviations == []
