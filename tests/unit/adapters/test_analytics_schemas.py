# tests/unit/adapters/test_analytics_schemas.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from officine_api.adapters.schemas.http.analytics_schemas import (
    AnalyticsQueryHTTP,
    parse_category_dimension,
    parse_category_level,
)
from officine_api.domain.enums.filters import (
    Combinator,
    Dimension,
    ExclusionMode,
    RangeDimension,
    ReimbursementStatus,
)
from officine_api.domain.exceptions.analytics import InvalidFilterCombination, InvalidRange


def test_camel_case_body_maps_to_selection() -> None:
    body = AnalyticsQueryHTTP.model_validate(
        {
            "dateRange": {"start": "2024-01-01", "end": "2024-12-31"},
            "laboratoryCodes": ["SANOFI", "SANOFI"],
            "categoryCodes": ["Drugs", "Pain"],
            "categoryTypes": ["bcb_segment_l0", "l2"],
            "excludedProductCodes": ["3400930000001"],
            "tvaRates": ["2.1"],
            "reimbursementStatus": "REIMBURSED",
            "ranges": {"sell_price": {"min": "1", "max": "10"}},
            "filterOperators": ["OR", "AND"],
            "exclusionMode": "exclude",
        }
    )

    selection = body.to_selection()

    assert selection.members(Dimension.LABORATORY) == ("SANOFI",)
    assert selection.members(Dimension.CATEGORY_L0) == ("Drugs",)
    assert selection.members(Dimension.CATEGORY_L2) == ("Pain",)
    assert selection.excluded(Dimension.PRODUCT) == ("3400930000001",)
    assert selection.tva_rates == (Decimal("2.1"),)
    assert selection.reimbursement_status is ReimbursementStatus.REIMBURSED
    assert selection.range_filters[RangeDimension.SELL_PRICE].max_value == Decimal(10)
    assert selection.combinators == (Combinator.OR, Combinator.AND)
    assert selection.exclusion_mode is ExclusionMode.EXCLUDE


def test_to_period_parses_dates_and_comparison() -> None:
    body = AnalyticsQueryHTTP.model_validate(
        {
            "dateRange": {"start": "2024-01-01", "end": "2024-03-31T00:00:00Z"},
            "comparisonDateRange": {"start": "2023-01-01", "end": "2023-03-31"},
        }
    )

    period = body.to_period()

    assert period.analysis_start == date(2024, 1, 1)
    assert period.analysis_end == date(2024, 3, 31)
    assert period.comparison_end == date(2023, 3, 31)


def test_missing_dates_defer_to_resolver() -> None:
    period = AnalyticsQueryHTTP().to_period()

    assert period.analysis_start is None
    assert period.comparison_start is None


def test_malformed_date_is_invalid_range() -> None:
    body = AnalyticsQueryHTTP.model_validate({"dateRange": {"start": "2024-13-45", "end": ""}})

    with pytest.raises(InvalidRange):
        body.to_period()


def test_category_length_mismatch_is_rejected() -> None:
    body = AnalyticsQueryHTTP.model_validate({"categoryCodes": ["a", "b"], "categoryTypes": ["l0"]})

    with pytest.raises(InvalidFilterCombination) as exc:
        body.to_selection()
    assert exc.value.details["side"] == "included"


def test_inverted_numeric_range_is_rejected() -> None:
    body = AnalyticsQueryHTTP.model_validate({"ranges": {"margin_pct": {"min": 5, "max": 1}}})

    with pytest.raises(InvalidFilterCombination):
        body.to_selection()


@pytest.mark.parametrize(
    ("raw", "level"),
    [("bcb_segment_l3", 3), ("category_l0", 0), ("L5", 5), ("1", 1)],
)
def test_parse_category_level(raw: str, level: int) -> None:
    assert parse_category_level(raw) == level


@pytest.mark.parametrize("raw", ["bcb_segment_l6", "segment", ""])
def test_parse_category_level_rejects_unknown(raw: str) -> None:
    with pytest.raises(InvalidFilterCombination):
        parse_category_level(raw)


def test_unknown_fields_and_bad_pages_fail_validation() -> None:
    with pytest.raises(ValidationError):
        AnalyticsQueryHTTP.model_validate({"laboratoryIds": ["x"]})
    with pytest.raises(ValidationError):
        AnalyticsQueryHTTP.model_validate({"page": 0})


def test_excluded_pharmacies_map_to_pharmacy_exclusions() -> None:
    pharmacy_id = "0b7e7d1c-3f1a-4a8e-9d2b-6c1f5e4a3b21"
    body = AnalyticsQueryHTTP.model_validate({"excludedPharmacyIds": [pharmacy_id]})

    selection = body.to_selection()

    assert selection.excluded(Dimension.PHARMACY) == (pharmacy_id,)
    assert selection.members(Dimension.PHARMACY) == ()


def test_family_category_type_selects_the_family_dimension() -> None:
    body = AnalyticsQueryHTTP.model_validate(
        {
            "categoryCodes": ["Antalgiques", "Drugs"],
            "categoryTypes": ["bcb_family", "bcb_segment_l0"],
            "excludedCategoryCodes": ["Vitamines"],
            "excludedCategoryTypes": ["BCB_FAMILY"],
        }
    )

    selection = body.to_selection()

    assert selection.members(Dimension.CATEGORY_FAMILY) == ("Antalgiques",)
    assert selection.members(Dimension.CATEGORY_L0) == ("Drugs",)
    assert selection.excluded(Dimension.CATEGORY_FAMILY) == ("Vitamines",)


@pytest.mark.parametrize(
    ("raw", "dim"),
    [
        ("bcb_family", Dimension.CATEGORY_FAMILY),
        (" family ", Dimension.CATEGORY_FAMILY),
        ("bcb_segment_l4", Dimension.CATEGORY_L4),
    ],
)
def test_parse_category_dimension(raw: str, dim: Dimension) -> None:
    assert parse_category_dimension(raw) is dim


def test_parse_category_dimension_rejects_unknown() -> None:
    with pytest.raises(InvalidFilterCombination):
        parse_category_dimension("bcb_genus")
