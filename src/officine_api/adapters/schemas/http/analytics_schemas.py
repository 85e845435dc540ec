# src/officine_api/adapters/schemas/http/analytics_schemas.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analytics HTTP Schemas (Adapters Layer).

Purpose:
    Wire contract of the ``POST /v1/analytics/{subject}`` endpoints: the
    camelCase filter body and the ranked row shapes returned to clients.

Design:
    * Date strings are parsed by :meth:`AnalyticsQueryHTTP.to_period` rather
      than by Pydantic so a missing or malformed date surfaces as
      ``INVALID_RANGE`` (400) instead of a generic validation error.
    * Category filters arrive as parallel ``categoryCodes`` /
      ``categoryTypes`` arrays; a length mismatch or an unknown level is an
      ``INVALID_FILTER_COMBINATION``.
    * Decimal values serialize as strings to keep precision.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Final, Literal

from pydantic import Field

from officine_api.adapters.schemas.http.base import BaseHTTPSchema
from officine_api.application.schemas.dto.analytics import (
    MetricValueDTO,
    PeriodDTO,
    RankedEntityDTO,
)
from officine_api.domain.entities.filter_selection import FilterSelection, RangeFilter
from officine_api.domain.entities.period_context import PeriodRequest
from officine_api.domain.enums.filters import (
    Combinator,
    Dimension,
    ExclusionMode,
    GenericStatus,
    ProductType,
    RangeDimension,
    ReimbursementStatus,
)
from officine_api.domain.exceptions.analytics import InvalidFilterCombination, InvalidRange

__all__ = [
    "AnalyticsQueryHTTP",
    "DateRangeHTTP",
    "MetricValueHTTP",
    "PeriodHTTP",
    "RangeHTTP",
    "RankedEntityHTTP",
    "RegionDeviationHTTP",
    "parse_category_dimension",
    "parse_category_level",
]

_CATEGORY_TYPE_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?:bcb_segment_l|category_l|l)?([0-9])$", re.IGNORECASE
)

_CATEGORY_FAMILY_TYPES: Final[frozenset[str]] = frozenset(
    {"bcb_family", "category_family", "family"}
)


def parse_category_level(raw: str) -> int:
    """Return the 0-based level encoded by a category type.

    Accepts ``bcb_segment_l3``, ``category_l3``, ``l3`` and ``3``.

    Raises:
        InvalidFilterCombination: If the type names no known level.
    """
    match = _CATEGORY_TYPE_RE.match(raw.strip())
    level = int(match.group(1)) if match else -1
    if not 0 <= level <= 5:
        raise InvalidFilterCombination(
            "Unknown category type", details={"category_type": raw}
        )
    return level


def parse_category_dimension(raw: str) -> Dimension:
    """Return the category dimension named by a category type.

    ``bcb_family`` selects the product family; every other accepted type is a
    segment level (see :func:`parse_category_level`).
    """
    if raw.strip().lower() in _CATEGORY_FAMILY_TYPES:
        return Dimension.CATEGORY_FAMILY
    return Dimension.for_category_level(parse_category_level(raw))


def _parse_date(raw: str | None, *, name: str) -> date | None:
    if raw is None or raw == "":
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise InvalidRange(f"Invalid {name} date", details={name: raw}) from exc


def _category_sets(
    codes: list[str], types: list[str], *, side: str
) -> dict[Dimension, list[str]]:
    if len(codes) != len(types):
        raise InvalidFilterCombination(
            "Category codes and types must have the same length",
            details={"side": side, "codes": len(codes), "types": len(types)},
        )
    out: dict[Dimension, list[str]] = {}
    for code, kind in zip(codes, types, strict=True):
        dim = parse_category_dimension(kind)
        out.setdefault(dim, []).append(code)
    return out


# --------------------------------------------------------------------------- #
# Request                                                                     #
# --------------------------------------------------------------------------- #
class DateRangeHTTP(BaseHTTPSchema):
    """Inclusive date range as ISO strings (``YYYY-MM-DD``)."""

    start: str | None = None
    end: str | None = None


class RangeHTTP(BaseHTTPSchema):
    """Inclusive numeric range."""

    min: Decimal
    max: Decimal


class AnalyticsQueryHTTP(BaseHTTPSchema):
    """Filter body shared by every analytics endpoint."""

    date_range: DateRangeHTTP | None = None
    comparison_date_range: DateRangeHTTP | None = None
    auto_prior_year: bool = False

    product_codes: list[str] = Field(default_factory=list)
    laboratory_codes: list[str] = Field(default_factory=list)
    category_codes: list[str] = Field(default_factory=list)
    category_types: list[str] = Field(default_factory=list)
    pharmacy_ids: list[str] = Field(default_factory=list)
    generic_groups: list[str] = Field(default_factory=list)

    excluded_pharmacy_ids: list[str] = Field(default_factory=list)
    excluded_product_codes: list[str] = Field(default_factory=list)
    excluded_laboratory_codes: list[str] = Field(default_factory=list)
    excluded_category_codes: list[str] = Field(default_factory=list)
    excluded_category_types: list[str] = Field(default_factory=list)
    excluded_generic_groups: list[str] = Field(default_factory=list)
    exclusion_mode: ExclusionMode = ExclusionMode.EXCLUDE

    tva_rates: list[Decimal] = Field(default_factory=list)
    reimbursement_status: ReimbursementStatus = ReimbursementStatus.ALL
    generic_status: GenericStatus = GenericStatus.ALL
    product_type: ProductType = ProductType.ALL
    ranges: dict[RangeDimension, RangeHTTP] = Field(default_factory=dict)
    filter_operators: list[Combinator] = Field(default_factory=list)

    path: list[str] = Field(default_factory=list, description="Category drill-down path.")
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1)

    def to_period(self) -> PeriodRequest:
        """Return the raw period bounds.

        Raises:
            InvalidRange: If a date is malformed. Missing analysis bounds are
                rejected later by the period resolver.
        """
        current = self.date_range or DateRangeHTTP()
        comparison = self.comparison_date_range or DateRangeHTTP()
        return PeriodRequest(
            analysis_start=_parse_date(current.start, name="start"),
            analysis_end=_parse_date(current.end, name="end"),
            comparison_start=_parse_date(comparison.start, name="comparison_start"),
            comparison_end=_parse_date(comparison.end, name="comparison_end"),
            auto_prior_year=self.auto_prior_year,
        )

    def to_selection(self) -> FilterSelection:
        """Return the normalized filter selection.

        Raises:
            InvalidFilterCombination: On category code/type mismatch, unknown
                category level or a range whose minimum exceeds its maximum.
        """
        entity_sets: dict[Dimension, list[str]] = {
            Dimension.PHARMACY: self.pharmacy_ids,
            Dimension.LABORATORY: self.laboratory_codes,
            Dimension.PRODUCT: self.product_codes,
            Dimension.GENERIC_GROUP: self.generic_groups,
        }
        entity_sets.update(
            _category_sets(self.category_codes, self.category_types, side="included")
        )
        exclusions: dict[Dimension, list[str]] = {
            Dimension.PHARMACY: self.excluded_pharmacy_ids,
            Dimension.LABORATORY: self.excluded_laboratory_codes,
            Dimension.PRODUCT: self.excluded_product_codes,
            Dimension.GENERIC_GROUP: self.excluded_generic_groups,
        }
        exclusions.update(
            _category_sets(
                self.excluded_category_codes, self.excluded_category_types, side="excluded"
            )
        )
        return FilterSelection(
            entity_sets=entity_sets,
            exclusions=exclusions,
            range_filters={
                dim: RangeFilter(rng.min, rng.max) for dim, rng in self.ranges.items()
            },
            tva_rates=tuple(self.tva_rates),
            reimbursement_status=self.reimbursement_status,
            generic_status=self.generic_status,
            product_type=self.product_type,
            combinators=tuple(self.filter_operators),
            exclusion_mode=self.exclusion_mode,
        )


# --------------------------------------------------------------------------- #
# Response rows                                                               #
# --------------------------------------------------------------------------- #
class MetricValueHTTP(BaseHTTPSchema):
    """One metric: current, previous and evolution."""

    current: Decimal | None = None
    previous: Decimal | None = None
    evolution_pct: Decimal | Literal["NEW"] | None = None
    evolution_points: Decimal | None = None

    @classmethod
    def from_dto(cls, dto: MetricValueDTO) -> MetricValueHTTP:
        return cls(
            current=dto.current,
            previous=dto.previous,
            evolution_pct=dto.percent_evolution,
            evolution_points=dto.point_delta_evolution,
        )


class RankedEntityHTTP(BaseHTTPSchema):
    """Ranked entity row."""

    key: str
    label: str | None = None
    rank: int
    previous_rank: int | None = None
    rank_gain: int | None = None
    metrics: dict[str, MetricValueHTTP]
    market_share: MetricValueHTTP
    attributes: dict[str, str | None] = Field(default_factory=dict)

    @classmethod
    def from_dto(cls, dto: RankedEntityDTO) -> RankedEntityHTTP:
        return cls(
            key=dto.entity_key,
            label=dto.label,
            rank=dto.rank,
            previous_rank=dto.previous_rank,
            rank_gain=dto.rank_gain,
            metrics={name: MetricValueHTTP.from_dto(v) for name, v in dto.metrics.items()},
            market_share=MetricValueHTTP.from_dto(dto.market_share),
            attributes=dict(dto.attributes),
        )


class PeriodHTTP(BaseHTTPSchema):
    """Resolved period bounds."""

    start: date
    end: date

    @classmethod
    def from_dto(cls, dto: PeriodDTO) -> PeriodHTTP:
        return cls(start=dto.start, end=dto.end)


class RegionDeviationHTTP(BaseHTTPSchema):
    """Deviation of a region's average sales per pharmacy from the national one."""

    region: str
    average_sales: Decimal
    deviation_pct: Decimal
