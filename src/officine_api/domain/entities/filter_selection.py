# src/officine_api/domain/entities/filter_selection.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Filter selection value objects.

Purpose:
    Represent the complete filter state of one analytic request as an
    immutable value passed explicitly into the engine on every call.

Layer:
    domain/entities

Design:
    * Frozen, slotted dataclasses; mappings are exposed read-only.
    * Normalization happens once at construction: identifier sets are
      de-duplicated in first-seen order, blank identifiers and empty
      dimensions are dropped, so two equivalent selections compare equal and
      fingerprint identically.
    * Within one dimension membership is always any-of; ``combinators`` only
      describe cross-dimension composition of filter groups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from officine_api.domain.enums.filters import (
    DIMENSION_ORDER,
    Combinator,
    Dimension,
    ExclusionMode,
    GenericStatus,
    ProductType,
    RangeDimension,
    ReimbursementStatus,
)
from officine_api.domain.exceptions.analytics import InvalidFilterCombination

EntitySets = Mapping[Dimension, tuple[str, ...]]


def _dedupe(values: Iterable[Any]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for raw in values:
        if raw is None:
            continue
        text = str(raw).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


def _normalize_sets(raw: Mapping[Any, Iterable[Any]] | None) -> EntitySets:
    normalized: dict[Dimension, tuple[str, ...]] = {}
    source = {Dimension(k): v for k, v in (raw or {}).items()}
    for dim in DIMENSION_ORDER:
        members = _dedupe(source.get(dim, ()))
        if members:
            normalized[dim] = members
    return MappingProxyType(normalized)


@dataclass(frozen=True, slots=True)
class RangeFilter:
    """Inclusive numeric range.

    ``RangeFilter(0, 0)`` is a real constraint, not an absent one; callers
    omit the key to skip a range.

    Raises:
        InvalidFilterCombination: If ``min_value > max_value``.
    """

    min_value: Decimal
    max_value: Decimal

    def __post_init__(self) -> None:
        lo = Decimal(str(self.min_value))
        hi = Decimal(str(self.max_value))
        if lo > hi:
            raise InvalidFilterCombination(
                "Range minimum is greater than its maximum",
                details={"min": str(lo), "max": str(hi)},
            )
        object.__setattr__(self, "min_value", lo)
        object.__setattr__(self, "max_value", hi)


@dataclass(frozen=True, slots=True)
class FilterSelection:
    """Full filter state for one analytic request.

    Attributes:
        entity_sets: Identifiers to include, per dimension.
        exclusions: Identifiers to subtract regardless of inclusion.
        range_filters: Inclusive numeric ranges per numeric dimension.
        tva_rates: VAT rates to include (empty means no constraint).
        reimbursement_status: Reimbursement filter.
        generic_status: Generic/originator filter.
        product_type: Drug vs. parapharmacy filter.
        combinators: AND/OR between consecutive filter groups.
        exclusion_mode: How ``exclusions`` are applied.
    """

    entity_sets: EntitySets = field(default_factory=dict)
    exclusions: EntitySets = field(default_factory=dict)
    range_filters: Mapping[RangeDimension, RangeFilter] = field(default_factory=dict)
    tva_rates: tuple[Decimal, ...] = ()
    reimbursement_status: ReimbursementStatus = ReimbursementStatus.ALL
    generic_status: GenericStatus = GenericStatus.ALL
    product_type: ProductType = ProductType.ALL
    combinators: tuple[Combinator, ...] = ()
    exclusion_mode: ExclusionMode = ExclusionMode.EXCLUDE

    def __post_init__(self) -> None:
        object.__setattr__(self, "entity_sets", _normalize_sets(self.entity_sets))
        object.__setattr__(self, "exclusions", _normalize_sets(self.exclusions))

        ranges = {RangeDimension(k): v for k, v in (self.range_filters or {}).items()}
        ordered = {dim: ranges[dim] for dim in RangeDimension if dim in ranges}
        object.__setattr__(self, "range_filters", MappingProxyType(ordered))

        rates: dict[Decimal, None] = {}
        for rate in self.tva_rates:
            rates.setdefault(Decimal(str(rate)), None)
        object.__setattr__(self, "tva_rates", tuple(rates))

        object.__setattr__(
            self, "reimbursement_status", ReimbursementStatus(self.reimbursement_status)
        )
        object.__setattr__(self, "generic_status", GenericStatus(self.generic_status))
        object.__setattr__(self, "product_type", ProductType(self.product_type))
        object.__setattr__(self, "combinators", tuple(Combinator(c) for c in self.combinators))
        object.__setattr__(self, "exclusion_mode", ExclusionMode(self.exclusion_mode))

    def members(self, dim: Dimension) -> tuple[str, ...]:
        """Return the included identifiers for ``dim`` (empty tuple if none)."""
        return self.entity_sets.get(dim, ())

    def excluded(self, dim: Dimension) -> tuple[str, ...]:
        """Return the excluded identifiers for ``dim`` (empty tuple if none)."""
        return self.exclusions.get(dim, ())

    @property
    def has_exclusions(self) -> bool:
        return bool(self.exclusions)

    @property
    def is_empty(self) -> bool:
        """True when the selection constrains nothing at all."""
        return not (
            self.entity_sets
            or self.exclusions
            or self.range_filters
            or self.tva_rates
            or self.reimbursement_status is not ReimbursementStatus.ALL
            or self.generic_status is not GenericStatus.ALL
            or self.product_type is not ProductType.ALL
        )

    def with_entity_set(self, dim: Dimension, values: Iterable[str]) -> FilterSelection:
        """Return a copy with ``entity_sets[dim]`` replaced.

        Used by callers that pre-constrain scope (e.g. a non-privileged user
        pinned to one pharmacy) before invoking the engine.
        """
        sets = dict(self.entity_sets)
        sets[dim] = tuple(values)
        return replace(self, entity_sets=sets)

    def without_dimension(self, dim: Dimension) -> FilterSelection:
        """Return a copy with ``dim`` removed from both inclusions and exclusions."""
        sets = {k: v for k, v in self.entity_sets.items() if k is not dim}
        excl = {k: v for k, v in self.exclusions.items() if k is not dim}
        return replace(self, entity_sets=sets, exclusions=excl)

    def to_fingerprint_payload(self) -> dict[str, Any]:
        """Return a canonical JSON-safe representation used for cache keys."""
        return {
            "entity_sets": {d.value: list(v) for d, v in self.entity_sets.items()},
            "exclusions": {d.value: list(v) for d, v in self.exclusions.items()},
            "range_filters": {
                d.value: [str(r.min_value), str(r.max_value)]
                for d, r in self.range_filters.items()
            },
            "tva_rates": [str(r) for r in self.tva_rates],
            "reimbursement_status": self.reimbursement_status.value,
            "generic_status": self.generic_status.value,
            "product_type": self.product_type.value,
            "combinators": [c.value for c in self.combinators],
            "exclusion_mode": self.exclusion_mode.value,
        }


__all__ = ["EntitySets", "FilterSelection", "RangeFilter"]
