# src/officine_api/domain/enums/filters.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Filter axis enumerations.

Purpose:
    Enumerate every independent filter axis a caller can constrain, plus the
    enumerated filter values (reimbursement, generic status, product type)
    and the composition controls (combinators, exclusion mode).

Layer:
    domain/enums

Notes:
    Enum values are the wire representation used by HTTP schemas and cache
    fingerprints; treat them as a stable contract.
"""

from __future__ import annotations

from enum import Enum


class Dimension(str, Enum):
    """Entity-set dimension (include/exclude by identifier)."""

    PHARMACY = "pharmacy"
    LABORATORY = "laboratory"
    CATEGORY_L0 = "category_l0"
    CATEGORY_L1 = "category_l1"
    CATEGORY_L2 = "category_l2"
    CATEGORY_L3 = "category_l3"
    CATEGORY_L4 = "category_l4"
    CATEGORY_L5 = "category_l5"
    CATEGORY_FAMILY = "category_family"
    PRODUCT = "product"
    GENERIC_GROUP = "generic_group"

    @property
    def is_category(self) -> bool:
        """Return True for the category levels and the category family."""
        return self.value.startswith("category_")

    @property
    def category_level(self) -> int | None:
        """Return the 0-based category level, or None for non-category dimensions."""
        if not self.value.startswith("category_l"):
            return None
        return int(self.value.rsplit("l", 1)[1])

    @classmethod
    def for_category_level(cls, level: int) -> Dimension:
        """Return the category dimension for a 0-based level.

        Raises:
            ValueError: If ``level`` is outside 0..5.
        """
        if not 0 <= level <= 5:
            raise ValueError(f"category level must be in 0..5, got {level}")
        return cls(f"category_l{level}")


#: Dimensions in predicate emission order.
DIMENSION_ORDER: tuple[Dimension, ...] = tuple(Dimension)

#: Category dimensions, OR-ed together as one filter group.
CATEGORY_DIMENSIONS: tuple[Dimension, ...] = tuple(d for d in Dimension if d.is_category)

#: Hierarchical category levels, shallowest first.
CATEGORY_LEVEL_DIMENSIONS: tuple[Dimension, ...] = tuple(
    d for d in Dimension if d.category_level is not None
)


class RangeDimension(str, Enum):
    """Numeric dimension constrained by an inclusive ``[min, max]`` range."""

    PURCHASE_PRICE_NET = "purchase_price_net"
    PURCHASE_PRICE_GROSS = "purchase_price_gross"
    SELL_PRICE = "sell_price"
    DISCOUNT_PCT = "discount_pct"
    MARGIN_PCT = "margin_pct"


class ReimbursementStatus(str, Enum):
    """Reimbursement filter. ``ALL`` applies no constraint."""

    ALL = "ALL"
    REIMBURSED = "REIMBURSED"
    NOT_REIMBURSED = "NOT_REIMBURSED"


class GenericStatus(str, Enum):
    """Generic/originator filter. ``ALL`` applies no constraint."""

    ALL = "ALL"
    GENERIC = "GENERIC"
    PRINCEPS = "PRINCEPS"
    PRINCEPS_GENERIC = "PRINCEPS_GENERIC"


class ProductType(str, Enum):
    """Product family filter based on the CIP code prefix."""

    ALL = "ALL"
    MEDICAMENT = "MEDICAMENT"
    PARAPHARMACIE = "PARAPHARMACIE"


class Combinator(str, Enum):
    """Boolean operator joining two consecutive filter groups."""

    AND = "AND"
    OR = "OR"


class ExclusionMode(str, Enum):
    """How the exclusion sets of a selection are applied.

    Attributes:
        EXCLUDE: Inclusions AND NOT exclusions (default).
        INCLUDE: Exclusions are ignored entirely.
        ONLY: Non-pharmacy inclusions are dropped and the excluded entities
            become a single OR-ed inclusion group, so the query targets only
            what the user had excluded. Pharmacy scope is kept.
    """

    EXCLUDE = "exclude"
    INCLUDE = "include"
    ONLY = "only"


__all__ = [
    "CATEGORY_DIMENSIONS",
    "CATEGORY_LEVEL_DIMENSIONS",
    "DIMENSION_ORDER",
    "Combinator",
    "Dimension",
    "ExclusionMode",
    "GenericStatus",
    "ProductType",
    "RangeDimension",
    "ReimbursementStatus",
]
