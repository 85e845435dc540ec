# src/officine_api/domain/services/predicate_builder.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Predicate builder: filter selection -> parameterized SQL fragments.

Purpose:
    Translate a :class:`FilterSelection` and a per-endpoint :class:`ColumnMap`
    into an ordered tuple of SQL predicate fragments plus a positional
    parameter vector, reusable by every aggregation query.

Layer:
    domain/services

Design:
    * Pure and idempotent: no I/O, no logging, no global state.
    * Values only ever travel through bind parameters. The only identifiers
      interpolated into SQL text come from a :class:`ColumnMap`, whose
      entries are validated against a strict identifier pattern.
    * Placeholders are named ``:f1, :f2, ...`` after their 1-based position
      in the parameter vector (plus an optional offset), so the vector order
      always matches fragment emission order.
    * Emission order: inclusions (pharmacy, laboratory, categories, product,
      generic group), exclusions (same order), ranges, VAT, reimbursement,
      generic status, product type.
    * Composition is AND by default. When asked to honour combinators, the
      filter groups (inclusions, settings, ranges) are joined with the
      selection's AND/OR operators, missing ones defaulting to AND. Pharmacy
      scope and exclusions remain AND-ed.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Final

from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.enums.filters import (
    CATEGORY_DIMENSIONS,
    Combinator,
    Dimension,
    ExclusionMode,
    GenericStatus,
    ProductType,
    RangeDimension,
    ReimbursementStatus,
)
from officine_api.domain.exceptions.analytics import InvalidFilterCombination

__all__ = [
    "CIP_MEDICAMENT_PREFIX",
    "DEFAULT_COLUMN_MAP",
    "ColumnMap",
    "FragmentRole",
    "PredicateBuilder",
    "PredicateFragment",
    "PredicateSet",
]

_IDENTIFIER_RE: Final[re.Pattern[str]] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$"
)

#: LIKE pattern matching French CIP13 codes of medicinal products.
CIP_MEDICAMENT_PREFIX: Final[str] = "34009%"

_GENERIC_STATUS_VALUES: Final[Mapping[GenericStatus, tuple[str, ...]]] = MappingProxyType(
    {
        GenericStatus.GENERIC: ("GÉNÉRIQUE",),
        GenericStatus.PRINCEPS: ("RÉFÉRENT",),
        GenericStatus.PRINCEPS_GENERIC: ("GÉNÉRIQUE", "RÉFÉRENT"),
    }
)

_ARRAY_TYPES: Final[Mapping[Dimension, str]] = MappingProxyType({Dimension.PHARMACY: "UUID[]"})

# Dimensions whose exclusions become inclusions in ExclusionMode.ONLY.
_ONLY_MODE_DIMENSIONS: Final[tuple[Dimension, ...]] = (
    Dimension.PRODUCT,
    Dimension.LABORATORY,
    *CATEGORY_DIMENSIONS,
    Dimension.GENERIC_GROUP,
)


class FragmentRole(str, Enum):
    """What a fragment constrains; drives combinator composition."""

    INCLUSION = "inclusion"
    EXCLUSION = "exclusion"
    RANGE = "range"
    SETTING = "setting"


def _check_identifier(name: str, column: str) -> str:
    if not _IDENTIFIER_RE.match(column):
        raise ValueError(f"Invalid column identifier for {name!r}: {column!r}")
    return column


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Allow-listed column identifiers for one aggregation query.

    Attributes:
        dimensions: Column per entity-set dimension.
        ranges: Column per numeric range dimension.
        tva: VAT rate column.
        reimbursable: Boolean reimbursement column.
        generic_status: Generic/originator classification column.
        product_code: CIP13 column used by the product type filter. Falls back
            to the ``PRODUCT`` dimension column when unset.

    Raises:
        ValueError: If any identifier is not a plain (optionally qualified)
            SQL identifier.
    """

    dimensions: Mapping[Dimension, str] = field(default_factory=dict)
    ranges: Mapping[RangeDimension, str] = field(default_factory=dict)
    tva: str | None = None
    reimbursable: str | None = None
    generic_status: str | None = None
    product_code: str | None = None

    def __post_init__(self) -> None:
        dims = {
            Dimension(k): _check_identifier(str(k), v) for k, v in self.dimensions.items()
        }
        ranges = {
            RangeDimension(k): _check_identifier(str(k), v) for k, v in self.ranges.items()
        }
        object.__setattr__(self, "dimensions", MappingProxyType(dims))
        object.__setattr__(self, "ranges", MappingProxyType(ranges))
        for name in ("tva", "reimbursable", "generic_status", "product_code"):
            value = getattr(self, name)
            if value is not None:
                _check_identifier(name, value)

    def with_overrides(
        self,
        *,
        dimensions: Mapping[Dimension, str] | None = None,
        ranges: Mapping[RangeDimension, str] | None = None,
        **settings: str | None,
    ) -> ColumnMap:
        """Return a copy with some columns replaced (mirrors per-endpoint mappings)."""
        return ColumnMap(
            dimensions={**self.dimensions, **(dimensions or {})},
            ranges={**self.ranges, **(ranges or {})},
            tva=settings.get("tva", self.tva),
            reimbursable=settings.get("reimbursable", self.reimbursable),
            generic_status=settings.get("generic_status", self.generic_status),
            product_code=settings.get("product_code", self.product_code),
        )

    def column_for(self, dim: Dimension) -> str:
        """Return the column for ``dim``.

        Raises:
            InvalidFilterCombination: If this query has no column for ``dim``.
        """
        column = self.dimensions.get(dim)
        if column is None:
            raise InvalidFilterCombination(
                "Filter is not supported by this analysis",
                details={"filter": dim.value},
            )
        return column

    def require_setting(self, name: str, value: str | None) -> str:
        """Return ``value`` or reject the filter when this query has no such column."""
        if value is None:
            raise InvalidFilterCombination(
                "Filter is not supported by this analysis", details={"filter": name}
            )
        return value


#: Column layout of the product catalogue joins shared by most analyses.
DEFAULT_COLUMN_MAP: Final[ColumnMap] = ColumnMap(
    dimensions={
        Dimension.PHARMACY: "ip.pharmacy_id",
        Dimension.LABORATORY: "gp.bcb_lab",
        Dimension.CATEGORY_L0: "gp.bcb_segment_l0",
        Dimension.CATEGORY_L1: "gp.bcb_segment_l1",
        Dimension.CATEGORY_L2: "gp.bcb_segment_l2",
        Dimension.CATEGORY_L3: "gp.bcb_segment_l3",
        Dimension.CATEGORY_L4: "gp.bcb_segment_l4",
        Dimension.CATEGORY_L5: "gp.bcb_segment_l5",
        Dimension.CATEGORY_FAMILY: "gp.bcb_family",
        Dimension.PRODUCT: "ip.code_13_ref_id",
        Dimension.GENERIC_GROUP: "gp.bcb_generic_group",
    },
    ranges={
        RangeDimension.PURCHASE_PRICE_NET: "lp.weighted_average_price",
        RangeDimension.PURCHASE_PRICE_GROSS: "gp.prix_achat_ht_fabricant",
        RangeDimension.SELL_PRICE: "lp.price_with_tax",
        RangeDimension.DISCOUNT_PCT: "lp.discount_percentage",
        RangeDimension.MARGIN_PCT: "lp.margin_percentage",
    },
    tva="gp.tva_percentage",
    reimbursable="gp.is_reimbursable",
    generic_status="gp.bcb_generic_status",
    product_code="gp.code_13_ref",
)


@dataclass(frozen=True, slots=True)
class PredicateFragment:
    """One opaque SQL predicate and the values it binds, in order."""

    sql: str
    params: tuple[Any, ...]
    role: FragmentRole
    label: str


# Order in which filter groups consume combinators.
_GROUP_RANK: Final[Mapping[FragmentRole, int]] = MappingProxyType(
    {FragmentRole.INCLUSION: 0, FragmentRole.SETTING: 1, FragmentRole.RANGE: 2}
)


def _is_pharmacy_scope(fragment: PredicateFragment) -> bool:
    return fragment.role is FragmentRole.INCLUSION and fragment.label == Dimension.PHARMACY.value


def _is_group(fragment: PredicateFragment) -> bool:
    """Return True for fragments joined by combinators."""
    return fragment.role in _GROUP_RANK and not _is_pharmacy_scope(fragment)


@dataclass(frozen=True, slots=True)
class PredicateSet:
    """Ordered predicate fragments plus their combined parameter vector."""

    fragments: tuple[PredicateFragment, ...] = ()
    combinators: tuple[Combinator, ...] = ()
    param_offset: int = 0

    @property
    def params(self) -> tuple[Any, ...]:
        """Positional parameter vector, in fragment emission order."""
        return tuple(p for frag in self.fragments for p in frag.params)

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)

    @property
    def sql_length(self) -> int:
        """Length of the composed AND-ed predicate text (diagnostics only)."""
        return len(self.where_sql())

    def __iter__(self) -> Iterator[PredicateFragment]:
        return iter(self.fragments)

    def __len__(self) -> int:
        return len(self.fragments)

    def bind_params(self) -> dict[str, Any]:
        """Return ``{"f<n>": value}`` suitable for SQLAlchemy ``text()`` binds.

        Tuples are converted to lists so array parameters bind as arrays.
        """
        out: dict[str, Any] = {}
        for idx, value in enumerate(self.params, start=self.param_offset + 1):
            out[f"f{idx}"] = list(value) if isinstance(value, tuple) else value
        return out

    def where_sql(self, *, honor_combinators: bool = False) -> str:
        """Compose fragments into one boolean expression ("" when empty).

        Args:
            honor_combinators: Join the filter groups with the selection's
                combinators instead of AND. Groups are the non-pharmacy
                inclusions, then the settings, then the ranges. The operator
                before group ``i`` is ``combinators[i - 1]``; a missing
                operator means AND and extra operators are ignored. Pharmacy
                scope and exclusions always stay AND-ed.
        """
        if not self.fragments:
            return ""
        groups = sorted(
            (f for f in self.fragments if _is_group(f)), key=lambda f: _GROUP_RANK[f.role]
        )
        if not honor_combinators or not self.combinators or len(groups) < 2:
            return " AND ".join(f"({f.sql})" for f in self.fragments)

        parts = [f"({groups[0].sql})"]
        for idx, frag in enumerate(groups[1:]):
            op = self.combinators[idx] if idx < len(self.combinators) else Combinator.AND
            parts.append(f"{op.value} ({frag.sql})")
        grouped = "(" + " ".join(parts) + ")"
        scope = [f"({f.sql})" for f in self.fragments if _is_pharmacy_scope(f)]
        rest = [
            f"({f.sql})"
            for f in self.fragments
            if not _is_group(f) and not _is_pharmacy_scope(f)
        ]
        return " AND ".join([*scope, grouped, *rest])

    def and_clause(self, *, honor_combinators: bool = False) -> str:
        """Return ``"AND <predicates>"`` to append to an existing WHERE, or ""."""
        sql = self.where_sql(honor_combinators=honor_combinators)
        return f"AND {sql}" if sql else ""


class _Emitter:
    """Accumulates fragments while numbering placeholders."""

    def __init__(self, offset: int) -> None:
        self._next = offset + 1
        self.fragments: list[PredicateFragment] = []

    def placeholder(self) -> str:
        name = f":f{self._next}"
        self._next += 1
        return name

    def emit(self, sql: str, params: tuple[Any, ...], role: FragmentRole, label: str) -> None:
        self.fragments.append(PredicateFragment(sql=sql, params=params, role=role, label=label))


class PredicateBuilder:
    """Build :class:`PredicateSet` objects for one column layout.

    Args:
        column_map: Allow-listed columns of the target aggregation query.
    """

    def __init__(self, column_map: ColumnMap = DEFAULT_COLUMN_MAP) -> None:
        self._columns = column_map

    @property
    def column_map(self) -> ColumnMap:
        return self._columns

    def build(self, selection: FilterSelection, *, param_offset: int = 0) -> PredicateSet:
        """Translate ``selection`` into predicates.

        Args:
            selection: Filter state of the request.
            param_offset: Number of bind slots reserved before ``:f1``.

        Returns:
            PredicateSet: Fragments and parameters; empty for an empty selection.

        Raises:
            InvalidFilterCombination: If a non-empty filter has no column in
                the map or ``ONLY`` mode is requested without exclusions.
        """
        out = _Emitter(param_offset)
        mode = selection.exclusion_mode

        if mode is ExclusionMode.ONLY:
            self._emit_only_mode(out, selection)
        else:
            self._emit_inclusions(out, selection)
            if mode is ExclusionMode.EXCLUDE:
                self._emit_exclusions(out, selection)

        self._emit_ranges(out, selection)
        self._emit_settings(out, selection)

        fragments = tuple(out.fragments)
        combinators = selection.combinators if mode is not ExclusionMode.ONLY else ()
        return PredicateSet(fragments=fragments, combinators=combinators, param_offset=param_offset)

    # ------------------------------------------------------------------ #
    # Entity sets
    # ------------------------------------------------------------------ #
    def _array_type(self, dim: Dimension) -> str:
        return _ARRAY_TYPES.get(dim, "TEXT[]")

    def _emit_membership(
        self, out: _Emitter, dim: Dimension, values: tuple[str, ...], *, negate: bool
    ) -> None:
        column = self._columns.column_for(dim)
        ph = out.placeholder()
        cast = self._array_type(dim)
        if negate:
            sql = f"{column} <> ALL(CAST({ph} AS {cast}))"
            role = FragmentRole.EXCLUSION
        else:
            sql = f"{column} = ANY(CAST({ph} AS {cast}))"
            role = FragmentRole.INCLUSION
        out.emit(sql, (values,), role, dim.value)

    def _emit_categories(
        self, out: _Emitter, levels: list[tuple[Dimension, tuple[str, ...]]], *, negate: bool
    ) -> None:
        if not levels:
            return
        clauses: list[str] = []
        params: list[Any] = []
        for dim, values in levels:
            column = self._columns.column_for(dim)
            ph = out.placeholder()
            if negate:
                clauses.append(f"{column} <> ALL(CAST({ph} AS TEXT[]))")
            else:
                clauses.append(f"{column} = ANY(CAST({ph} AS TEXT[]))")
            params.append(values)
        joiner = " AND " if negate else " OR "
        role = FragmentRole.EXCLUSION if negate else FragmentRole.INCLUSION
        out.emit(joiner.join(clauses), tuple(params), role, "category")

    def _emit_sets(
        self, out: _Emitter, sets: Mapping[Dimension, tuple[str, ...]], *, negate: bool
    ) -> None:
        categories_done = False
        for dim in Dimension:
            if dim.is_category:
                if not categories_done:
                    levels = [(d, sets[d]) for d in CATEGORY_DIMENSIONS if d in sets]
                    self._emit_categories(out, levels, negate=negate)
                    categories_done = True
                continue
            values = sets.get(dim)
            if values:
                self._emit_membership(out, dim, values, negate=negate)

    def _emit_inclusions(self, out: _Emitter, selection: FilterSelection) -> None:
        self._emit_sets(out, selection.entity_sets, negate=False)

    def _emit_exclusions(self, out: _Emitter, selection: FilterSelection) -> None:
        self._emit_sets(out, selection.exclusions, negate=True)

    def _emit_only_mode(self, out: _Emitter, selection: FilterSelection) -> None:
        targets = [
            (d, selection.excluded(d)) for d in _ONLY_MODE_DIMENSIONS if selection.excluded(d)
        ]
        if not targets:
            raise InvalidFilterCombination(
                "Exclusion mode 'only' requires at least one excluded entity",
                details={"exclusion_mode": ExclusionMode.ONLY.value},
            )

        pharmacies = selection.members(Dimension.PHARMACY)
        if pharmacies:
            self._emit_membership(out, Dimension.PHARMACY, pharmacies, negate=False)

        clauses: list[str] = []
        params: list[Any] = []
        for dim, values in targets:
            column = self._columns.column_for(dim)
            ph = out.placeholder()
            clauses.append(f"{column} = ANY(CAST({ph} AS {self._array_type(dim)}))")
            params.append(values)
        out.emit(" OR ".join(clauses), tuple(params), FragmentRole.INCLUSION, "excluded_only")

    # ------------------------------------------------------------------ #
    # Ranges and settings
    # ------------------------------------------------------------------ #
    def _emit_ranges(self, out: _Emitter, selection: FilterSelection) -> None:
        for dim, rng in selection.range_filters.items():
            column = self._columns.ranges.get(dim)
            if column is None:
                raise InvalidFilterCombination(
                    "Filter is not supported by this analysis", details={"filter": dim.value}
                )
            lo, hi = out.placeholder(), out.placeholder()
            out.emit(
                f"{column} >= {lo} AND {column} <= {hi}",
                (rng.min_value, rng.max_value),
                FragmentRole.RANGE,
                dim.value,
            )

    def _emit_settings(self, out: _Emitter, selection: FilterSelection) -> None:
        cols = self._columns

        if selection.tva_rates:
            column = cols.require_setting("tva", cols.tva)
            ph = out.placeholder()
            out.emit(
                f"{column} = ANY(CAST({ph} AS NUMERIC[]))",
                (selection.tva_rates,),
                FragmentRole.SETTING,
                "tva",
            )

        if selection.reimbursement_status is not ReimbursementStatus.ALL:
            column = cols.require_setting("reimbursable", cols.reimbursable)
            ph = out.placeholder()
            out.emit(
                f"{column} = {ph}",
                (selection.reimbursement_status is ReimbursementStatus.REIMBURSED,),
                FragmentRole.SETTING,
                "reimbursement_status",
            )

        if selection.generic_status is not GenericStatus.ALL:
            column = cols.require_setting("generic_status", cols.generic_status)
            ph = out.placeholder()
            out.emit(
                f"{column} = ANY(CAST({ph} AS TEXT[]))",
                (_GENERIC_STATUS_VALUES[selection.generic_status],),
                FragmentRole.SETTING,
                "generic_status",
            )

        if selection.product_type is not ProductType.ALL:
            column = cols.product_code or cols.dimensions.get(Dimension.PRODUCT)
            column = cols.require_setting("product_type", column)
            ph = out.placeholder()
            op = "LIKE" if selection.product_type is ProductType.MEDICAMENT else "NOT LIKE"
            out.emit(
                f"{column} {op} {ph}",
                (CIP_MEDICAMENT_PREFIX,),
                FragmentRole.SETTING,
                "product_type",
            )
