# src/officine_api/domain/interfaces/query_executor.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Query executor interface.

Purpose:
    Boundary between the analytics engine and the storage engine. The
    executor runs one server-side aggregation with the predicates produced by
    the predicate builder and returns one row per entity.

Layer:
    domain/interfaces

Notes:
    The engine never iterates raw transaction-level rows; grouping and
    aggregation happen in the executor's backing store.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, Protocol

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.services.predicate_builder import PredicateSet

#: Marker replaced by the composed predicates inside an aggregation template.
PREDICATES_MARKER: Final[str] = "{predicates}"


@dataclass(frozen=True, slots=True)
class AggregationSpec:
    """Subject-specific aggregation to run with a predicate set.

    Attributes:
        name: Short name used in logs and metrics (e.g. ``"laboratories"``).
        sql_template: SQL text containing :data:`PREDICATES_MARKER` where the
            ``AND ...`` predicate clause is spliced in.
        params: Base bind parameters (period bounds, drill-down values).
            Their names must not collide with the ``f<n>`` predicate binds.
        key_field: Result column holding the entity key.
        metric_fields: Result columns read as numeric metrics.
        label_field: Result column holding the display label, if any.
        attribute_fields: Result columns read as text attributes.
        honor_combinators: Join filter groups with the selection's
            combinators instead of AND.
    """

    name: str
    sql_template: str
    key_field: str
    metric_fields: tuple[str, ...]
    params: Mapping[str, Any] = field(default_factory=dict)
    label_field: str | None = None
    attribute_fields: tuple[str, ...] = ()
    honor_combinators: bool = False

    def __post_init__(self) -> None:
        if PREDICATES_MARKER not in self.sql_template:
            raise ValueError(f"sql_template for {self.name!r} lacks {PREDICATES_MARKER}")
        clashes = [k for k in self.params if k.startswith("f") and k[1:].isdigit()]
        if clashes:
            raise ValueError(f"Base params clash with predicate binds: {clashes}")
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def render(self, predicates: PredicateSet) -> tuple[str, dict[str, Any]]:
        """Return the final SQL text and the merged bind parameters."""
        clause = predicates.and_clause(honor_combinators=self.honor_combinators)
        sql = self.sql_template.replace(PREDICATES_MARKER, clause)
        return sql, {**self.params, **predicates.bind_params()}


class QueryExecutor(Protocol):
    """Runs aggregation queries against the analytics store."""

    async def execute(
        self, predicates: PredicateSet, spec: AggregationSpec
    ) -> list[EntityMetricRow]:
        """Execute ``spec`` constrained by ``predicates``.

        Implementations must bind every value through parameters and raise
        on failure; retries, if any, belong to the implementation.
        """
        ...


__all__ = ["PREDICATES_MARKER", "AggregationSpec", "QueryExecutor"]
