# src/officine_api/adapters/repositories/base_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""
AnalyticsRepository: shared mechanics of every subject repository.

Purpose:
    A subject repository owns a column layout, one aggregation SQL template
    and the metric semantics of its subject (which metric ranks, which
    metrics are percentages). ``predicates`` builds the selection's predicates
    once per request; ``fetch`` binds the period bounds and delegates
    execution to a QueryExecutor.

Layer: adapters / repositories

Notes:
    * No ranking or comparison logic here; repositories return one period's
      unordered rows.
    * Period bounds bind as ``:period_start`` / ``:period_end``; predicates
      bind as ``:f1..:fn`` and never collide with them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, ClassVar, Final

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import DateInterval
from officine_api.domain.enums.filters import Dimension
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.interfaces.query_executor import AggregationSpec, QueryExecutor
from officine_api.domain.services.predicate_builder import (
    DEFAULT_COLUMN_MAP,
    ColumnMap,
    PredicateBuilder,
    PredicateSet,
)

#: Column layout of queries over ``mv_product_stats_monthly mv`` joined to the
#: product catalogue (``gp``) and the latest product prices (``lp``).
MV_COLUMN_MAP: Final[ColumnMap] = DEFAULT_COLUMN_MAP.with_overrides(
    dimensions={
        Dimension.PHARMACY: "mv.pharmacy_id",
        Dimension.LABORATORY: "mv.laboratory_name",
        Dimension.PRODUCT: "mv.ean13",
    },
    product_code="mv.ean13",
)

#: Sales/purchase/margin aggregates shared by the monthly-stats subjects.
SALES_METRICS_SQL: Final[str] = """
    SUM(mv.ttc_sold) AS sales_ttc,
    SUM(mv.ht_sold) AS sales_ht,
    SUM(mv.qty_sold) AS sales_qty,
    SUM(mv.ht_purchased) AS purchases_ht,
    SUM(mv.qty_purchased) AS purchases_qty,
    SUM(mv.margin_sold) AS margin_ht,
    CASE
        WHEN SUM(mv.ht_sold) = 0 THEN 0
        ELSE (SUM(mv.margin_sold) / SUM(mv.ht_sold)) * 100
    END AS margin_rate"""

SALES_METRIC_FIELDS: Final[tuple[str, ...]] = (
    "sales_ttc",
    "sales_ht",
    "sales_qty",
    "purchases_ht",
    "purchases_qty",
    "margin_ht",
    "margin_rate",
)

#: FROM/WHERE block of the monthly-stats subjects. ``{joins}`` receives
#: subject-specific joins, ``{where}`` extra static conditions.
MV_FROM_SQL: Final[str] = """
FROM mv_product_stats_monthly mv
LEFT JOIN data_globalproduct gp ON gp.code_13_ref = mv.ean13
LEFT JOIN mv_latest_product_prices lp ON lp.product_id = mv.product_id
{joins}
WHERE mv.month >= CAST(:period_start AS DATE)
  AND mv.month <= CAST(:period_end AS DATE)
  AND mv.ean13 != 'NO-EAN'
  {where}
  {predicates}"""


def mv_from(*, joins: str = "", where: str = "") -> str:
    """Return the monthly-stats FROM/WHERE block with the given extras."""
    return MV_FROM_SQL.replace("{joins}", joins).replace("{where}", where)


class AnalyticsRepository:
    """Base class for subject repositories.

    Subclasses set the class attributes below and implement
    :meth:`sql_template`.

    Args:
        executor: Query executor running the aggregation.
        honor_combinators: Join filter groups with the selection's AND/OR
            operators instead of AND.
    """

    subject: ClassVar[AnalyticSubject]
    column_map: ClassVar[ColumnMap] = MV_COLUMN_MAP
    key_field: ClassVar[str]
    label_field: ClassVar[str | None] = None
    attribute_fields: ClassVar[tuple[str, ...]] = ()
    metric_fields: ClassVar[tuple[str, ...]] = SALES_METRIC_FIELDS
    rank_metric: ClassVar[str] = "sales_ttc"
    share_metric: ClassVar[str | None] = "sales_ttc"
    percentage_metrics: ClassVar[frozenset[str]] = frozenset({"margin_rate"})

    def __init__(self, executor: QueryExecutor, *, honor_combinators: bool = False) -> None:
        self._executor = executor
        self._builder = PredicateBuilder(self.column_map)
        self._honor_combinators = honor_combinators

    @property
    def cache_scope(self) -> Mapping[str, Any]:
        """Request inputs besides the selection that shape the result."""
        return MappingProxyType({})

    def sql_template(self) -> str:
        """Return the aggregation SQL containing the ``{predicates}`` marker."""
        raise NotImplementedError

    def base_params(self, interval: DateInterval) -> dict[str, Any]:
        return {"period_start": interval.start, "period_end": interval.end}

    def aggregation(self, interval: DateInterval) -> AggregationSpec:
        """Build the aggregation spec for one period."""
        return AggregationSpec(
            name=self.subject.value,
            sql_template=self.sql_template(),
            key_field=self.key_field,
            metric_fields=self.metric_fields,
            params=self.base_params(interval),
            label_field=self.label_field,
            attribute_fields=self.attribute_fields,
            honor_combinators=self._honor_combinators,
        )

    def post_process(self, rows: Sequence[EntityMetricRow]) -> list[EntityMetricRow]:
        """Hook applied to the executor's rows; identity by default."""
        return list(rows)

    def predicates(self, selection: FilterSelection) -> PredicateSet:
        """Build the predicates of ``selection`` against :attr:`column_map`.

        Raises:
            InvalidFilterCombination: If the selection uses a filter this
                subject has no column for.
        """
        return self._builder.build(selection)

    async def fetch(
        self,
        selection: FilterSelection,
        interval: DateInterval,
        *,
        predicates: PredicateSet | None = None,
    ) -> list[EntityMetricRow]:
        """Aggregate one period's metrics for ``selection``.

        Args:
            selection: Filter state of the request.
            interval: Period to aggregate.
            predicates: Prebuilt predicates of ``selection``; built here when
                omitted.

        Raises:
            InvalidFilterCombination: If ``predicates`` is omitted and the
                selection uses a filter this subject has no column for.
            ExecutorFailure: If the query fails.
        """
        if predicates is None:
            predicates = self.predicates(selection)
        rows = await self._executor.execute(predicates, self.aggregation(interval))
        return self.post_process(rows)


__all__ = [
    "MV_COLUMN_MAP",
    "SALES_METRICS_SQL",
    "SALES_METRIC_FIELDS",
    "AnalyticsRepository",
    "mv_from",
]
