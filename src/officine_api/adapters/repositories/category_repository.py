# src/officine_api/adapters/repositories/category_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Category drill-down repository.

Purpose:
    Rank the segments of one level of the six-level category hierarchy. The
    drill-down path selects the level: an empty path groups by level 0,
    ``["Drugs"]`` groups by level 1 restricted to level-0 segment "Drugs",
    and so on.

Layer: adapters / repositories

Notes:
    * A path deeper than the hierarchy has no child level; the repository
      returns no rows without querying.
    * Path segments bind as ``:path_<level>``.
    * Blank and ``'NaN'`` segments are not real categories and are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Final

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import DateInterval
from officine_api.domain.enums.filters import CATEGORY_LEVEL_DIMENSIONS, Dimension
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.interfaces.query_executor import QueryExecutor
from officine_api.domain.services.predicate_builder import PredicateSet

from .base_repository import SALES_METRICS_SQL, AnalyticsRepository, mv_from

#: Deepest level that can be grouped on.
MAX_CATEGORY_LEVEL: Final[int] = len(CATEGORY_LEVEL_DIMENSIONS) - 1


class CategoryRepository(AnalyticsRepository):
    """Sales, purchases and margin per category segment at one drill-down level.

    Args:
        executor: Query executor running the aggregation.
        path: Parent segments, shallowest first.
        honor_combinators: See :class:`AnalyticsRepository`.
    """

    subject = AnalyticSubject.CATEGORIES
    key_field = "category"

    def __init__(
        self,
        executor: QueryExecutor,
        *,
        path: Sequence[str] = (),
        honor_combinators: bool = False,
    ) -> None:
        super().__init__(executor, honor_combinators=honor_combinators)
        self._path = tuple(path)

    @property
    def path(self) -> tuple[str, ...]:
        return self._path

    @property
    def level(self) -> int:
        return len(self._path)

    @property
    def cache_scope(self) -> Mapping[str, Any]:
        return MappingProxyType({"path": list(self._path)})

    def _column(self, level: int) -> str:
        return self.column_map.column_for(Dimension.for_category_level(level))

    def sql_template(self) -> str:
        column = self._column(self.level)
        path_where = "".join(
            f"AND {self._column(i)} = :path_{i}\n  " for i in range(len(self._path))
        )
        where = f"{path_where}AND {column} IS NOT NULL AND {column} NOT IN ('', 'NaN')"
        return f"""
SELECT
    {column} AS category,{SALES_METRICS_SQL}
{mv_from(where=where)}
GROUP BY {column}
"""

    def base_params(self, interval: DateInterval) -> dict[str, Any]:
        params = super().base_params(interval)
        params.update({f"path_{i}": segment for i, segment in enumerate(self._path)})
        return params

    async def fetch(
        self,
        selection: FilterSelection,
        interval: DateInterval,
        *,
        predicates: PredicateSet | None = None,
    ) -> list[EntityMetricRow]:
        if self.level > MAX_CATEGORY_LEVEL:
            return []
        return await super().fetch(selection, interval, predicates=predicates)


__all__ = ["MAX_CATEGORY_LEVEL", "CategoryRepository"]
