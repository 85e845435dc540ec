# src/officine_api/domain/interfaces/repositories/subject_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analytic subject repository interface.

Purpose:
    One repository per analytic subject (laboratories, products, ...). A
    repository knows its column layout, aggregation and metric semantics and
    fetches one period's metrics for a filter selection.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import DateInterval
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.services.predicate_builder import PredicateSet


class SubjectRepository(Protocol):
    """Protocol implemented by every analytic subject repository."""

    subject: AnalyticSubject
    rank_metric: str
    share_metric: str | None
    percentage_metrics: frozenset[str]
    #: Request-scoped inputs besides the selection that change the result
    #: (e.g. a category drill-down path); part of the cache key.
    cache_scope: Mapping[str, Any]

    def predicates(self, selection: FilterSelection) -> PredicateSet:
        """Build the predicates of ``selection`` for this subject's columns.

        Called once per request, before any fetch starts.

        Raises:
            InvalidFilterCombination: If the selection uses a filter this
                subject cannot apply.
        """
        ...

    async def fetch(
        self,
        selection: FilterSelection,
        interval: DateInterval,
        *,
        predicates: PredicateSet | None = None,
    ) -> list[EntityMetricRow]:
        """Return aggregated metrics per entity for ``interval``.

        Args:
            selection: Filter state (already scoped by the caller).
            interval: Closed date interval to aggregate.
            predicates: Result of :meth:`predicates` for ``selection``; built
                on the fly when omitted.

        Returns:
            One row per entity, unordered.

        Raises:
            InvalidFilterCombination: If the selection uses a filter this
                subject cannot apply.
        """
        ...


__all__ = ["SubjectRepository"]
