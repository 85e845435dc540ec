# src/officine_api/application/use_cases/analytics/get_subject_ranking.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Use case: ranked period comparison for one analytic subject.

Synopsis:
    Resolve the analysis periods, fetch both periods concurrently through the
    subject repository, rank and annotate the result, and return one page.

Responsibilities:
    * Validate periods and build predicates before any fetch (fail fast,
      zero wasted queries).
    * Read-through cache keyed by a content hash of the normalized request.
    * Paginate after ranking so ranks stay global.
    * Report query time and whether the result came from cache.

Layer:
    application/use_cases/analytics
"""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from officine_api.application.interfaces.cache_port import CachePort, read_through_json
from officine_api.application.schemas.dto.analytics import (
    PeriodDTO,
    RankedEntityDTO,
    RankingPageDTO,
)
from officine_api.application.services.comparison_orchestrator import ComparisonOrchestrator
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import PeriodContext, PeriodRequest
from officine_api.domain.interfaces.repositories.subject_repository import SubjectRepository
from officine_api.domain.services.period_resolver import resolve_period_context
from officine_api.domain.services.selection_fingerprint import selection_fingerprint
from officine_api.infrastructure.logging.logger import get_json_logger
from officine_api.infrastructure.observability.metrics import (
    get_analytics_request_latency_seconds,
)

logger = get_json_logger(__name__)


@dataclass(frozen=True, slots=True)
class RankingRequest:
    """Input of :class:`GetSubjectRankingUseCase`.

    Attributes:
        selection: Filter state, already scoped by the caller's identity.
        period: Raw period bounds.
        page: 1-based page number.
        page_size: Rows per page.
    """

    selection: FilterSelection
    period: PeriodRequest
    page: int = 1
    page_size: int = 50

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")


@dataclass(frozen=True, slots=True)
class RankingResult:
    """Full (unpaginated) ranking with its resolved periods."""

    items: list[RankedEntityDTO]
    period: PeriodContext
    cached: bool


class GetSubjectRankingUseCase:
    """Rank one subject's entities over the current and comparison periods.

    Args:
        repository: Subject repository providing ``fetch`` and metric semantics.
        orchestrator: Concurrent fetch/join/rank coordinator.
        cache: Optional JSON cache; ``None`` disables caching.
        cache_ttl_s: TTL of cached rankings.
    """

    def __init__(
        self,
        *,
        repository: SubjectRepository,
        orchestrator: ComparisonOrchestrator,
        cache: CachePort | None = None,
        cache_ttl_s: int = 0,
    ) -> None:
        self._repo = repository
        self._orchestrator = orchestrator
        self._cache = cache
        self._ttl = cache_ttl_s

    @property
    def subject(self) -> str:
        return self._repo.subject.value

    async def execute(self, req: RankingRequest) -> RankingPageDTO:
        """Return one page of the ranking.

        Raises:
            InvalidRange: Invalid period bounds (before any fetch).
            InvalidFilterCombination: Selection not applicable to the subject
                (before any fetch).
            ExecutorFailure: A period fetch failed or timed out.
        """
        started = time.perf_counter()
        result = await self.rank_all(req.selection, req.period)
        return self.paginate(result, req, started=started)

    def paginate(
        self, result: RankingResult, req: RankingRequest, *, started: float
    ) -> RankingPageDTO:
        """Slice ``result`` to the requested page and record timing.

        Args:
            result: Full ranking from :meth:`rank_all`.
            req: Request carrying the page coordinates.
            started: ``time.perf_counter()`` value taken when the request began.
        """
        offset = (req.page - 1) * req.page_size
        items = result.items[offset : offset + req.page_size]
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        get_analytics_request_latency_seconds().labels(
            subject=self.subject, cached=str(result.cached).lower()
        ).observe(elapsed_ms / 1000)
        logger.info(
            "analytics.ranking.success",
            extra={
                "subject": self.subject,
                "total": len(result.items),
                "returned": len(items),
                "page": req.page,
                "cached": result.cached,
                "query_time_ms": elapsed_ms,
            },
        )

        comparison = result.period.comparison
        return RankingPageDTO(
            subject=self.subject,
            items=items,
            total=len(result.items),
            page=req.page,
            page_size=req.page_size,
            current_period=PeriodDTO.from_domain(result.period.current),
            comparison_period=PeriodDTO.from_domain(comparison) if comparison else None,
            query_time_ms=elapsed_ms,
            cached=result.cached,
        )

    async def rank_all(self, selection: FilterSelection, period: PeriodRequest) -> RankingResult:
        """Resolve periods and return every ranked entity (no pagination)."""
        context = resolve_period_context(period)
        predicates = self._repo.predicates(selection)
        fetch = functools.partial(self._repo.fetch, predicates=predicates)
        logger.info(
            "analytics.ranking.start",
            extra={
                "subject": self.subject,
                "current": context.current.as_dict(),
                "comparison": context.comparison.as_dict() if context.comparison else None,
                "empty_selection": selection.is_empty,
            },
        )

        async def _load() -> dict[str, Any]:
            rows = await self._orchestrator.run(
                selection,
                context,
                fetch,
                rank_metric=self._repo.rank_metric,
                percentage_metrics=self._repo.percentage_metrics,
                share_metric=self._repo.share_metric,
            )
            items = [RankedEntityDTO.from_domain(r).to_payload() for r in rows]
            return {"items": items}

        if self._cache is None:
            payload, hit = await _load(), False
        else:
            digest = selection_fingerprint(
                self.subject, selection, context, self._repo.cache_scope
            )
            key = f"ranking:{self.subject}:{digest}"
            cached_payload, hit = await read_through_json(
                self._cache, key, ttl=self._ttl, loader=_load
            )
            payload = dict(cached_payload or {"items": []})

        try:
            items = [RankedEntityDTO.from_payload(raw) for raw in payload["items"]]
        except (KeyError, TypeError, ValidationError):
            if not hit:
                raise
            # Stale or corrupt cache entry: recompute without the cache.
            logger.warning("analytics.ranking.cache_corrupt", extra={"subject": self.subject})
            items = [RankedEntityDTO.from_payload(raw) for raw in (await _load())["items"]]
            hit = False

        return RankingResult(items=items, period=context, cached=hit)
