# src/officine_api/dependencies/analytics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Dependency wiring for the analytics engine (executor, cache, use cases).

Overview:
    Provides FastAPI dependency providers that assemble one subject
    repository, the comparison orchestrator and the ranking use cases per
    request.

Layer:
    dependencies

Design:
    * One shared :class:`SqlAlchemyQueryExecutor`; each fetch opens its own
      session, so the executor itself holds no connection.
    * The Redis JSON cache is used only when ``ANALYTICS_CACHE_ENABLED``.
    * Combinator-aware composition follows ``FILTER_COMBINATORS_ENABLED``.
    * Tests override :func:`get_analytics_factory` (or its inputs) through
      ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Final

from fastapi import Depends

from officine_api.adapters.executors.sqlalchemy_executor import SqlAlchemyQueryExecutor
from officine_api.adapters.repositories.base_repository import AnalyticsRepository
from officine_api.adapters.repositories.category_repository import CategoryRepository
from officine_api.adapters.repositories.generic_group_repository import GenericGroupRepository
from officine_api.adapters.repositories.laboratory_repository import LaboratoryRepository
from officine_api.adapters.repositories.pharmacy_repository import PharmacyRepository
from officine_api.adapters.repositories.product_repository import ProductRepository
from officine_api.adapters.repositories.region_repository import RegionRepository
from officine_api.adapters.repositories.supplier_repository import SupplierRepository
from officine_api.application.interfaces.cache_port import CachePort
from officine_api.application.services.comparison_orchestrator import ComparisonOrchestrator
from officine_api.application.use_cases.analytics.get_regional_stats import (
    GetRegionalStatsUseCase,
)
from officine_api.application.use_cases.analytics.get_subject_ranking import (
    GetSubjectRankingUseCase,
)
from officine_api.config.settings import Settings, get_settings
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.interfaces.query_executor import QueryExecutor
from officine_api.infrastructure.caching.json_cache import RedisJsonCache

_REPOSITORIES: Final[dict[AnalyticSubject, type[AnalyticsRepository]]] = {
    AnalyticSubject.LABORATORIES: LaboratoryRepository,
    AnalyticSubject.PRODUCTS: ProductRepository,
    AnalyticSubject.PHARMACIES: PharmacyRepository,
    AnalyticSubject.SUPPLIERS: SupplierRepository,
    AnalyticSubject.GENERIC_GROUPS: GenericGroupRepository,
    AnalyticSubject.REGIONS: RegionRepository,
}

_executor: QueryExecutor | None = None


def get_query_executor() -> QueryExecutor:
    """Return the process-wide SQLAlchemy query executor."""
    global _executor
    if _executor is None:
        _executor = SqlAlchemyQueryExecutor()
    return _executor


def get_analytics_cache(
    settings: Annotated[Settings, Depends(get_settings)],
) -> CachePort | None:
    """Return the Redis JSON cache, or ``None`` when analytics caching is off."""
    if not settings.analytics_cache_enabled:
        return None
    return RedisJsonCache()


def build_repository(
    subject: AnalyticSubject,
    executor: QueryExecutor,
    *,
    path: Sequence[str] = (),
    honor_combinators: bool = False,
) -> AnalyticsRepository:
    """Instantiate the repository of ``subject``."""
    if subject is AnalyticSubject.CATEGORIES:
        return CategoryRepository(executor, path=path, honor_combinators=honor_combinators)
    return _REPOSITORIES[subject](executor, honor_combinators=honor_combinators)


class AnalyticsUseCaseFactory:
    """Builds request-scoped analytics use cases from shared infrastructure.

    Args:
        settings: Application settings.
        executor: Query executor shared by all repositories.
        cache: Optional JSON cache.
    """

    def __init__(
        self, *, settings: Settings, executor: QueryExecutor, cache: CachePort | None
    ) -> None:
        self._settings = settings
        self._executor = executor
        self._cache = cache

    @property
    def settings(self) -> Settings:
        return self._settings

    def ranking(
        self, subject: AnalyticSubject, *, path: Sequence[str] = ()
    ) -> GetSubjectRankingUseCase:
        repository = build_repository(
            subject,
            self._executor,
            path=path,
            honor_combinators=self._settings.filter_combinators_enabled,
        )
        return GetSubjectRankingUseCase(
            repository=repository,
            orchestrator=ComparisonOrchestrator(
                timeout_s=self._settings.analytics_fetch_timeout_s, subject=subject.value
            ),
            cache=self._cache,
            cache_ttl_s=self._settings.analytics_cache_ttl_s,
        )

    def regional(self) -> GetRegionalStatsUseCase:
        return GetRegionalStatsUseCase(ranking=self.ranking(AnalyticSubject.REGIONS))


def get_analytics_factory(
    settings: Annotated[Settings, Depends(get_settings)],
    executor: Annotated[QueryExecutor, Depends(get_query_executor)],
    cache: Annotated[CachePort | None, Depends(get_analytics_cache)],
) -> AnalyticsUseCaseFactory:
    """FastAPI provider of :class:`AnalyticsUseCaseFactory`."""
    return AnalyticsUseCaseFactory(settings=settings, executor=executor, cache=cache)


__all__ = [
    "AnalyticsUseCaseFactory",
    "build_repository",
    "get_analytics_cache",
    "get_analytics_factory",
    "get_query_executor",
]
