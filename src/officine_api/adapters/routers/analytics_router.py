# src/officine_api/adapters/routers/analytics_router.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analytics Router (v1).

Synopsis:
    HTTP surface of the ranked period-comparison analytics. Every endpoint
    accepts the same filter body, ranks one subject's entities over the
    analysis period and, when asked, a comparison period.

Endpoints:
    POST /v1/analytics/laboratories
    POST /v1/analytics/products
    POST /v1/analytics/pharmacies
    POST /v1/analytics/suppliers
    POST /v1/analytics/generic-groups
    POST /v1/analytics/categories      (drill-down via ``path``)
    POST /v1/analytics/regions         (adds the national benchmark)

Design:
    * Presentation-only: parses the body, delegates to a use case, shapes
      the response through :class:`RankingPresenter`.
    * Domain errors propagate to the application exception handlers, which
      render the canonical error envelope (400 for invalid dates/filters,
      500 for executor failures).

Layer:
    adapters/routers
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, Response, status

from officine_api.adapters.presenters.ranking_presenter import RankingPresenter
from officine_api.adapters.routers.base_router import BaseRouter
from officine_api.adapters.schemas.http.analytics_schemas import AnalyticsQueryHTTP
from officine_api.application.use_cases.analytics.get_subject_ranking import RankingRequest
from officine_api.dependencies.analytics import AnalyticsUseCaseFactory, get_analytics_factory
from officine_api.domain.enums.metrics import AnalyticSubject

router = BaseRouter(version="v1", resource="analytics", tags=["Analytics"])
_presenter = RankingPresenter()


class AnalyticsResource(str, Enum):
    """URL segment of the ranking endpoints."""

    LABORATORIES = "laboratories"
    PRODUCTS = "products"
    PHARMACIES = "pharmacies"
    SUPPLIERS = "suppliers"
    GENERIC_GROUPS = "generic-groups"
    CATEGORIES = "categories"

    @property
    def subject(self) -> AnalyticSubject:
        return AnalyticSubject(self.value.replace("-", "_"))


def _ranking_request(body: AnalyticsQueryHTTP, factory: AnalyticsUseCaseFactory) -> RankingRequest:
    settings = factory.settings
    page_size = body.page_size or settings.default_page_size
    if page_size > settings.max_page_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"pageSize must be <= {settings.max_page_size}",
        )
    return RankingRequest(
        selection=body.to_selection(),
        period=body.to_period(),
        page=body.page,
        page_size=page_size,
    )


def _trace_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post(
    "/regions",
    status_code=status.HTTP_200_OK,
    summary="Rank regions and compare them with the national average",
)
async def post_regional_stats(
    body: AnalyticsQueryHTTP,
    request: Request,
    response: Response,
    factory: Annotated[AnalyticsUseCaseFactory, Depends(get_analytics_factory)],
) -> dict[str, Any]:
    """Return the regional ranking plus each region's deviation from the national average."""
    req = _ranking_request(body, factory)
    stats = await factory.regional().execute(req)
    result = _presenter.present_regional(stats, trace_id=_trace_id(request))
    _presenter.apply_headers(result, response)
    return result.body


@router.post(
    "/{resource}",
    status_code=status.HTTP_200_OK,
    summary="Rank one subject's entities with period comparison",
)
async def post_subject_ranking(
    resource: AnalyticsResource,
    body: AnalyticsQueryHTTP,
    request: Request,
    response: Response,
    factory: Annotated[AnalyticsUseCaseFactory, Depends(get_analytics_factory)],
) -> dict[str, Any]:
    """Return one page of ranked, evolution-annotated entities.

    Ranks are global across pages. Evolutions are absent when no comparison
    period was requested.
    """
    req = _ranking_request(body, factory)
    use_case = factory.ranking(resource.subject, path=body.path)
    page = await use_case.execute(req)
    result = _presenter.present_ranking(page, trace_id=_trace_id(request))
    _presenter.apply_headers(result, response)
    return result.body


__all__ = ["AnalyticsResource", "router"]
