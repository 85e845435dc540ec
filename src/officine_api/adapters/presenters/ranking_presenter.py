# src/officine_api/adapters/presenters/ranking_presenter.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Ranking presenter.

Purpose:
    Shape ranking DTOs into the analytics wire format:

        {
          "<subject>": [...rows...],
          "pagination": {"page", "pageSize", "total", "totalPages"},
          "currentPeriod": {...},
          "comparisonPeriod": {...} | null,
          "queryTime": <ms>,
          "cached": <bool>
        }

    and attach standard headers (``X-Request-ID``, ``X-Cache``).

Layer:
    adapters/presenters
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import Response
from pydantic.alias_generators import to_camel

from officine_api.adapters.schemas.http.analytics_schemas import (
    PeriodHTTP,
    RankedEntityHTTP,
    RegionDeviationHTTP,
)
from officine_api.adapters.schemas.http.envelopes import PaginationHTTP
from officine_api.application.schemas.dto.analytics import RankingPageDTO, RegionalStatsDTO

CACHE_HEADER = "X-Cache"


@dataclass(slots=True)
class PresentResult:
    """Presentation result.

    Attributes:
        body: JSON-ready response body.
        headers: Extra HTTP headers to apply.
    """

    body: dict[str, Any]
    headers: Mapping[str, str]


class RankingPresenter:
    """Build ranking response bodies from application DTOs."""

    def present_ranking(
        self, page: RankingPageDTO, *, trace_id: str | None = None
    ) -> PresentResult:
        total_pages = math.ceil(page.total / page.page_size) if page.total else 0
        comparison = page.comparison_period
        body: dict[str, Any] = {
            to_camel(page.subject): [
                RankedEntityHTTP.from_dto(item).model_dump_http() for item in page.items
            ],
            "pagination": PaginationHTTP(
                page=page.page,
                page_size=page.page_size,
                total=page.total,
                total_pages=total_pages,
            ).model_dump_http(),
            "currentPeriod": PeriodHTTP.from_dto(page.current_period).model_dump_http(),
            "comparisonPeriod": (
                PeriodHTTP.from_dto(comparison).model_dump_http() if comparison else None
            ),
            "queryTime": page.query_time_ms,
            "cached": page.cached,
        }
        return PresentResult(body=body, headers=self._headers(page, trace_id))

    def present_regional(
        self, stats: RegionalStatsDTO, *, trace_id: str | None = None
    ) -> PresentResult:
        result = self.present_ranking(stats.ranking, trace_id=trace_id)
        result.body["national"] = {
            "totalSales": str(stats.national_total_sales),
            "pharmacyCount": stats.national_pharmacy_count,
            "averageSales": str(stats.national_average_sales),
        }
        result.body["deviations"] = [
            RegionDeviationHTTP(
                region=d.region, average_sales=d.average_sales, deviation_pct=d.deviation_pct
            ).model_dump_http()
            for d in stats.deviations
        ]
        return result

    @staticmethod
    def _headers(page: RankingPageDTO, trace_id: str | None) -> dict[str, str]:
        headers = {CACHE_HEADER: "HIT" if page.cached else "MISS"}
        if trace_id:
            headers["X-Request-ID"] = trace_id
        return headers

    @staticmethod
    def apply_headers(result: PresentResult, response: Response) -> None:
        """Apply presenter headers to the outgoing response."""
        response.headers.update(dict(result.headers))


__all__ = ["CACHE_HEADER", "PresentResult", "RankingPresenter"]
