# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Use case: regional sales ranking against the national average."""

from __future__ import annotations

import time

from officine_api.application.schemas.dto.analytics import RegionalStatsDTO, RegionDeviationDTO
from officine_api.application.use_cases.analytics.get_subject_ranking import (
    GetSubjectRankingUseCase,
    RankingRequest,
)
from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.services.regional_deviation import compute_regional_deviation


class GetRegionalStatsUseCase:
    """Rank regions and compare each region's average sales per pharmacy.

    The national benchmark covers every region of the selection, not only
    the returned page.
    """

    def __init__(self, *, ranking: GetSubjectRankingUseCase) -> None:
        self._ranking = ranking

    async def execute(self, req: RankingRequest) -> RegionalStatsDTO:
        started = time.perf_counter()
        full = await self._ranking.rank_all(req.selection, req.period)

        rows = [
            EntityMetricRow(
                entity_key=item.entity_key,
                label=item.label,
                metrics={name: value.current for name, value in item.metrics.items()},
            )
            for item in full.items
        ]
        national, deviations = compute_regional_deviation(rows)

        page = self._ranking.paginate(full, req, started=started)
        on_page = {item.entity_key for item in page.items}

        return RegionalStatsDTO(
            ranking=page,
            national_total_sales=national.total_sales,
            national_pharmacy_count=national.pharmacy_count,
            national_average_sales=national.average_sales,
            deviations=[
                RegionDeviationDTO(
                    region=d.region,
                    average_sales=d.average_sales,
                    deviation_pct=d.deviation_pct,
                )
                for d in deviations
                if d.region in on_page
            ],
        )


__all__ = ["GetRegionalStatsUseCase"]
