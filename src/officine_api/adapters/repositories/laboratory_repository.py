# src/officine_api/adapters/repositories/laboratory_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Laboratory ranking repository (monthly product stats grouped by laboratory)."""

from __future__ import annotations

from officine_api.domain.enums.metrics import AnalyticSubject

from .base_repository import SALES_METRICS_SQL, AnalyticsRepository, mv_from


class LaboratoryRepository(AnalyticsRepository):
    """Sales, purchases and margin per laboratory."""

    subject = AnalyticSubject.LABORATORIES
    key_field = "laboratory_name"

    def sql_template(self) -> str:
        return f"""
SELECT
    mv.laboratory_name AS laboratory_name,{SALES_METRICS_SQL}
{mv_from()}
GROUP BY mv.laboratory_name
"""


__all__ = ["LaboratoryRepository"]
