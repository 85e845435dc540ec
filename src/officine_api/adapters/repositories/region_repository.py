# src/officine_api/adapters/repositories/region_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Region ranking repository.

Regions are the ``area`` of ``data_pharmacy``. Each row carries the region's
total sales, its number of active pharmacies and the average per pharmacy.
"""

from __future__ import annotations

from officine_api.domain.enums.metrics import AnalyticSubject

from .base_repository import AnalyticsRepository, mv_from


class RegionRepository(AnalyticsRepository):
    """Sales totals and per-pharmacy averages per region."""

    subject = AnalyticSubject.REGIONS
    key_field = "region"
    metric_fields = ("sales_ttc", "pharmacy_count", "average_sales")
    percentage_metrics = frozenset()

    def sql_template(self) -> str:
        return f"""
SELECT
    p.area AS region,
    SUM(mv.ttc_sold) AS sales_ttc,
    COUNT(DISTINCT p.id) AS pharmacy_count,
    SUM(mv.ttc_sold) / NULLIF(COUNT(DISTINCT p.id), 0) AS average_sales
{mv_from(joins="JOIN data_pharmacy p ON p.id = mv.pharmacy_id", where="AND p.area IS NOT NULL")}
GROUP BY p.area
"""


__all__ = ["RegionRepository"]
