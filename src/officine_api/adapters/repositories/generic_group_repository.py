# src/officine_api/adapters/repositories/generic_group_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Generic group ranking repository."""

from __future__ import annotations

from officine_api.domain.enums.metrics import AnalyticSubject

from .base_repository import SALES_METRICS_SQL, AnalyticsRepository, mv_from


class GenericGroupRepository(AnalyticsRepository):
    """Sales, purchases and margin per generic group.

    Products outside any generic group are left out.
    """

    subject = AnalyticSubject.GENERIC_GROUPS
    key_field = "generic_group"
    metric_fields = (
        "sales_ttc",
        "sales_qty",
        "purchases_ht",
        "purchases_qty",
        "margin_ht",
        "margin_rate",
    )

    def sql_template(self) -> str:
        return f"""
SELECT
    gp.bcb_generic_group AS generic_group,{SALES_METRICS_SQL}
{mv_from(where="AND gp.bcb_generic_group IS NOT NULL")}
GROUP BY gp.bcb_generic_group
"""


__all__ = ["GenericGroupRepository"]
