# src/officine_api/adapters/repositories/pharmacy_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Pharmacy ranking repository."""

from __future__ import annotations

from officine_api.domain.enums.metrics import AnalyticSubject

from .base_repository import SALES_METRICS_SQL, AnalyticsRepository, mv_from


class PharmacyRepository(AnalyticsRepository):
    """Sales, purchases and margin per pharmacy, labelled by pharmacy name.

    The pharmacy's region (``data_pharmacy.area``) is returned as an attribute.
    """

    subject = AnalyticSubject.PHARMACIES
    key_field = "pharmacy_id"
    label_field = "pharmacy_name"
    attribute_fields = ("region",)

    def sql_template(self) -> str:
        return f"""
SELECT
    CAST(mv.pharmacy_id AS TEXT) AS pharmacy_id,
    MAX(p.name) AS pharmacy_name,
    MAX(p.area) AS region,{SALES_METRICS_SQL}
{mv_from(joins="JOIN data_pharmacy p ON p.id = mv.pharmacy_id")}
GROUP BY mv.pharmacy_id
"""


__all__ = ["PharmacyRepository"]
