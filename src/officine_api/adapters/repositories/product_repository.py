# src/officine_api/adapters/repositories/product_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Product ranking repository.

Products are keyed by EAN13. The label is the catalogue product label and
the owning laboratory travels as an attribute.
"""

from __future__ import annotations

from officine_api.domain.enums.metrics import AnalyticSubject

from .base_repository import SALES_METRICS_SQL, AnalyticsRepository, mv_from


class ProductRepository(AnalyticsRepository):
    """Sales, purchases and margin per product (EAN13)."""

    subject = AnalyticSubject.PRODUCTS
    key_field = "ean13"
    label_field = "product_label"
    attribute_fields = ("laboratory_name",)

    def sql_template(self) -> str:
        return f"""
SELECT
    mv.ean13 AS ean13,
    MAX(mv.product_label) AS product_label,
    MAX(mv.laboratory_name) AS laboratory_name,{SALES_METRICS_SQL}
{mv_from()}
GROUP BY mv.ean13
"""


__all__ = ["ProductRepository"]
