# src/officine_api/adapters/repositories/supplier_repository.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Supplier repository (wholesaler purchase analysis on generics).

Purpose:
    Aggregate received purchase order lines of generic and originator
    products per wholesaler bucket. Supplier names are folded into four
    fixed buckets: OCP (including OCR), ALLIANCE, CERP and AUTRE.

Layer: adapters / repositories

Notes:
    * Purchases are valued at the latest positive weighted average price of
      the product's inventory snapshots.
    * Every bucket is always returned; buckets without orders in the period
      carry zero metrics so the comparison never loses a supplier.
    * Orders are dated by delivery date.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Final

from officine_api.domain.entities.entity_metrics import EntityMetricRow
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.services.predicate_builder import DEFAULT_COLUMN_MAP

from .base_repository import AnalyticsRepository

#: Supplier buckets, in display order.
SUPPLIER_BUCKETS: Final[tuple[str, ...]] = ("OCP", "ALLIANCE", "CERP", "AUTRE")

_SQL: Final[str] = """
WITH supplier_orders AS (
    SELECT
        o.id AS order_id,
        CASE
            WHEN s.name ILIKE '%OCP%' OR s.name ILIKE '%OCR%' THEN 'OCP'
            WHEN s.name ILIKE '%ALLIANCE%' THEN 'ALLIANCE'
            WHEN s.name ILIKE '%CERP%' THEN 'CERP'
            ELSE 'AUTRE'
        END AS supplier_category,
        po.product_id,
        po.qte_r,
        COALESCE(closest_snap.weighted_average_price, 0) AS unit_price
    FROM data_order o
    INNER JOIN data_supplier s ON o.supplier_id = s.id
    INNER JOIN data_productorder po ON po.order_id = o.id
    INNER JOIN data_internalproduct ip ON po.product_id = ip.id
    INNER JOIN data_globalproduct gp ON ip.code_13_ref_id = gp.code_13_ref
    LEFT JOIN mv_latest_product_prices lp ON po.product_id = lp.product_id
    LEFT JOIN LATERAL (
        SELECT ins.weighted_average_price
        FROM data_inventorysnapshot ins
        WHERE ins.product_id = po.product_id
          AND ins.weighted_average_price > 0
        ORDER BY ins.date DESC
        LIMIT 1
    ) closest_snap ON TRUE
    WHERE o.delivery_date >= CAST(:period_start AS DATE)
      AND o.delivery_date <= CAST(:period_end AS DATE)
      AND o.delivery_date IS NOT NULL
      AND po.qte_r > 0
      AND gp.bcb_generic_status IN ('GÉNÉRIQUE', 'RÉFÉRENT')
      {predicates}
)
SELECT
    supplier_category,
    COUNT(DISTINCT order_id) AS orders_count,
    SUM(qte_r) AS quantity_bought,
    SUM(qte_r * unit_price) AS purchases_ht,
    COUNT(DISTINCT product_id) AS distinct_products
FROM supplier_orders
GROUP BY supplier_category
"""

_ZERO = Decimal(0)


class SupplierRepository(AnalyticsRepository):
    """Orders, quantities and purchase value per wholesaler bucket."""

    subject = AnalyticSubject.SUPPLIERS
    column_map = DEFAULT_COLUMN_MAP
    key_field = "supplier_category"
    metric_fields = ("orders_count", "quantity_bought", "purchases_ht", "distinct_products")
    rank_metric = "purchases_ht"
    share_metric = "purchases_ht"
    percentage_metrics = frozenset()

    def sql_template(self) -> str:
        return _SQL

    def post_process(self, rows: Sequence[EntityMetricRow]) -> list[EntityMetricRow]:
        by_key = {row.entity_key: row for row in rows}
        out: list[EntityMetricRow] = []
        for bucket in SUPPLIER_BUCKETS:
            row = by_key.get(bucket)
            metrics = {
                name: (row.metric(name) if row is not None else None) or _ZERO
                for name in self.metric_fields
            }
            out.append(EntityMetricRow(entity_key=bucket, label=bucket, metrics=metrics))
        return out


__all__ = ["SUPPLIER_BUCKETS", "SupplierRepository"]
