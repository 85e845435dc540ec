# src/officine_api/domain/enums/metrics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analytic subjects and metric kinds."""

from __future__ import annotations

from enum import Enum


class AnalyticSubject(str, Enum):
    """Entity family being ranked by an analytic endpoint."""

    LABORATORIES = "laboratories"
    PRODUCTS = "products"
    PHARMACIES = "pharmacies"
    SUPPLIERS = "suppliers"
    GENERIC_GROUPS = "generic_groups"
    CATEGORIES = "categories"
    REGIONS = "regions"


class MetricKind(str, Enum):
    """How the evolution of a metric is expressed.

    Attributes:
        AMOUNT: Monetary amounts and quantities; evolution is a percentage.
        PERCENTAGE: Already a percentage (margin rate, market share);
            evolution is a difference in percentage points.
    """

    AMOUNT = "amount"
    PERCENTAGE = "percentage"


__all__ = ["AnalyticSubject", "MetricKind"]
