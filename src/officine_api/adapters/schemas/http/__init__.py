# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""HTTP Schemas package (Adapters Layer).

Purpose:
    Public, adapter-facing HTTP schema surface. Re-exports the canonical
    envelopes and the analytics request/row schemas used by routers and
    presenters. ``BaseHTTPSchema`` stays internal to this package.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from officine_api.adapters.schemas.http.analytics_schemas import (
    AnalyticsQueryHTTP,
    DateRangeHTTP,
    MetricValueHTTP,
    PeriodHTTP,
    RangeHTTP,
    RankedEntityHTTP,
    RegionDeviationHTTP,
)
from officine_api.adapters.schemas.http.envelopes import (
    ErrorEnvelope,
    ErrorObject,
    PaginationHTTP,
)

__all__ = [
    # Envelopes
    "ErrorEnvelope",
    "ErrorObject",
    "PaginationHTTP",
    # Analytics
    "AnalyticsQueryHTTP",
    "DateRangeHTTP",
    "MetricValueHTTP",
    "PeriodHTTP",
    "RangeHTTP",
    "RankedEntityHTTP",
    "RegionDeviationHTTP",
]
