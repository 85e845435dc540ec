# src/officine_api/adapters/routers/metrics_router.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""``GET /metrics``: Prometheus text exposition of the current registry."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from officine_api.infrastructure.observability import metrics

router = APIRouter()

# Collectors are created lazily; touching them here makes their HELP/TYPE
# lines visible to scrapers before the first analytics request.
_ANALYTICS_COLLECTORS = (
    metrics.get_analytics_fetch_latency_seconds,
    metrics.get_analytics_fetch_failures_total,
    metrics.get_analytics_request_latency_seconds,
    metrics.get_cache_operation_duration_seconds,
    metrics.get_cache_operations_total,
)


@router.get("/metrics", include_in_schema=False)
async def scrape() -> Response:
    for accessor in _ANALYTICS_COLLECTORS:
        accessor()
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
