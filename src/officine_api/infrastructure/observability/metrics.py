# src/officine_api/infrastructure/observability/metrics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Prometheus collectors for the analytics engine and its result cache.

Each accessor returns the collector registered on the *current*
``prometheus_client.REGISTRY``, creating it on first use. Tests that swap
the default registry get fresh collectors; reloading this module never
raises duplicate-registration errors.

Example:
    hist = get_analytics_fetch_latency_seconds()
    hist.labels(subject="laboratories", period="current").observe(0.250)
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Final, TypeVar

import prometheus_client as prom
from prometheus_client import Counter, Histogram

_log = logging.getLogger(__name__)

# Analytical aggregations over fact tables: seconds, up to tens of seconds.
_BUCKETS: Final[tuple[float, ...]] = (
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
    10.000,
    30.000,
)

_CACHE_BUCKETS: Final[tuple[float, ...]] = (0.0005, 0.001, 0.005, 0.010, 0.025, 0.050, 0.100)

# Collectors created against the currently active registry, by metric name.
_registry_id: int | None = None
_collectors: dict[str, Histogram | Counter] = {}
_lock = threading.RLock()

_C = TypeVar("_C", Histogram, Counter)


def _registered(name: str) -> object | None:
    mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
    return mapping.get(name) if isinstance(mapping, dict) else None


def _collector(kind: type[_C], name: str, help_text: str, **kwargs: Any) -> _C:
    """Return the ``kind`` collector called ``name`` on ``prom.REGISTRY``.

    The local cache is dropped whenever the default registry object changes,
    and a collector someone else already registered under ``name`` is adopted
    instead of raising a duplicate-timeseries error.
    """
    global _registry_id
    with _lock:
        if _registry_id != id(prom.REGISTRY):
            _collectors.clear()
            _registry_id = id(prom.REGISTRY)

        found = _collectors.get(name) or _registered(name)
        if isinstance(found, kind):
            _collectors[name] = found
            return found

        try:
            created = kind(name, help_text, registry=prom.REGISTRY, **kwargs)
        except ValueError:
            _log.exception("metrics.register_failed", extra={"metric": name})
            raise
        _collectors[name] = created
        return created


def _get_or_create_hist(
    name: str,
    help_text: str,
    *,
    buckets: tuple[float, ...] = _BUCKETS,
    labelnames: tuple[str, ...] = (),
) -> Histogram:
    return _collector(Histogram, name, help_text, labelnames=labelnames, buckets=buckets)


def _get_or_create_counter(
    name: str, help_text: str, *, labelnames: tuple[str, ...] = ()
) -> Counter:
    return _collector(Counter, name, help_text, labelnames=labelnames)


# ---------------------------------------------------------------------------
# Analytics engine


def get_analytics_fetch_latency_seconds() -> Histogram:
    """Latency of one period fetch, labelled by subject and period."""
    return _get_or_create_hist(
        "analytics_fetch_latency_seconds",
        "Latency of one analytic period aggregation.",
        labelnames=("subject", "period"),
    )


def get_analytics_fetch_failures_total() -> Counter:
    """Failed or timed-out analytic fetches, labelled by subject and reason."""
    return _get_or_create_counter(
        "analytics_fetch_failures_total",
        "Analytic fetches that failed or timed out.",
        labelnames=("subject", "reason"),
    )


def get_analytics_request_latency_seconds() -> Histogram:
    """End-to-end latency of a ranking use case, labelled by subject and cache hit."""
    return _get_or_create_hist(
        "analytics_request_latency_seconds",
        "End-to-end latency of a ranking request.",
        labelnames=("subject", "cached"),
    )


# ---------------------------------------------------------------------------
# Cache


def get_cache_operation_duration_seconds() -> Histogram:
    """Latency of JSON cache operations."""
    return _get_or_create_hist(
        "cache_operation_duration_seconds",
        "Latency of JSON cache operations.",
        buckets=_CACHE_BUCKETS,
        labelnames=("operation", "namespace", "hit"),
    )


def get_cache_operations_total() -> Counter:
    """Count of JSON cache operations."""
    return _get_or_create_counter(
        "cache_operations_total",
        "Count of JSON cache operations.",
        labelnames=("operation", "namespace", "hit"),
    )


__all__ = [
    "get_analytics_fetch_failures_total",
    "get_analytics_fetch_latency_seconds",
    "get_analytics_request_latency_seconds",
    "get_cache_operation_duration_seconds",
    "get_cache_operations_total",
]
