# src/officine_api/domain/exceptions/analytics.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analytics engine exception taxonomy.

Purpose:
    Typed errors raised by the filter composition and period-comparison
    engine. The HTTP layer maps each ``code`` to a status code and an error
    envelope; messages and details never carry SQL or predicate text.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from officine_api.domain.exceptions.base import DomainError


class AnalyticsError(DomainError):
    """Base class for analytics engine errors."""

    code = "ANALYTICS_ERROR"


class InvalidRange(AnalyticsError):
    """Malformed, missing or inverted date bounds (client error, never retried)."""

    code = "INVALID_RANGE"


class InvalidFilterCombination(AnalyticsError):
    """A filter selection the engine cannot honour (client error).

    Examples are category names/types of different lengths, an inverted
    numeric range, or a filter the endpoint has no column for.
    """

    code = "INVALID_FILTER_COMBINATION"


class ExecutorFailure(AnalyticsError):
    """The query executor failed or timed out (server error)."""

    code = "EXECUTOR_FAILURE"


class PartialResultForbidden(AnalyticsError):
    """A comparison was requested but only current-period data is available.

    This is an internal invariant violation and must surface as a server
    error instead of a misleading current-only ranking.
    """

    code = "PARTIAL_RESULT_FORBIDDEN"


__all__ = [
    "AnalyticsError",
    "ExecutorFailure",
    "InvalidFilterCombination",
    "InvalidRange",
    "PartialResultForbidden",
]
