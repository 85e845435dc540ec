# src/officine_api/domain/services/period_resolver.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Period context resolution.

Purpose:
    Validate raw period bounds and produce the current/comparison intervals
    of an analytic request, deriving the N-1 comparison when asked.

Layer:
    domain/services

Design:
    Pure domain logic: no logging, no I/O. Validation failures raise
    :class:`InvalidRange` before any fetch is issued.
"""

from __future__ import annotations

from datetime import date

from officine_api.domain.entities.period_context import (
    DateInterval,
    PeriodContext,
    PeriodRequest,
)
from officine_api.domain.exceptions.analytics import InvalidRange

__all__ = ["resolve_period_context", "shift_years"]


def shift_years(day: date, years: int) -> date:
    """Shift ``day`` by whole calendar years.

    Feb 29 maps to Feb 28 when the target year is not a leap year.

    Args:
        day: Date to shift.
        years: Number of years (negative to go back).

    Returns:
        The shifted date.
    """
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def resolve_period_context(request: PeriodRequest) -> PeriodContext:
    """Resolve a :class:`PeriodContext` from raw bounds.

    Rules:
        * Both analysis bounds are required and must satisfy ``start <= end``.
        * Comparison bounds come in pairs; supplying one alone is an error.
        * An explicit comparison wins over ``auto_prior_year``.
        * ``auto_prior_year`` without explicit bounds shifts the analysis
          interval back one calendar year.
        * Otherwise the context runs in single-period mode.

    Args:
        request: Raw period bounds.

    Returns:
        PeriodContext: Validated intervals.

    Raises:
        InvalidRange: On missing, partial or inverted bounds.
    """
    if request.analysis_start is None or request.analysis_end is None:
        raise InvalidRange(
            "Analysis date range is required",
            details={
                "start": _iso(request.analysis_start),
                "end": _iso(request.analysis_end),
            },
        )
    current = DateInterval(request.analysis_start, request.analysis_end)

    has_start = request.comparison_start is not None
    has_end = request.comparison_end is not None
    if has_start != has_end:
        raise InvalidRange(
            "Comparison range requires both start and end",
            details={
                "comparison_start": _iso(request.comparison_start),
                "comparison_end": _iso(request.comparison_end),
            },
        )

    if request.comparison_start is not None and request.comparison_end is not None:
        return PeriodContext(
            current=current,
            comparison=DateInterval(request.comparison_start, request.comparison_end),
        )

    if request.auto_prior_year:
        return PeriodContext(
            current=current,
            comparison=DateInterval(shift_years(current.start, -1), shift_years(current.end, -1)),
        )

    return PeriodContext(current=current)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None
