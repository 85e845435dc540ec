# src/officine_api/domain/entities/period_context.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Analysis periods.

Purpose:
    Closed date intervals for the current and (optional) comparison periods
    of an analytic request, plus the raw request shape the resolver consumes.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from officine_api.domain.exceptions.analytics import InvalidRange


@dataclass(frozen=True, slots=True)
class DateInterval:
    """Closed ``[start, end]`` date interval.

    Raises:
        InvalidRange: If ``start`` is after ``end``.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRange(
                "Interval start is after its end",
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @property
    def days(self) -> int:
        """Number of calendar days covered, both bounds included."""
        return (self.end - self.start).days + 1

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True, slots=True)
class PeriodContext:
    """Current period and optional comparison period.

    A missing ``comparison`` means single-period mode: downstream evolution
    fields stay ``None`` (never zero).
    """

    current: DateInterval
    comparison: DateInterval | None = None

    @property
    def has_comparison(self) -> bool:
        return self.comparison is not None


@dataclass(frozen=True, slots=True)
class PeriodRequest:
    """Raw period bounds as supplied by a caller, validated by the resolver."""

    analysis_start: date | None
    analysis_end: date | None
    comparison_start: date | None = None
    comparison_end: date | None = None
    auto_prior_year: bool = False


__all__ = ["DateInterval", "PeriodContext", "PeriodRequest"]
