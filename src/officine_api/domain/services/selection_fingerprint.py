# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Content hash of an analytic request, used as a cache key tail."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import PeriodContext

__all__ = ["selection_fingerprint"]


def selection_fingerprint(
    subject: str,
    selection: FilterSelection,
    period: PeriodContext,
    extra: Mapping[str, Any] | None = None,
) -> str:
    """Return a SHA-256 hex digest of the normalized request.

    Equivalent selections (same members in the same first-seen order, same
    periods) hash identically because :class:`FilterSelection` normalizes its
    content on construction.
    """
    payload = {
        "subject": subject,
        "selection": selection.to_fingerprint_payload(),
        "current": period.current.as_dict(),
        "comparison": period.comparison.as_dict() if period.comparison else None,
        "extra": dict(extra or {}),
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
