# src/officine_api/adapters/routers/base_router.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Versioned router base.

Routes mount under ``/<version>/<resource>`` and every route documents the
error envelope for the statuses the analytics handlers can produce.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, Final

from fastapi import APIRouter

from officine_api.adapters.schemas.http.envelopes import ErrorEnvelope

ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    400: {"model": ErrorEnvelope, "description": "Invalid date range, filters or paging."},
    422: {"model": ErrorEnvelope, "description": "Malformed request body."},
    500: {"model": ErrorEnvelope, "description": "Aggregation query failed or timed out."},
}


class BaseRouter(APIRouter):
    """``APIRouter`` with a computed prefix and the shared error responses.

    Args:
        version: API version segment, e.g. ``"v1"``.
        resource: Resource segment, e.g. ``"analytics"``.
        tags: OpenAPI tags for every route on this router.
        **kwargs: Forwarded to ``APIRouter``; an explicit ``responses``
            mapping is merged over :data:`ERROR_RESPONSES`.
    """

    def __init__(
        self,
        *,
        version: str,
        resource: str,
        tags: Sequence[str | Enum] | None = None,
        **kwargs: Any,
    ) -> None:
        responses = {**ERROR_RESPONSES, **kwargs.pop("responses", {})}
        super().__init__(
            prefix=f"/{version}/{resource}",
            tags=list(tags or ()),
            responses=responses,
            **kwargs,
        )
