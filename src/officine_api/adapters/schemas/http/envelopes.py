# src/officine_api/adapters/schemas/http/envelopes.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""HTTP Envelopes (Adapters Layer).

Purpose:
    Canonical transport-facing HTTP envelopes:
      - ErrorEnvelope: ``{"error": ErrorObject}``
      - PaginationHTTP: page coordinates returned with every ranking
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from officine_api.adapters.schemas.http.base import BaseHTTPSchema

__all__ = [
    "ErrorEnvelope",
    "ErrorObject",
    "PaginationHTTP",
]


class ErrorObject(BaseModel):
    """Structured error object inside ErrorEnvelope.

    Error codes are UPPER_SNAKE_CASE, stable across releases and never carry
    SQL text or bound values:
        - INVALID_RANGE (400)
        - INVALID_FILTER_COMBINATION (400)
        - VALIDATION_ERROR (422)
        - EXECUTOR_FAILURE (500)
        - PARTIAL_RESULT_FORBIDDEN (500)
    """

    model_config = ConfigDict(
        title="ErrorObject",
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "code": "INVALID_RANGE",
                    "http_status": 400,
                    "message": "Analysis start date is after its end date",
                    "details": {"start": "2024-03-01", "end": "2024-01-01"},
                    "trace_id": "req-123",
                }
            ]
        },
    )

    code: str = Field(..., description="Stable machine-readable error code.")
    http_status: int = Field(..., description="Associated HTTP status.")
    message: str = Field(..., description="Human-readable error description.")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured details safe for clients.",
    )
    trace_id: str | None = Field(
        default=None,
        description="Request correlation identifier (X-Request-ID).",
    )


class ErrorEnvelope(BaseModel):
    r"""Canonical error envelope: {"error": ErrorObject}."""

    model_config = ConfigDict(title="ErrorEnvelope", extra="forbid")

    error: ErrorObject = Field(..., description="Structured error details.")


class PaginationHTTP(BaseHTTPSchema):
    """Page coordinates of a ranking response."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
