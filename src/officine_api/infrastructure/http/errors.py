# src/officine_api/infrastructure/http/errors.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Exception handlers producing the canonical error envelope.

Every error leaves the service as::

    {"error": {"code", "http_status", "message", "details", "trace_id"}}

Analytics errors map to HTTP statuses by their stable ``code``. Server-side
failures keep their cause in logs only; clients get the code and message.
"""

from __future__ import annotations

from typing import Any, Final

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from officine_api.domain.exceptions.analytics import (
    ExecutorFailure,
    InvalidFilterCombination,
    InvalidRange,
    PartialResultForbidden,
)
from officine_api.domain.exceptions.base import DomainError
from officine_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

STATUS_BY_CODE: Final[dict[str, int]] = {
    InvalidRange.code: 400,
    InvalidFilterCombination.code: 400,
    ExecutorFailure.code: 500,
    PartialResultForbidden.code: 500,
}


def _trace_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
        "details": details or {},
    }
    if trace_id is not None:
        err["trace_id"] = trace_id
    return {"error": err}


async def handle_domain_error(request: Request, exc: DomainError) -> Response:
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status >= 500:
        logger.error(
            "http.domain_error",
            extra={"code": exc.code, "path": request.url.path, "status": status},
        )
        details: dict[str, Any] = {}
    else:
        details = dict(exc.details)
    payload = error_envelope(
        code=exc.code,
        http_status=status,
        message=exc.message,
        details=details,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=status, content=payload)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    payload = error_envelope(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=422, content=payload)


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    payload = error_envelope(
        code="HTTP_ERROR",
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        details=None if isinstance(exc.detail, str) else {"detail": exc.detail},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=payload)


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    logger.exception("http.unhandled_exception", extra={"path": request.url.path})
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=500, content=payload)


__all__ = [
    "STATUS_BY_CODE",
    "error_envelope",
    "handle_domain_error",
    "handle_http_exception",
    "handle_unhandled_exception",
    "handle_validation_error",
]
