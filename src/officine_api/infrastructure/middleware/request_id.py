# src/officine_api/infrastructure/middleware/request_id.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Request correlation and access logging.

Every request gets an id: a well-formed inbound ``X-Request-ID`` is kept,
anything else is replaced by a UUID4. The id is stored on
``request.state.request_id``, bound to the logging context, echoed on the
response, and reused as ``trace_id`` in error envelopes. One ``http.access``
record is logged per request with method, path, status and latency.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Final

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from officine_api.infrastructure.logging.logger import get_json_logger, set_request_context

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"

# Printable token only; ids are copied into logs and headers verbatim.
_TOKEN: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9._:@-]{1,128}")

_logger = get_json_logger(__name__)


def coerce_request_id(raw: str | None) -> str:
    """Return ``raw`` if it is a safe token, otherwise a new UUID4."""
    if raw is not None and _TOKEN.fullmatch(raw):
        return raw
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags requests with a correlation id and logs one access record each."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = coerce_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            _logger.info(
                "http.access",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 2),
                },
            )

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response
