# src/officine_api/main.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""
Officine Analytics API entrypoint.

`create_app` assembles the FastAPI application: the analytics and metrics
routers, request-id / gzip / CORS middleware, and one exception handler per
error family so every failure is rendered with the error envelope. The
lifespan delegates DB and Redis setup to the core bootstrap.

A module-level `app` is built eagerly for ASGI servers and tests.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from officine_api.adapters.presenters.ranking_presenter import CACHE_HEADER
from officine_api.adapters.routers import analytics_router, metrics_router
from officine_api.config.settings import Settings, get_settings
from officine_api.dependencies.core.bootstrap import bootstrap
from officine_api.domain.exceptions.base import DomainError
from officine_api.infrastructure.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
    handle_validation_error,
)
from officine_api.infrastructure.logging.logger import configure_root_logging, get_json_logger
from officine_api.infrastructure.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIdMiddleware,
)

configure_root_logging()
logger = get_json_logger(__name__)

_Handler = Callable[[Request, Exception], Awaitable[Response]]

# Starlette resolves handlers by MRO, so the Exception fallback only sees
# what the specific handlers do not claim.
_EXCEPTION_HANDLERS: Final[tuple[tuple[type[Exception], _Handler], ...]] = (
    (DomainError, handle_domain_error),  # type: ignore[list-item]
    (HTTPException, handle_http_exception),  # type: ignore[list-item]
    (RequestValidationError, handle_validation_error),  # type: ignore[list-item]
    (Exception, handle_unhandled_exception),
)


def _operation_id(route: APIRoute) -> str:
    """Build ``<method>_<path>`` ids, e.g. ``post__v1_analytics_resource``."""
    verbs = "_".join(sorted(m.lower() for m in route.methods or ()))
    slug = route.path_format.translate(str.maketrans({"/": "_", "{": "", "}": "", "-": "_"}))
    return f"{verbs}_{slug.lower()}"


@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with bootstrap(app) as state:
        app.state.settings = state.settings
        yield


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Added last runs first: CORS wraps gzip, which wraps request-id tagging.
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or ["*"],
        allow_credentials=bool(settings.cors_allow_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, CACHE_HEADER],
    )


def _install_exception_handlers(app: FastAPI) -> None:
    for exc_type, handler in _EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_type, handler)


def create_app() -> FastAPI:
    """Build the Officine Analytics application.

    Returns:
        FastAPI: Application with routers, middleware and error handlers attached.
    """
    settings = get_settings()
    version = settings.service_version or os.getenv("SERVICE_VERSION") or "0.0.0"

    app = FastAPI(
        title="Officine Analytics API",
        version=version,
        description=(
            "Rankings of laboratories, products, pharmacies, suppliers, generic groups, "
            "categories and regions under composable filters, compared across two periods."
        ),
        lifespan=runtime_lifespan,
        generate_unique_id_function=_operation_id,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
    )

    _install_exception_handlers(app)
    _install_middleware(app, settings)
    app.include_router(analytics_router)
    app.include_router(metrics_router)

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": version})

    logger.info(
        "app.created",
        extra={
            "service": settings.service_name,
            "environment": settings.environment.value,
            "version": version,
            "cache_enabled": settings.analytics_cache_enabled,
            "combinators_enabled": settings.filter_combinators_enabled,
        },
    )
    return app


app: FastAPI = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "officine_api.main:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8080")),
    )
