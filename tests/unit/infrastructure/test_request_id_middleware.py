# tests/unit/infrastructure/test_request_id_middleware.py
"""Unit tests for RequestIdMiddleware behavior and header rules."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from officine_api.infrastructure.logging.logger import get_request_id
from officine_api.infrastructure.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIdMiddleware,
    coerce_request_id,
)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/id")
    async def get_id(request: Request):
        return {"rid": getattr(request.state, "request_id", None), "ctx": get_request_id()}

    return app


def test_valid_incoming_id_is_preserved() -> None:
    resp = TestClient(_app()).get("/id", headers={REQUEST_ID_HEADER: "abc-123_456:@Z"})

    assert resp.json() == {"rid": "abc-123_456:@Z", "ctx": "abc-123_456:@Z"}
    assert resp.headers[REQUEST_ID_HEADER] == "abc-123_456:@Z"


def test_missing_or_unsafe_id_is_replaced() -> None:
    client = TestClient(_app())

    generated = client.get("/id").headers[REQUEST_ID_HEADER]
    replaced = client.get("/id", headers={REQUEST_ID_HEADER: "bad id"}).headers[
        REQUEST_ID_HEADER
    ]

    assert generated
    assert replaced != "bad id"


def test_coerce_request_id() -> None:
    assert coerce_request_id("req-1") == "req-1"
    assert coerce_request_id("x" * 200) != "x" * 200
    assert len(coerce_request_id(None)) == 36


def test_access_record_is_logged(caplog) -> None:
    caplog.set_level("INFO", logger="officine_api.infrastructure.middleware.request_id")

    TestClient(_app()).get("/id", headers={REQUEST_ID_HEADER: "req-9"})

    record = next(r for r in caplog.records if r.getMessage() == "http.access")
    assert record.path == "/id"
    assert record.status == 200
    assert record.method == "GET"
