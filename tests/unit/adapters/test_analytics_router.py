# tests/unit/adapters/test_analytics_router.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from officine_api.adapters.repositories.base_repository import AnalyticsRepository
from officine_api.config.settings import get_settings
from officine_api.dependencies.analytics import (
    AnalyticsUseCaseFactory,
    build_repository,
    get_analytics_factory,
)
from officine_api.domain.enums.metrics import AnalyticSubject
from officine_api.domain.exceptions.analytics import ExecutorFailure
from officine_api.main import create_app

_BODY = {
    "dateRange": {"start": "2024-01-01", "end": "2024-12-31"},
    "comparisonDateRange": {"start": "2023-01-01", "end": "2023-12-31"},
}


class _PeriodExecutor:
    """Returns canned rows keyed by the bound period start."""

    def __init__(self, rows_by_start, error: Exception | None = None) -> None:
        self.rows_by_start = rows_by_start
        self.error = error
        self.specs = []
        self.predicates = []

    async def execute(self, predicates, spec):
        self.specs.append(spec)
        self.predicates.append(predicates)
        if self.error is not None:
            raise self.error
        return list(self.rows_by_start.get(spec.params["period_start"], ()))


@pytest.fixture
def app_with():
    # No lifespan: the TestClient is not entered, so no DB or Redis is touched.
    def _build(executor) -> TestClient:
        app = create_app()
        factory = AnalyticsUseCaseFactory(settings=get_settings(), executor=executor, cache=None)
        app.dependency_overrides[get_analytics_factory] = lambda: factory
        return TestClient(app, raise_server_exceptions=False)

    return _build


def test_laboratories_ranking_response_shape(app_with, make_row) -> None:
    executor = _PeriodExecutor(
        {
            date(2024, 1, 1): [
                make_row("SANOFI", sales_ttc=300, margin_rate=30),
                make_row("BIOGARAN", sales_ttc=100, margin_rate=25),
            ],
            date(2023, 1, 1): [make_row("SANOFI", sales_ttc=150, margin_rate=28)],
        }
    )
    client = app_with(executor)

    resp = client.post("/v1/analytics/laboratories", json=_BODY, headers={"X-Request-ID": "req-1"})

    assert resp.status_code == 200
    assert resp.headers["X-Cache"] == "MISS"
    assert resp.headers["X-Request-ID"] == "req-1"
    body = resp.json()
    assert body["pagination"] == {"page": 1, "pageSize": 50, "total": 2, "totalPages": 1}
    assert body["currentPeriod"] == {"start": "2024-01-01", "end": "2024-12-31"}
    assert body["comparisonPeriod"] == {"start": "2023-01-01", "end": "2023-12-31"}
    assert body["cached"] is False

    first, second = body["laboratories"]
    assert first["key"] == "SANOFI"
    assert first["rank"] == 1
    assert first["previousRank"] == 1
    assert Decimal(first["metrics"]["salesTtc"]["evolutionPct"]) == Decimal(100)
    assert Decimal(first["metrics"]["marginRate"]["evolutionPoints"]) == Decimal(2)
    assert Decimal(first["marketShare"]["current"]) == Decimal(75)
    assert second["previousRank"] is None
    assert second["metrics"]["salesTtc"]["evolutionPct"] is None


def test_generic_groups_use_camel_case_collection_key(app_with, make_row) -> None:
    client = app_with(_PeriodExecutor({date(2024, 1, 1): [make_row("G1", sales_ttc=1)]}))

    body = {"dateRange": _BODY["dateRange"]}
    resp = client.post("/v1/analytics/generic-groups", json=body)

    assert resp.status_code == 200
    assert resp.json()["genericGroups"][0]["key"] == "G1"
    assert resp.json()["comparisonPeriod"] is None


def test_categories_forward_the_drill_down_path(app_with, make_row) -> None:
    executor = _PeriodExecutor({date(2024, 1, 1): [make_row("Pain", sales_ttc=1)]})
    client = app_with(executor)

    resp = client.post(
        "/v1/analytics/categories", json={"dateRange": _BODY["dateRange"], "path": ["Drugs"]}
    )

    assert resp.status_code == 200
    assert executor.specs[0].params["path_0"] == "Drugs"


def test_regions_include_national_benchmark(app_with, make_row) -> None:
    client = app_with(
        _PeriodExecutor(
            {
                date(2024, 1, 1): [
                    make_row("Nord", sales_ttc=300, pharmacy_count=2, average_sales=150),
                    make_row("Sud", sales_ttc=100, pharmacy_count=2, average_sales=50),
                ]
            }
        )
    )

    resp = client.post("/v1/analytics/regions", json={"dateRange": _BODY["dateRange"]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["national"]["pharmacyCount"] == 4
    assert Decimal(body["national"]["averageSales"]) == Decimal(100)
    assert [d["region"] for d in body["deviations"]] == ["Nord", "Sud"]
    assert [r["key"] for r in body["regions"]] == ["Nord", "Sud"]


def test_pagination_request(app_with, make_row) -> None:
    rows = [make_row(f"lab{i}", sales_ttc=10 - i) for i in range(5)]
    client = app_with(_PeriodExecutor({date(2024, 1, 1): rows}))

    resp = client.post(
        "/v1/analytics/laboratories",
        json={"dateRange": _BODY["dateRange"], "page": 2, "pageSize": 2},
    )

    body = resp.json()
    assert [r["rank"] for r in body["laboratories"]] == [3, 4]
    assert body["pagination"]["totalPages"] == 3


def test_inverted_dates_return_invalid_range(app_with) -> None:
    executor = _PeriodExecutor({})
    client = app_with(executor)

    resp = client.post(
        "/v1/analytics/products",
        json={"dateRange": {"start": "2024-12-31", "end": "2024-01-01"}},
    )

    assert resp.status_code == 400
    err = resp.json()["error"]
    assert err["code"] == "INVALID_RANGE"
    assert err["http_status"] == 400
    assert err["trace_id"]
    assert executor.specs == []


def test_missing_dates_return_invalid_range(app_with) -> None:
    resp = app_with(_PeriodExecutor({})).post("/v1/analytics/pharmacies", json={})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_RANGE"


def test_category_mismatch_returns_invalid_filter_combination(app_with) -> None:
    resp = app_with(_PeriodExecutor({})).post(
        "/v1/analytics/laboratories",
        json={"dateRange": _BODY["dateRange"], "categoryCodes": ["a"], "categoryTypes": []},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_FILTER_COMBINATION"


def test_executor_failure_is_a_server_error_without_details(app_with) -> None:
    client = app_with(_PeriodExecutor({}, error=ExecutorFailure("db down", details={"x": 1})))

    resp = client.post("/v1/analytics/suppliers", json=_BODY)

    assert resp.status_code == 500
    err = resp.json()["error"]
    assert err["code"] == "EXECUTOR_FAILURE"
    assert err["details"] == {}


def test_excluded_pharmacies_bind_as_uuid_exclusion(app_with, make_row) -> None:
    pharmacy_id = "0b7e7d1c-3f1a-4a8e-9d2b-6c1f5e4a3b21"
    executor = _PeriodExecutor({date(2024, 1, 1): [make_row("SANOFI", sales_ttc=1)]})
    client = app_with(executor)

    resp = client.post(
        "/v1/analytics/laboratories",
        json={"dateRange": _BODY["dateRange"], "excludedPharmacyIds": [pharmacy_id]},
    )

    assert resp.status_code == 200
    sql, params = executor.specs[0].render(executor.predicates[0])
    assert "mv.pharmacy_id <> ALL(CAST(:f1 AS UUID[]))" in sql
    assert params["f1"] == [pharmacy_id]


def test_page_size_above_maximum_is_rejected(app_with) -> None:
    max_size = get_settings().max_page_size

    resp = app_with(_PeriodExecutor({})).post(
        "/v1/analytics/laboratories",
        json={"dateRange": _BODY["dateRange"], "pageSize": max_size + 1},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "HTTP_ERROR"


def test_unknown_subject_and_unknown_field_are_validation_errors(app_with) -> None:
    client = app_with(_PeriodExecutor({}))

    assert client.post("/v1/analytics/unicorns", json=_BODY).status_code == 422
    resp = client.post("/v1/analytics/products", json={**_BODY, "surprise": 1})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_repositories_are_analytics_repositories() -> None:
    for subject in AnalyticSubject:
        repo = build_repository(subject, _PeriodExecutor({}))
        assert isinstance(repo, AnalyticsRepository)
        assert repo.subject is subject
