# tests/unit/application/test_get_subject_ranking.py
from __future__ import annotations

from datetime import date

import prometheus_client as prom
import pytest
from prometheus_client import CollectorRegistry

from officine_api.application.services.comparison_orchestrator import ComparisonOrchestrator
from officine_api.application.use_cases.analytics.get_subject_ranking import (
    GetSubjectRankingUseCase,
    RankingRequest,
)
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import PeriodRequest
from officine_api.domain.enums.filters import Dimension, ExclusionMode
from officine_api.domain.exceptions.analytics import InvalidFilterCombination, InvalidRange
from officine_api.infrastructure.caching.json_cache import InMemoryJsonCache


def _request(**kw) -> RankingRequest:
    period = PeriodRequest(
        date(2024, 1, 1), date(2024, 12, 31), auto_prior_year=kw.pop("compare", True)
    )
    return RankingRequest(
        selection=kw.pop("selection", FilterSelection()), period=period, **kw
    )


@pytest.fixture
def repo(stub_repository_cls, make_row):
    rows_2024 = [make_row(f"lab{i}", sales_ttc=100 - i, margin_rate=30) for i in range(5)]
    rows_2023 = [make_row("lab4", sales_ttc=500, margin_rate=20)]
    return stub_repository_cls(
        rows_by_start={date(2024, 1, 1): rows_2024, date(2023, 1, 1): rows_2023}
    )


@pytest.mark.asyncio
async def test_pagination_keeps_global_ranks(repo) -> None:
    use_case = GetSubjectRankingUseCase(repository=repo, orchestrator=ComparisonOrchestrator())

    page = await use_case.execute(_request(page=2, page_size=2))

    assert page.subject == "laboratories"
    assert page.total == 5
    assert [(i.entity_key, i.rank) for i in page.items] == [("lab2", 3), ("lab3", 4)]
    assert page.current_period.start == date(2024, 1, 1)
    assert page.comparison_period is not None
    assert page.comparison_period.start == date(2023, 1, 1)
    assert page.cached is False


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(repo) -> None:
    use_case = GetSubjectRankingUseCase(repository=repo, orchestrator=ComparisonOrchestrator())

    page = await use_case.execute(_request(page=9, page_size=2))

    assert page.items == []
    assert page.total == 5


@pytest.mark.asyncio
async def test_evolution_and_new_markers_survive_dto_mapping(repo) -> None:
    use_case = GetSubjectRankingUseCase(repository=repo, orchestrator=ComparisonOrchestrator())

    page = await use_case.execute(_request(page_size=10))
    by_key = {i.entity_key: i for i in page.items}

    lab4 = by_key["lab4"]
    assert lab4.previous_rank == 1
    assert lab4.rank_gain == -4
    assert lab4.metrics["margin_rate"].point_delta_evolution == 10
    assert by_key["lab0"].metrics["sales_ttc"].percent_evolution is None


@pytest.mark.asyncio
async def test_invalid_range_fails_before_any_fetch(repo) -> None:
    use_case = GetSubjectRankingUseCase(repository=repo, orchestrator=ComparisonOrchestrator())
    req = RankingRequest(
        selection=FilterSelection(), period=PeriodRequest(date(2024, 2, 1), date(2024, 1, 1))
    )

    with pytest.raises(InvalidRange):
        await use_case.execute(req)
    assert repo.calls == []



@pytest.mark.asyncio
async def test_invalid_filter_fails_before_any_fetch(
    repo, monkeypatch: pytest.MonkeyPatch
) -> None:
    registry = CollectorRegistry()
    monkeypatch.setattr(prom, "REGISTRY", registry)
    use_case = GetSubjectRankingUseCase(
        repository=repo, orchestrator=ComparisonOrchestrator(subject="laboratories")
    )

    with pytest.raises(InvalidFilterCombination):
        await use_case.execute(
            _request(selection=FilterSelection(exclusion_mode=ExclusionMode.ONLY))
        )

    assert repo.calls == []
    assert registry.get_sample_value(
        "analytics_fetch_failures_total",
        {"subject": "laboratories", "reason": "InvalidFilterCombination"},
    ) is None


@pytest.mark.asyncio
async def test_predicates_are_built_once_for_both_periods(repo) -> None:
    use_case = GetSubjectRankingUseCase(repository=repo, orchestrator=ComparisonOrchestrator())
    selection = FilterSelection(entity_sets={Dimension.LABORATORY: ["lab1"]})

    await use_case.execute(_request(selection=selection))

    assert len(repo.built) == 1
    assert len(repo.calls) == 2


async def test_cache_hit_skips_fetches(repo) -> None:
    cache = InMemoryJsonCache()
    use_case = GetSubjectRankingUseCase(
        repository=repo, orchestrator=ComparisonOrchestrator(), cache=cache, cache_ttl_s=60
    )

    first = await use_case.execute(_request())
    calls_after_first = len(repo.calls)
    second = await use_case.execute(_request())

    assert first.cached is False
    assert second.cached is True
    assert len(repo.calls) == calls_after_first == 2
    assert [i.model_dump() for i in second.items] == [i.model_dump() for i in first.items]


@pytest.mark.asyncio
async def test_cache_key_depends_on_selection(repo) -> None:
    cache = InMemoryJsonCache()
    use_case = GetSubjectRankingUseCase(
        repository=repo, orchestrator=ComparisonOrchestrator(), cache=cache, cache_ttl_s=60
    )

    await use_case.execute(_request())
    other = await use_case.execute(
        _request(selection=FilterSelection(entity_sets={Dimension.LABORATORY: ["lab1"]}))
    )

    assert other.cached is False
    assert len(repo.calls) == 4


@pytest.mark.asyncio
async def test_corrupt_cache_entry_is_recomputed(repo) -> None:
    cache = InMemoryJsonCache()
    use_case = GetSubjectRankingUseCase(
        repository=repo, orchestrator=ComparisonOrchestrator(), cache=cache, cache_ttl_s=60
    )
    await use_case.execute(_request())
    for key in list(cache._store):
        await cache.set_json(key, {"items": [{"bogus": True}]}, ttl=60)

    page = await use_case.execute(_request())

    assert page.cached is False
    assert page.total == 5


def test_request_rejects_invalid_page() -> None:
    with pytest.raises(ValueError):
        _request(page=0)
