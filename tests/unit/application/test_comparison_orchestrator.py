# tests/unit/application/test_comparison_orchestrator.py
from __future__ import annotations

import asyncio
from datetime import date

import pytest

from officine_api.application.services.comparison_orchestrator import ComparisonOrchestrator
from officine_api.domain.entities.filter_selection import FilterSelection
from officine_api.domain.entities.period_context import DateInterval, PeriodContext
from officine_api.domain.exceptions.analytics import ExecutorFailure, InvalidFilterCombination


@pytest.mark.asyncio
async def test_runs_both_fetches_and_ranks(make_row, year_2024, year_2023) -> None:
    seen: list[DateInterval] = []

    async def fetch(selection: FilterSelection, interval: DateInterval):
        seen.append(interval)
        if interval == year_2024:
            return [make_row("a", sales_ttc=10), make_row("b", sales_ttc=20)]
        return [make_row("a", sales_ttc=5)]

    orchestrator = ComparisonOrchestrator(subject="laboratories")
    rows = await orchestrator.run(
        FilterSelection(),
        PeriodContext(current=year_2024, comparison=year_2023),
        fetch,
        rank_metric="sales_ttc",
    )

    assert sorted(seen, key=lambda i: i.start) == [year_2023, year_2024]
    assert [r.entity_key for r in rows] == ["b", "a"]
    assert rows[1].previous_rank == 1


@pytest.mark.asyncio
async def test_single_period_issues_one_fetch(make_row, year_2024) -> None:
    calls = 0

    async def fetch(selection: FilterSelection, interval: DateInterval):
        nonlocal calls
        calls += 1
        return [make_row("a", sales_ttc=1)]

    rows = await ComparisonOrchestrator().run(
        FilterSelection(), PeriodContext(current=year_2024), fetch, rank_metric="sales_ttc"
    )

    assert calls == 1
    assert rows[0].previous_rank is None


@pytest.mark.asyncio
async def test_fetches_run_concurrently(make_row, year_2024, year_2023) -> None:
    both_started = asyncio.Event()
    started = 0

    async def fetch(selection: FilterSelection, interval: DateInterval):
        nonlocal started
        started += 1
        if started == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1.0)
        return [make_row("a", sales_ttc=1)]

    rows = await ComparisonOrchestrator().run(
        FilterSelection(),
        PeriodContext(current=year_2024, comparison=year_2023),
        fetch,
        rank_metric="sales_ttc",
    )

    assert len(rows) == 1


@pytest.mark.asyncio
async def test_failure_cancels_sibling_and_wraps_error(year_2024, year_2023) -> None:
    sibling_cancelled = asyncio.Event()

    async def fetch(selection: FilterSelection, interval: DateInterval):
        if interval == year_2024:
            raise RuntimeError("connection reset")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            sibling_cancelled.set()
            raise
        return []

    with pytest.raises(ExecutorFailure) as exc:
        await ComparisonOrchestrator(subject="products").run(
            FilterSelection(),
            PeriodContext(current=year_2024, comparison=year_2023),
            fetch,
            rank_metric="sales_ttc",
        )

    assert exc.value.details == {"subject": "products", "period": "current"}
    assert isinstance(exc.value.__cause__, RuntimeError)
    await asyncio.wait_for(sibling_cancelled.wait(), timeout=1.0)



@pytest.mark.asyncio
async def test_comparison_failure_after_current_success_returns_no_rows(
    make_row, year_2024, year_2023
) -> None:
    current_done = asyncio.Event()
    rows = None

    async def fetch(selection: FilterSelection, interval: DateInterval):
        if interval == year_2024:
            current_done.set()
            return [make_row("a", sales_ttc=10)]
        await current_done.wait()
        raise RuntimeError("connection reset")

    with pytest.raises(ExecutorFailure) as exc:
        rows = await ComparisonOrchestrator(subject="laboratories").run(
            FilterSelection(),
            PeriodContext(current=year_2024, comparison=year_2023),
            fetch,
            rank_metric="sales_ttc",
        )

    assert rows is None
    assert exc.value.details == {"subject": "laboratories", "period": "comparison"}
    assert isinstance(exc.value.__cause__, RuntimeError)


async def test_analytics_errors_propagate_unchanged(year_2024) -> None:
    async def fetch(selection: FilterSelection, interval: DateInterval):
        raise InvalidFilterCombination("nope")

    with pytest.raises(InvalidFilterCombination):
        await ComparisonOrchestrator().run(
            FilterSelection(), PeriodContext(current=year_2024), fetch, rank_metric="sales_ttc"
        )


@pytest.mark.asyncio
async def test_timeout_surfaces_as_executor_failure(year_2024) -> None:
    async def fetch(selection: FilterSelection, interval: DateInterval):
        await asyncio.sleep(10)
        return []

    with pytest.raises(ExecutorFailure) as exc:
        await ComparisonOrchestrator(timeout_s=0.01).run(
            FilterSelection(), PeriodContext(current=year_2024), fetch, rank_metric="sales_ttc"
        )

    assert exc.value.details["timeout_s"] == 0.01


@pytest.mark.asyncio
async def test_empty_comparison_result_is_kept(make_row, year_2024) -> None:
    async def fetch(selection: FilterSelection, interval: DateInterval):
        return [make_row("a", sales_ttc=1)] if interval == year_2024 else []

    rows = await ComparisonOrchestrator().run(
        FilterSelection(),
        PeriodContext(
            current=year_2024, comparison=DateInterval(date(2020, 1, 1), date(2020, 1, 31))
        ),
        fetch,
        rank_metric="sales_ttc",
    )

    assert rows[0].market_share.previous is None
