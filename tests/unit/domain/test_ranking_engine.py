# tests/unit/domain/test_ranking_engine.py
from __future__ import annotations

from decimal import Decimal

from officine_api.domain.entities.entity_metrics import EvolutionMarker
from officine_api.domain.services.ranking_engine import (
    compute_ranked_comparison,
    market_share,
    percent_evolution,
    point_delta,
)


def test_percent_evolution_edge_cases() -> None:
    assert percent_evolution(Decimal(120), Decimal(100)) == Decimal(20)
    assert percent_evolution(Decimal(50), Decimal(100)) == Decimal(-50)
    assert percent_evolution(Decimal(10), Decimal(0)) is EvolutionMarker.NEW
    assert percent_evolution(Decimal(0), Decimal(0)) is None
    assert percent_evolution(None, Decimal(10)) is None
    assert percent_evolution(Decimal(10), None) is None


def test_point_delta_and_market_share() -> None:
    assert point_delta(Decimal("32.5"), Decimal("30")) == Decimal("2.5")
    assert point_delta(None, Decimal("30")) is None
    assert market_share(Decimal(25), Decimal(100)) == Decimal(25)
    assert market_share(Decimal(0), Decimal(0)) == Decimal(0)
    assert market_share(None, Decimal(100)) is None


def test_empty_current_returns_empty(make_row) -> None:
    assert compute_ranked_comparison([], [make_row("A", sales_ttc=1)], "sales_ttc") == []


def test_ranks_descending_with_stable_ties_and_missing_last(make_row) -> None:
    rows = [
        make_row("missing", sales_ttc=None),
        make_row("b", sales_ttc=50),
        make_row("a", sales_ttc=100),
        make_row("c", sales_ttc=50),
    ]

    ranked = compute_ranked_comparison(rows, None, "sales_ttc")

    assert [(r.entity_key, r.rank) for r in ranked] == [
        ("a", 1),
        ("b", 2),
        ("c", 3),
        ("missing", 4),
    ]


def test_single_period_leaves_evolutions_absent(make_row) -> None:
    ranked = compute_ranked_comparison(
        [make_row("a", sales_ttc=30), make_row("b", sales_ttc=10)], None, "sales_ttc"
    )

    top = ranked[0]
    assert top.previous_rank is None
    assert top.rank_gain is None
    assert top.metrics["sales_ttc"].previous is None
    assert top.metrics["sales_ttc"].percent_evolution is None
    assert top.market_share.current == Decimal(75)
    assert top.market_share.point_delta_evolution is None


def test_comparison_annotations(make_row) -> None:
    current = [
        make_row("a", sales_ttc=100, margin_rate=30),
        make_row("b", sales_ttc=300, margin_rate=25),
        make_row("new", sales_ttc=100, margin_rate=10),
    ]
    previous = [
        make_row("a", sales_ttc=200, margin_rate=28),
        make_row("b", sales_ttc=100, margin_rate=25),
        make_row("gone", sales_ttc=700, margin_rate=40),
    ]

    ranked = compute_ranked_comparison(
        current, previous, "sales_ttc", percentage_metrics={"margin_rate"}
    )
    by_key = {r.entity_key: r for r in ranked}

    assert [r.entity_key for r in ranked] == ["b", "a", "new"]
    assert "gone" not in by_key

    b = by_key["b"]
    assert b.rank == 1
    assert b.previous_rank == 3
    assert b.rank_gain == 2
    assert b.metrics["sales_ttc"].percent_evolution == Decimal(200)
    assert b.metrics["margin_rate"].point_delta_evolution == Decimal(0)
    assert b.metrics["margin_rate"].percent_evolution is None

    a = by_key["a"]
    assert a.previous_rank == 2
    assert a.rank_gain == 0
    assert a.metrics["sales_ttc"].percent_evolution == Decimal(-50)
    assert a.metrics["margin_rate"].point_delta_evolution == Decimal(2)
    # Shares: 100/500 now, 200/1000 before.
    assert a.market_share.current == Decimal(20)
    assert a.market_share.previous == Decimal(20)
    assert a.market_share.point_delta_evolution == Decimal(0)

    new = by_key["new"]
    assert new.previous_rank is None
    assert new.rank_gain is None
    assert new.metrics["sales_ttc"].previous is None
    assert new.metrics["sales_ttc"].percent_evolution is None
    assert new.market_share.previous is None


def test_zero_previous_marks_new_entrant(make_row) -> None:
    ranked = compute_ranked_comparison(
        [make_row("a", sales_ttc=10)], [make_row("a", sales_ttc=0)], "sales_ttc"
    )

    assert ranked[0].metrics["sales_ttc"].percent_evolution is EvolutionMarker.NEW
    assert ranked[0].previous_rank == 1


def test_empty_comparison_is_not_single_period(make_row) -> None:
    ranked = compute_ranked_comparison([make_row("a", sales_ttc=10)], [], "sales_ttc")

    assert ranked[0].market_share.previous is None
    assert ranked[0].previous_rank is None


def test_share_metric_can_differ_from_rank_metric(make_row) -> None:
    ranked = compute_ranked_comparison(
        [make_row("a", qty=1, value=90), make_row("b", qty=9, value=10)],
        None,
        "qty",
        share_metric="value",
    )

    assert [r.entity_key for r in ranked] == ["b", "a"]
    assert ranked[0].market_share.current == Decimal(10)


def test_ranking_follows_the_metric_not_the_input_order(make_row) -> None:
    rows = [make_row("A", sales_ttc=100), make_row("B", sales_ttc=200), make_row("C", sales_ttc=50)]

    ranked = compute_ranked_comparison(rows, None, "sales_ttc")

    assert {r.entity_key: r.rank for r in ranked} == {"B": 1, "A": 2, "C": 3}


def test_single_entity_holds_the_whole_market(make_row) -> None:
    ranked = compute_ranked_comparison(
        [make_row("only", sales_ttc=42)], [make_row("only", sales_ttc=21)], "sales_ttc"
    )

    assert len(ranked) == 1
    assert ranked[0].rank == 1
    assert ranked[0].previous_rank == 1
    assert ranked[0].market_share.current == Decimal(100)
    assert ranked[0].market_share.previous == Decimal(100)


def test_uneven_market_shares_sum_to_one_hundred(make_row) -> None:
    rows = [make_row(key, sales_ttc=1) for key in ("a", "b", "c")]

    ranked = compute_ranked_comparison(rows, None, "sales_ttc")
    total = sum(r.market_share.current for r in ranked)

    assert all(r.market_share.current < Decimal("33.34") for r in ranked)
    assert abs(total - Decimal(100)) < Decimal("1e-20")


def test_all_zero_amounts_rank_without_evolutions(make_row) -> None:
    current = [make_row("a", sales_ttc=0), make_row("b", sales_ttc=0)]
    previous = [make_row("a", sales_ttc=0), make_row("b", sales_ttc=0)]

    ranked = compute_ranked_comparison(current, previous, "sales_ttc")

    assert [(r.entity_key, r.rank, r.rank_gain) for r in ranked] == [("a", 1, 0), ("b", 2, 0)]
    for row in ranked:
        assert row.metrics["sales_ttc"].percent_evolution is None
        assert row.market_share.current == Decimal(0)
        assert row.market_share.previous == Decimal(0)
        assert row.market_share.point_delta_evolution == Decimal(0)
