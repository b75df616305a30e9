import pytest

from baseline import BaselineAnalysis, BaselineInsights, BaselineSavings, MixMetrics, compare_against_baseline
from models import Allocation, CostBreakdown, Recommendation
from recommendations import (
    RecommendationContext,
    consolidation_recommendations,
    efficiency_recommendations,
    generate_recommendations,
    operational_recommendations,
    quality_issues,
    rank_recommendations,
    strategic_recommendations,
)


def _allocation(order_id: str, name: str = "Medium Box", fill: float = 80.0, volume: float = 100.0) -> Allocation:
    return Allocation(
        order_id=order_id,
        package_id=name.lower().replace(" ", "_"),
        package_name=name,
        item_dimensions=(5.0, 5.0, 4.0),
        item_volume=volume,
        package_dimensions=(6.0, 6.0, 5.0),
        package_volume=180.0,
        fill_rate=fill,
        weight_utilization=10.0,
        package_count=1,
        cost=CostBreakdown(package_cost=1.0, shipping_cost=2.0),
    )


def _baseline(total_savings: float, savings_percent: float = 10.0, fill_improvement: float = 0.0) -> BaselineAnalysis:
    empty = MixMetrics(total_packages=0, total_cost=1000.0, average_fill_rate=45.0, package_mix={})
    return BaselineAnalysis(
        baseline=empty,
        optimized=empty,
        savings=BaselineSavings(total_savings, savings_percent, 0, fill_improvement),
        insights=BaselineInsights(),
        mix=[],
        synthetic=False,
    )


def _rec(title: str, priority: str, impact: str, savings: float = 0.0) -> Recommendation:
    return Recommendation("cost_reduction", priority, impact, title, "", savings_amount=savings)


def test_ranking_uses_priority_impact_then_savings():
    ranked = rank_recommendations(
        [
            _rec("low", "low", "low", 5000),
            _rec("medium-small", "medium", "medium", 10),
            _rec("critical", "critical", "high"),
            _rec("medium-big", "medium", "medium", 900),
        ]
    )
    assert [r.title for r in ranked] == ["critical", "medium-big", "medium-small", "low"]


def test_ranking_keeps_top_eight():
    ranked = rank_recommendations([_rec(f"r{n}", "medium", "low", n) for n in range(10)])
    assert len(ranked) == 8
    assert ranked[0].title == "r9"


def test_consolidation_of_rarely_used_package():
    allocations = [_allocation(f"M-{n}") for n in range(30)] + [_allocation("O-1", name="Odd Box", fill=20.0)]
    ctx = RecommendationContext(allocations, _baseline(0), orders_per_second=1000)
    (rec,) = consolidation_recommendations(ctx)
    assert rec.title == "Consolidate Odd Box Usage"
    assert rec.description == "Replace 1 orders using Odd Box with Medium Box for better efficiency."
    assert rec.savings_amount == pytest.approx(0.3)
    assert rec.affected_orders == 1


def test_no_consolidation_without_a_strong_alternative():
    allocations = [_allocation(f"M-{n}", fill=50.0) for n in range(30)] + [_allocation("O-1", name="Odd Box")]
    ctx = RecommendationContext(allocations, _baseline(0), orders_per_second=1000)
    assert consolidation_recommendations(ctx) == []


def test_strategic_projection_uses_monthly_volume():
    allocations = [_allocation(f"M-{n}") for n in range(10)]
    assert strategic_recommendations(RecommendationContext(allocations, _baseline(500), 1000)) == []
    (rec,) = strategic_recommendations(RecommendationContext(allocations, _baseline(500), 1000, monthly_volume=100))
    assert rec.title == "Develop Packaging Optimization Strategy"
    assert rec.savings_amount == pytest.approx(60000)
    assert rec.affected_orders == 1200


def test_operational_recommendations():
    allocations = [_allocation("M-1"), _allocation("M-2", fill=20.0)]
    assert [a.order_id for a in quality_issues(allocations)] == ["M-2"]
    titles = [r.title for r in operational_recommendations(RecommendationContext(allocations, _baseline(0), 10))]
    assert titles == ["Optimize Processing Performance", "Implement Quality Control Measures"]
    assert operational_recommendations(RecommendationContext(allocations[:1], _baseline(0), 1000)) == []


def test_standardization_for_wide_portfolios():
    allocations = [_allocation(f"A-{n}", name=f"Box {n}") for n in range(5)]
    recs = efficiency_recommendations(RecommendationContext(allocations, _baseline(0), 1000))
    (rec,) = [r for r in recs if r.title == "Standardize Package Portfolio"]
    assert rec.savings_amount == pytest.approx(200)
    narrow = efficiency_recommendations(RecommendationContext(allocations[:3], _baseline(0), 1000))
    assert narrow == []


def test_generated_recommendations_are_ranked():
    allocations = [_allocation(f"M-{n}") for n in range(10)]
    analysis = compare_against_baseline(allocations)
    recs = generate_recommendations(RecommendationContext(allocations, analysis, orders_per_second=10))
    assert 0 < len(recs) <= 8
    weights = [{"critical": 4, "high": 3, "medium": 2, "low": 1}[r.priority] for r in recs]
    assert recs[-1].title == "Optimize Processing Performance"
    assert weights[0] >= weights[-1]
    assert all(isinstance(r.as_dict()["implementation"]["steps"], list) for r in recs)
