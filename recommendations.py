"""Rule-based recommendations from allocation and baseline results."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, Sequence

from baseline import BaselineAnalysis
from models import Allocation, Recommendation


PRIORITY_WEIGHTS = {"critical": 4, "high": 3, "medium": 2, "low": 1}
IMPACT_WEIGHTS = {"high": 3, "medium": 2, "low": 1}
MAX_RECOMMENDATIONS = 8

HIGH_SAVINGS_PERCENT = 20.0
SHIPPING_TO_PACKAGE_RATIO = 2.0
SHIPPING_REDUCTION_SHARE = 0.15
DIM_POTENTIAL_THRESHOLD = 1000.0
FILL_IMPROVEMENT_THRESHOLD = 15.0
EFFICIENCY_SAVINGS_SHARE = 0.4
LOW_FILL_RATE = 60.0
STANDARD_PORTFOLIO_MIN = 3
STANDARDIZATION_SAVINGS_PER_PACKAGE = 100.0
LOW_USAGE_SHARE = 0.05
ALTERNATIVE_MIN_ORDERS = 10
ALTERNATIVE_VOLUME_TOLERANCE = 0.2
ALTERNATIVE_MIN_FILL = 70.0
CONSOLIDATION_SAVINGS_SHARE = 0.1
MIN_ORDERS_PER_SECOND = 50.0
QUALITY_ISSUE_COST = 0.50
ANNUAL_SAVINGS_THRESHOLD = 10000.0


@dataclass(frozen=True)
class RecommendationContext:
    allocations: Sequence[Allocation]
    baseline: BaselineAnalysis
    orders_per_second: float
    monthly_volume: int | None = None


def cost_reduction_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    recs: list[Recommendation] = []
    savings = ctx.baseline.savings
    if savings.savings_percent > HIGH_SAVINGS_PERCENT:
        recs.append(
            Recommendation(
                rec_type="cost_reduction",
                priority="high",
                impact="high",
                title="Implement Packaging Optimization System",
                description=(
                    f"Achieve {round(savings.savings_percent)}% cost reduction through algorithmic "
                    "package selection and right-sizing."
                ),
                savings_amount=savings.total_savings,
                savings_percent=savings.savings_percent,
                affected_orders=len(ctx.allocations),
                difficulty="medium",
                timeframe="2-4 weeks",
                steps=(
                    "Deploy optimization algorithm to production systems",
                    "Train fulfillment team on new package selection criteria",
                    "Implement real-time cost monitoring dashboard",
                    "Establish monthly review process for continuous improvement",
                ),
            )
        )

    heavy = [
        a for a in ctx.allocations
        if a.cost.shipping_cost > a.cost.package_cost * SHIPPING_TO_PACKAGE_RATIO
    ]
    potential = sum(a.cost.shipping_cost * SHIPPING_REDUCTION_SHARE for a in heavy)
    if potential > DIM_POTENTIAL_THRESHOLD:
        baseline_cost = ctx.baseline.baseline.total_cost
        recs.append(
            Recommendation(
                rec_type="cost_reduction",
                priority="high",
                impact="high",
                title="Optimize Dimensional Weight Impact",
                description=f"Reduce shipping costs by ${round(potential):,} through dimensional weight optimization.",
                savings_amount=potential,
                savings_percent=potential / baseline_cost * 100 if baseline_cost > 0 else 0.0,
                affected_orders=len(heavy),
                difficulty="easy",
                timeframe="1-2 weeks",
                steps=(
                    "Implement dimensional weight checking in fulfillment process",
                    "Update package selection rules to minimize DIM weight penalties",
                    "Train team on DIM weight thresholds",
                    "Monitor shipping cost improvements",
                ),
            )
        )
    return recs


def efficiency_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    recs: list[Recommendation] = []
    savings = ctx.baseline.savings
    if savings.fill_rate_improvement > FILL_IMPROVEMENT_THRESHOLD:
        recs.append(
            Recommendation(
                rec_type="efficiency_improvement",
                priority="medium",
                impact="medium",
                title="Improve Space Utilization",
                description=(
                    f"Increase average fill rate by {round(savings.fill_rate_improvement)}% "
                    "through better package sizing."
                ),
                savings_amount=savings.total_savings * EFFICIENCY_SAVINGS_SHARE,
                savings_percent=savings.fill_rate_improvement,
                affected_orders=sum(1 for a in ctx.allocations if a.fill_rate < LOW_FILL_RATE),
                difficulty="medium",
                timeframe="2-3 weeks",
                steps=(
                    "Implement real-time fill rate monitoring",
                    "Create fill rate targets for fulfillment team",
                    "Develop package selection guidelines",
                    "Set up automated alerts for poor utilization",
                ),
            )
        )

    # 80/20 rule: the top fifth of package types should carry most of the volume
    distinct = len({a.package_name for a in ctx.allocations})
    optimal = max(STANDARD_PORTFOLIO_MIN, math.ceil(distinct * 0.2))
    if distinct > optimal:
        recs.append(
            Recommendation(
                rec_type="efficiency_improvement",
                priority="medium",
                impact="low",
                title="Standardize Package Portfolio",
                description=f"Reduce operational complexity by focusing on {optimal} high-performing package sizes.",
                savings_amount=(distinct - optimal) * STANDARDIZATION_SAVINGS_PER_PACKAGE,
                savings_percent=5.0,
                affected_orders=len(ctx.allocations),
                difficulty="easy",
                timeframe="1-2 weeks",
                steps=(
                    "Analyze package usage patterns",
                    "Identify top-performing package sizes",
                    "Phase out underutilized packages",
                    "Update fulfillment procedures",
                ),
            )
        )
    return recs


def _group_by_package(allocations: Sequence[Allocation]) -> dict[str, list[Allocation]]:
    groups: dict[str, list[Allocation]] = {}
    for allocation in allocations:
        groups.setdefault(allocation.package_name, []).append(allocation)
    return groups


def _better_alternative(name: str, orders: list[Allocation], groups: dict[str, list[Allocation]]) -> str | None:
    average_volume = sum(o.item_volume for o in orders) / len(orders)
    for candidate, candidate_orders in groups.items():
        if candidate == name or len(candidate_orders) < ALTERNATIVE_MIN_ORDERS:
            continue
        candidate_volume = sum(o.item_volume for o in candidate_orders) / len(candidate_orders)
        candidate_fill = sum(o.fill_rate for o in candidate_orders) / len(candidate_orders)
        if abs(candidate_volume - average_volume) < average_volume * ALTERNATIVE_VOLUME_TOLERANCE and candidate_fill > ALTERNATIVE_MIN_FILL:
            return candidate
    return None


def consolidation_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    groups = _group_by_package(ctx.allocations)
    total = len(ctx.allocations)
    opportunities: list[tuple[str, str, int, float]] = []
    for name, orders in groups.items():
        if len(orders) >= total * LOW_USAGE_SHARE:
            continue
        alternative = _better_alternative(name, orders, groups)
        if alternative is None:
            continue
        current_cost = sum(o.cost.total_cost for o in orders)
        opportunities.append((name, alternative, len(orders), current_cost))
    if not opportunities:
        return []

    opportunities.sort(key=lambda o: o[3] * CONSOLIDATION_SAVINGS_SHARE, reverse=True)
    source, target, count, current_cost = opportunities[0]
    return [
        Recommendation(
            rec_type="package_consolidation",
            priority="medium",
            impact="medium",
            title=f"Consolidate {source} Usage",
            description=f"Replace {count} orders using {source} with {target} for better efficiency.",
            savings_amount=current_cost * CONSOLIDATION_SAVINGS_SHARE,
            savings_percent=CONSOLIDATION_SAVINGS_SHARE * 100 if current_cost > 0 else 0.0,
            affected_orders=count,
            difficulty="easy",
            timeframe="1 week",
            steps=(
                f"Identify orders currently using {source}",
                f"Update fulfillment rules to use {target}",
                "Train team on new package selection criteria",
                "Monitor consolidation effectiveness",
            ),
        )
    ]


def quality_issues(allocations: Sequence[Allocation]) -> list[Allocation]:
    return [
        a for a in allocations
        if a.fill_rate < 30 or a.efficiency < 40 or a.cost.total_cost > a.cost.package_cost * 5
    ]


def operational_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    recs: list[Recommendation] = []
    if ctx.orders_per_second < MIN_ORDERS_PER_SECOND:
        recs.append(
            Recommendation(
                rec_type="efficiency_improvement",
                priority="low",
                impact="low",
                title="Optimize Processing Performance",
                description="Improve system performance to handle larger order volumes more efficiently.",
                difficulty="complex",
                timeframe="3-4 weeks",
                steps=(
                    "Profile current processing bottlenecks",
                    "Implement batch processing optimizations",
                    "Add parallel processing capabilities",
                    "Monitor performance improvements",
                ),
            )
        )

    issues = quality_issues(ctx.allocations)
    if issues:
        recs.append(
            Recommendation(
                rec_type="efficiency_improvement",
                priority="medium",
                impact="medium",
                title="Implement Quality Control Measures",
                description=f"Address {len(issues)} quality issues to improve packaging consistency.",
                savings_amount=len(issues) * QUALITY_ISSUE_COST,
                savings_percent=2.0,
                affected_orders=len(issues),
                difficulty="medium",
                timeframe="2-3 weeks",
                steps=(
                    "Establish packaging quality metrics",
                    "Implement validation checks in fulfillment process",
                    "Create quality control dashboard",
                    "Train team on quality standards",
                ),
            )
        )
    return recs


def strategic_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    if not ctx.allocations:
        return []
    monthly_volume = ctx.monthly_volume or len(ctx.allocations)
    savings = ctx.baseline.savings
    annual = savings.total_savings * (monthly_volume / len(ctx.allocations)) * 12
    if annual <= ANNUAL_SAVINGS_THRESHOLD:
        return []
    return [
        Recommendation(
            rec_type="cost_reduction",
            priority="high",
            impact="high",
            title="Develop Packaging Optimization Strategy",
            description=f"Create comprehensive packaging strategy with projected annual savings of ${round(annual):,}.",
            savings_amount=annual,
            savings_percent=savings.savings_percent,
            affected_orders=monthly_volume * 12,
            difficulty="complex",
            timeframe="6-8 weeks",
            steps=(
                "Develop comprehensive packaging strategy document",
                "Create implementation roadmap with milestones",
                "Establish ROI tracking and measurement framework",
                "Plan change management and training programs",
                "Set up continuous improvement processes",
            ),
        )
    ]


GENERATORS: tuple[Callable[[RecommendationContext], list[Recommendation]], ...] = (
    cost_reduction_recommendations,
    efficiency_recommendations,
    consolidation_recommendations,
    operational_recommendations,
    strategic_recommendations,
)


def rank_recommendations(candidates: Sequence[Recommendation], limit: int = MAX_RECOMMENDATIONS) -> list[Recommendation]:
    """Order by priority + impact weight, then savings; keep the top ``limit``."""
    def _key(rec: Recommendation) -> tuple[int, float]:
        return (PRIORITY_WEIGHTS[rec.priority] + IMPACT_WEIGHTS[rec.impact], rec.savings_amount)

    return sorted(candidates, key=_key, reverse=True)[:limit]


def generate_recommendations(ctx: RecommendationContext) -> list[Recommendation]:
    candidates: list[Recommendation] = []
    for generator in GENERATORS:
        candidates.extend(generator(ctx))
    return rank_recommendations(candidates)
