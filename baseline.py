"""Baseline packaging mix: synthesis, comparison and savings insights."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Sequence

from models import Allocation, BaselineMixItem


logger = logging.getLogger(__name__)

BASELINE_FILL_RATE = 45.0
SYNTHETIC_USAGE_SHARE = 0.6
SYNTHETIC_COST_MARKUP = 1.15
# (name, id, share of orders in percent, multiple of the mean per-order cost)
SYNTHETIC_PADDING = (
    ("Large Box (Over-used)", "large_box_overused", 15.0, 1.50),
    ("Medium Box (Sub-optimal)", "medium_box_suboptimal", 25.0, 1.20),
)
OPPORTUNITY_SAVINGS_SHARE = 0.3
TOP_OPPORTUNITIES = 5
MIN_UTILIZATION_GAIN = 5.0


@dataclass(frozen=True)
class MixMetrics:
    total_packages: int
    total_cost: float
    average_fill_rate: float
    package_mix: dict[str, float]

    def as_dict(self) -> dict[str, object]:
        return {
            "total_packages": self.total_packages,
            "total_cost": round(self.total_cost, 2),
            "average_fill_rate": round(self.average_fill_rate, 2),
            "package_mix": {name: round(pct, 2) for name, pct in self.package_mix.items()},
        }


@dataclass(frozen=True)
class BaselineSavings:
    total_savings: float
    savings_percent: float
    package_reduction: int
    fill_rate_improvement: float

    def as_dict(self) -> dict[str, object]:
        return {
            "total_savings": round(self.total_savings, 2),
            "savings_percent": round(self.savings_percent, 2),
            "package_reduction": self.package_reduction,
            "fill_rate_improvement": round(self.fill_rate_improvement, 2),
        }


@dataclass
class BaselineInsights:
    top_saving_opportunities: list[dict[str, object]] = field(default_factory=list)
    utilization_improvements: list[dict[str, object]] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "top_saving_opportunities": [dict(o) for o in self.top_saving_opportunities],
            "utilization_improvements": [dict(u) for u in self.utilization_improvements],
            "recommendations": list(self.recommendations),
        }


@dataclass
class BaselineAnalysis:
    baseline: MixMetrics
    optimized: MixMetrics
    savings: BaselineSavings
    insights: BaselineInsights
    mix: list[BaselineMixItem]
    synthetic: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "baseline_source": "synthetic" if self.synthetic else "supplied",
            "baseline": self.baseline.as_dict(),
            "optimized": self.optimized.as_dict(),
            "savings": self.savings.as_dict(),
            "insights": self.insights.as_dict(),
            "mix": [item.as_dict() for item in self.mix],
        }


def synthesize_baseline(allocations: Sequence[Allocation]) -> list[BaselineMixItem]:
    """Plausible pre-optimization mix derived from the optimized package histogram.

    Entries are priced from observed landed cost (package + shipping), so the
    synthesized total is never below the optimized total.
    """
    order_count = len(allocations)
    if order_count == 0:
        return []

    histogram: dict[str, dict[str, object]] = {}
    for allocation in allocations:
        entry = histogram.setdefault(allocation.package_id, {"name": allocation.package_name, "count": 0, "cost": 0.0})
        entry["count"] = int(entry["count"]) + 1
        entry["cost"] = float(entry["cost"]) + allocation.cost.total_cost
    mean_cost = sum(a.cost.total_cost for a in allocations) / order_count

    mix: list[BaselineMixItem] = []
    for package_id, entry in histogram.items():
        count = int(entry["count"])
        monthly = int(round(count * SYNTHETIC_USAGE_SHARE))
        if monthly <= 0:
            continue
        mix.append(
            BaselineMixItem(
                package_name=str(entry["name"]),
                package_id=package_id,
                usage_percent=monthly / order_count * 100,
                monthly_volume=monthly,
                average_cost=float(entry["cost"]) / count * SYNTHETIC_COST_MARKUP,
                synthetic=True,
            )
        )
    for name, package_id, share, multiple in SYNTHETIC_PADDING:
        mix.append(
            BaselineMixItem(
                package_name=name,
                package_id=package_id,
                usage_percent=share,
                monthly_volume=math.ceil(share / 100 * order_count),
                average_cost=mean_cost * multiple,
                synthetic=True,
            )
        )
    return mix


def baseline_metrics(mix: Sequence[BaselineMixItem]) -> MixMetrics:
    total_packages = sum(item.monthly_volume for item in mix)
    package_mix = {
        item.package_name: (item.monthly_volume / total_packages * 100 if total_packages else 0.0)
        for item in mix
    }
    return MixMetrics(
        total_packages=total_packages,
        total_cost=sum(item.total_cost for item in mix),
        average_fill_rate=BASELINE_FILL_RATE if mix else 0.0,
        package_mix=package_mix,
    )


def optimized_metrics(allocations: Sequence[Allocation]) -> MixMetrics:
    total_packages = sum(a.package_count for a in allocations)
    counts: dict[str, int] = {}
    for allocation in allocations:
        counts[allocation.package_name] = counts.get(allocation.package_name, 0) + 1
    count = len(allocations)
    return MixMetrics(
        total_packages=total_packages,
        total_cost=sum(a.cost.total_cost for a in allocations),
        average_fill_rate=sum(a.fill_rate for a in allocations) / count if count else 0.0,
        package_mix={name: n / count * 100 for name, n in counts.items()},
    )


def _optimized_usage(item: BaselineMixItem, allocations: Sequence[Allocation]) -> int:
    key_name = item.package_name.strip().lower()
    return sum(
        1 for a in allocations
        if a.package_id == item.package_id or a.package_name.strip().lower() == key_name
    )


def _saving_opportunities(mix: Sequence[BaselineMixItem], allocations: Sequence[Allocation]) -> list[dict[str, object]]:
    opportunities: list[dict[str, object]] = []
    for item in mix:
        optimized = _optimized_usage(item, allocations)
        if item.monthly_volume <= optimized:
            continue
        reduction = item.monthly_volume - optimized
        per_order = item.average_cost * OPPORTUNITY_SAVINGS_SHARE
        opportunities.append(
            {
                "package_name": item.package_name,
                "current_usage": item.monthly_volume,
                "optimized_usage": optimized,
                "usage_reduction": reduction,
                "savings_per_order": round(per_order, 2),
                "total_savings": round(reduction * per_order, 2),
            }
        )
    opportunities.sort(key=lambda o: float(o["total_savings"]), reverse=True)
    return opportunities[:TOP_OPPORTUNITIES]


def _utilization_improvements(allocations: Sequence[Allocation]) -> list[dict[str, object]]:
    fills: dict[str, list[float]] = {}
    for allocation in allocations:
        fills.setdefault(allocation.package_name, []).append(allocation.fill_rate)
    improvements: list[dict[str, object]] = []
    for name, rates in fills.items():
        average = sum(rates) / len(rates)
        gain = average - BASELINE_FILL_RATE
        if gain > MIN_UTILIZATION_GAIN:
            improvements.append(
                {
                    "package_name": name,
                    "current_fill_rate": BASELINE_FILL_RATE,
                    "optimized_fill_rate": round(average, 2),
                    "improvement": round(gain, 2),
                }
            )
    improvements.sort(key=lambda u: float(u["improvement"]), reverse=True)
    return improvements


def _insight_messages(savings: BaselineSavings, insights: BaselineInsights) -> list[str]:
    messages: list[str] = []
    if savings.savings_percent > 15:
        messages.append(f"Implement packaging optimization to achieve {savings.savings_percent:.1f}% cost reduction")
    if savings.fill_rate_improvement > 20:
        messages.append(f"Improve space utilization by {savings.fill_rate_improvement:.1f}% through right-sizing")
    if insights.top_saving_opportunities:
        top = insights.top_saving_opportunities[0]
        messages.append(
            f"Focus on reducing usage of {top['package_name']} - potential savings of ${float(top['total_savings']):,.2f}"
        )
    if insights.utilization_improvements:
        top = insights.utilization_improvements[0]
        messages.append(f"Optimize {top['package_name']} usage to improve fill rate by {float(top['improvement']):.1f}%")
    if savings.package_reduction > 0:
        messages.append(f"Reduce total package count by {savings.package_reduction} units through better allocation")
    return messages


def compare_against_baseline(
    allocations: Sequence[Allocation],
    baseline_mix: Sequence[BaselineMixItem] | None = None,
) -> BaselineAnalysis:
    synthetic = not baseline_mix
    mix = synthesize_baseline(allocations) if synthetic else list(baseline_mix or [])
    if synthetic:
        logger.info("No baseline mix supplied; synthesized %s entries from %s allocations", len(mix), len(allocations))

    baseline = baseline_metrics(mix)
    optimized = optimized_metrics(allocations)
    total_savings = baseline.total_cost - optimized.total_cost
    savings = BaselineSavings(
        total_savings=total_savings,
        savings_percent=total_savings / baseline.total_cost * 100 if baseline.total_cost > 0 else 0.0,
        package_reduction=baseline.total_packages - optimized.total_packages,
        fill_rate_improvement=optimized.average_fill_rate - baseline.average_fill_rate if allocations else 0.0,
    )
    insights = BaselineInsights(
        top_saving_opportunities=_saving_opportunities(mix, allocations),
        utilization_improvements=_utilization_improvements(allocations),
    )
    insights.recommendations = _insight_messages(savings, insights)
    return BaselineAnalysis(baseline, optimized, savings, insights, mix, synthetic)
