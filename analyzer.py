"""End-to-end packaging suite analysis: import, allocate, compare, recommend."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import itertools
import logging
import time
from typing import Callable, Iterator
import uuid

from allocation_engine import AllocationFailure, AllocationRun, allocate_orders
from baseline import BaselineAnalysis, compare_against_baseline
from column_mapper import StructuralInputError
from config import AnalyzerConfig
from cost_model import BreakEven, RoiAnalysis, break_even, roi_analysis
from models import Allocation, BaselineMixItem, Recommendation
from progress import CancellationToken, ProgressCallback, ProgressTracker
from recommendations import RecommendationContext, generate_recommendations
from services.csv_import import (
    FallbackDimensions,
    ImportReport,
    ValidationIssue,
    parse_baseline_mix,
    parse_order_history,
    parse_packaging_suite,
)


def default_analysis_id() -> str:
    return f"analysis-{uuid.uuid4().hex[:12]}"


def sequential_ids(prefix: str = "analysis") -> Callable[[], str]:
    """Deterministic id factory: ``prefix-0001``, ``prefix-0002``, ..."""
    counter: Iterator[int] = itertools.count(1)
    return lambda: f"{prefix}-{next(counter):04d}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnalysisReport:
    analysis_id: str
    timestamp: datetime
    summary: dict[str, object]
    allocations: list[Allocation]
    failures: list[AllocationFailure]
    baseline: BaselineAnalysis
    recommendations: list[Recommendation]
    metrics: dict[str, object]
    package_weights: dict[str, float]
    import_issues: dict[str, dict[str, object]] = field(default_factory=dict)
    cost_of_ownership: dict[str, float] | None = None
    roi: RoiAnalysis | None = None
    break_even: BreakEven | None = None
    config: dict[str, object] = field(default_factory=dict)

    def as_dict(self) -> dict[str, object]:
        return {
            "analysis_id": self.analysis_id,
            "timestamp": self.timestamp.isoformat(),
            "summary": {k: round(v, 2) if isinstance(v, float) else v for k, v in self.summary.items()},
            "allocations": [a.as_dict() for a in self.allocations],
            "failures": [f.as_dict() for f in self.failures],
            "baseline": self.baseline.as_dict(),
            "recommendations": [r.as_dict() for r in self.recommendations],
            "metrics": self.metrics,
            "package_weights": dict(self.package_weights),
            "import_issues": self.import_issues,
            "cost_of_ownership": self.cost_of_ownership,
            "roi": self.roi.as_dict() if self.roi else None,
            "break_even": self.break_even.as_dict() if self.break_even else None,
            "config": self.config,
        }


def _load_baseline(
    baseline_csv: str | None,
    log: logging.Logger,
) -> tuple[list[BaselineMixItem] | None, dict[str, object] | None]:
    if not baseline_csv or not baseline_csv.strip():
        return None, None
    try:
        report: ImportReport = parse_baseline_mix(baseline_csv)
    except StructuralInputError as exc:
        log.warning("Baseline mix ignored, a synthetic baseline will be used: %s", exc)
        issue = ValidationIssue(0, "baseline", "BASELINE_UNUSABLE", f"{exc}; a synthetic baseline was used.")
        return None, {"errors": [], "warnings": [issue.as_dict()], "summary": {}, "mapping": {}}
    if not report.records:
        log.warning("Baseline mix has no valid rows; a synthetic baseline will be used")
    return list(report.records) or None, report.as_dict()


def _break_even(baseline: BaselineAnalysis, implementation_cost: float) -> BreakEven | None:
    """Packages to ship at optimized unit cost before the implementation cost is recovered."""
    current, optimized = baseline.baseline, baseline.optimized
    if implementation_cost <= 0 or not current.total_packages or not optimized.total_packages:
        return None
    price = current.total_cost / current.total_packages
    variable = optimized.total_cost / optimized.total_packages
    if price <= variable:
        return None
    return break_even(implementation_cost, variable, price)


def _metrics(run: AllocationRun, elapsed: float) -> dict[str, object]:
    successes = len(run.allocations)
    total = int(run.summary.get("total_orders", 0))
    efficiencies = [a.efficiency for a in run.allocations]
    return {
        "processing": {
            "total_seconds": round(elapsed, 4),
            "orders_per_second": round(successes / elapsed, 2) if elapsed > 0 else float(successes),
        },
        "optimization": {
            "success_rate": round(successes / total * 100, 2) if total else 0.0,
            "average_iterations": 1,
            "convergence_rate": 100,
        },
        "quality": {
            "fill_rate_distribution": dict(run.fill_rate_distribution),
            "average_efficiency": round(sum(efficiencies) / len(efficiencies), 2) if efficiencies else 0.0,
            "efficiency_scores": [round(e, 2) for e in efficiencies],
        },
    }


def analyze_suite(
    order_csv: str,
    packaging_csv: str,
    baseline_csv: str | None = None,
    *,
    config: AnalyzerConfig | None = None,
    fallback: FallbackDimensions | None = None,
    on_progress: ProgressCallback | None = None,
    cancel_token: CancellationToken | None = None,
    logger: logging.Logger | None = None,
    id_factory: Callable[[], str] = default_analysis_id,
    clock: Callable[[], datetime] = _utc_now,
    timer: Callable[[], float] = time.perf_counter,
) -> AnalysisReport:
    """Run the full analysis over CSV text inputs.

    Structural problems (empty input, missing mandatory columns, no valid
    orders or packages) raise ``StructuralInputError``; row-level problems are
    reported in ``import_issues`` and per-order failures in ``failures``.
    """
    log = logger or logging.getLogger(__name__)
    config = config or AnalyzerConfig()
    tracker = ProgressTracker(on_progress)
    token = cancel_token or CancellationToken()
    started = timer()
    analysis_id = id_factory()

    tracker.report("parsing", 0, message="Starting suite analysis")
    token.raise_if_cancelled()
    tracker.report("parsing", 5, message="Processing order history")
    order_report = parse_order_history(order_csv, fallback=fallback, progress=tracker.child(10, 30))
    if not order_report.records:
        raise StructuralInputError(
            f"No valid orders found in order history. {order_report.summary['failed_rows']} rows had errors."
        )

    tracker.report("validation", 30, message="Processing packaging suite")
    package_report = parse_packaging_suite(packaging_csv)
    if not package_report.records:
        raise StructuralInputError(
            f"No valid packaging options found. {package_report.summary['failed_rows']} rows had errors."
        )
    packages = list(package_report.records)

    tracker.report("validation", 35, message="Processing baseline mix")
    baseline_items, baseline_issues = _load_baseline(baseline_csv, log)
    token.raise_if_cancelled()

    orders = list(order_report.records)
    tracker.report("optimization", 40, 0, len(orders), "Optimizing packaging allocation")
    run = allocate_orders(
        orders,
        packages,
        config,
        progress=tracker.child(40, 80),
        cancel_token=token,
        logger=log,
        final_stage="analysis",
    )

    token.raise_if_cancelled()
    tracker.report("analysis", 80, message="Comparing against baseline")
    baseline = compare_against_baseline(run.allocations, baseline_items)

    tracker.report("analysis", 90, message="Generating recommendations")
    recommendations: list[Recommendation] = []
    if run.allocations:
        recommendations = generate_recommendations(
            RecommendationContext(
                allocations=run.allocations,
                baseline=baseline,
                orders_per_second=float(run.summary["orders_per_second"]),
                monthly_volume=config.monthly_volume,
            )
        )

    roi = None
    if config.implementation_cost > 0 and run.allocations:
        scale = (config.monthly_volume / len(run.allocations)) if config.monthly_volume else 1.0
        roi = roi_analysis(baseline.savings.total_savings * scale, config.implementation_cost)

    tracker.report("analysis", 95, message="Compiling report")
    elapsed = timer() - started
    import_issues = {"orders": order_report.as_dict(), "packaging": package_report.as_dict()}
    if baseline_issues is not None:
        import_issues["baseline"] = baseline_issues

    report = AnalysisReport(
        analysis_id=analysis_id,
        timestamp=clock(),
        summary={
            "total_rows": order_report.summary["total_rows"],
            "total_orders": len(orders),
            "processed_orders": len(run.allocations),
            "failed_orders": len(run.failures),
            "total_savings": baseline.savings.total_savings,
            "average_fill_rate_improvement": baseline.savings.fill_rate_improvement,
        },
        allocations=run.allocations,
        failures=run.failures,
        baseline=baseline,
        recommendations=recommendations,
        metrics=_metrics(run, elapsed),
        package_weights={p.package_id: p.package_weight for p in packages},
        import_issues=import_issues,
        cost_of_ownership=run.cost_of_ownership.as_dict() if run.cost_of_ownership else None,
        roi=roi,
        break_even=_break_even(baseline, config.implementation_cost),
        config=config.as_dict(),
    )
    tracker.report("complete", 100, len(run.allocations), len(orders), "Analysis complete")
    log.info(
        "Analysis %s finished: %s allocated, %s failed, savings %.2f",
        analysis_id,
        len(run.allocations),
        len(run.failures),
        baseline.savings.total_savings,
    )
    return report
