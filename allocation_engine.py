"""Batch allocation of orders to the packaging catalog."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Sequence

from config import AnalyzerConfig
from cost_model import CostOfOwnership, packaging_cost, shipping_cost, total_cost_of_ownership
from models import Allocation, CostBreakdown, OrderRecord, PackageType, PackingItem
from packing_engine import pack_items
from progress import CancellationToken, ProgressTracker
from volume_model import cube_edge, fill_rate, to_inches, volume


FILL_RATE_BUCKETS = (
    ("Poor (0-50%)", 50.0),
    ("Fair (51-70%)", 70.0),
    ("Good (71-85%)", 85.0),
    ("Excellent (86-100%)", 100.0),
)


class AllocationError(ValueError):
    """A single order cannot be allocated to any package."""


@dataclass(frozen=True)
class AllocationFailure:
    order_id: str
    reason: str
    row_number: int = 0

    def as_dict(self) -> dict[str, object]:
        return {"order_id": self.order_id, "reason": self.reason, "row_number": self.row_number}


@dataclass
class AllocationRun:
    allocations: list[Allocation] = field(default_factory=list)
    failures: list[AllocationFailure] = field(default_factory=list)
    summary: dict[str, object] = field(default_factory=dict)
    fill_rate_distribution: dict[str, int] = field(default_factory=dict)
    package_utilization: dict[str, dict[str, object]] = field(default_factory=dict)
    cost_of_ownership: CostOfOwnership | None = None

    @property
    def optimized_total_cost(self) -> float:
        return sum(a.cost.total_cost for a in self.allocations)

    def as_dict(self) -> dict[str, object]:
        return {
            "summary": self.summary,
            "allocations": [a.as_dict() for a in self.allocations],
            "failures": [f.as_dict() for f in self.failures],
            "fill_rate_distribution": dict(self.fill_rate_distribution),
            "package_utilization": {k: dict(v) for k, v in self.package_utilization.items()},
            "cost_of_ownership": self.cost_of_ownership.as_dict() if self.cost_of_ownership else None,
        }


def order_to_packing_items(order: OrderRecord) -> list[PackingItem]:
    """One packing unit per ordered piece, extents in inches."""
    if order.quantity < 1:
        raise AllocationError(f"Order '{order.order_id}' has a non-positive quantity")
    if order.dimensions is not None:
        extents = to_inches(order.dimensions).as_tuple()
    elif order.total_volume and order.total_volume > 0:
        edge = cube_edge(order.total_volume, order.quantity)
        extents = (edge, edge, edge)
    else:
        raise AllocationError(f"Order '{order.order_id}' has no dimensions or total volume")
    return [
        PackingItem(
            item_id=f"{order.order_id}-{unit + 1}",
            length=extents[0],
            width=extents[1],
            height=extents[2],
            weight=order.unit_weight,
            fragile=order.fragile,
            stackable=not order.fragile,
            category=order.category or "general",
            name=order.product_name,
        )
        for unit in range(order.quantity)
    ]


def allocate_order(
    order: OrderRecord,
    packages: Sequence[PackageType],
    config: AnalyzerConfig | None = None,
) -> Allocation:
    config = config or AnalyzerConfig()
    if not packages:
        raise ValueError("At least one package type is required")
    items = order_to_packing_items(order)
    packing = pack_items(items, packages, config.packing_constraints(), config.packing_algorithm)
    if packing.unpacked:
        raise AllocationError(
            f"{len(packing.unpacked)} of {len(items)} units do not fit any available package"
        )

    recommended = packing.solutions[0].container
    item_volume = sum(item.volume for item in items)
    package_volume = volume(recommended.dimensions)
    capacity = recommended.weight_capacity

    shipping = 0.0
    if config.include_shipping_costs:
        shipping = shipping_cost(
            recommended.dimensions,
            order.unit_weight + recommended.package_weight,
            zone=order.zone,
            priority=order.priority,
            carrier=config.carrier,
            dim_factor=config.dim_factor,
        ).total

    return Allocation(
        order_id=order.order_id,
        package_id=recommended.package_id,
        package_name=recommended.name,
        item_dimensions=items[0].extents,
        item_volume=item_volume,
        package_dimensions=to_inches(recommended.dimensions).as_tuple(),
        package_volume=package_volume,
        fill_rate=fill_rate(item_volume, package_volume),
        weight_utilization=min(order.unit_weight / capacity * 100, 100.0) if capacity > 0 else 0.0,
        package_count=packing.total_containers,
        cost=CostBreakdown(package_cost=packing.total_cost, shipping_cost=shipping),
        materials_cost=sum(packaging_cost(s.container).material_cost for s in packing.solutions),
    )


def create_batches(orders: Sequence[OrderRecord], batch_size: int = 100) -> list[list[OrderRecord]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(orders[i:i + batch_size]) for i in range(0, len(orders), batch_size)]


def fill_rate_bucket(rate: float) -> str:
    for label, upper in FILL_RATE_BUCKETS:
        if rate <= upper:
            return label
    return FILL_RATE_BUCKETS[-1][0]


def fill_rate_distribution(allocations: Sequence[Allocation]) -> dict[str, int]:
    counts = {label: 0 for label, _ in FILL_RATE_BUCKETS}
    for allocation in allocations:
        counts[fill_rate_bucket(allocation.fill_rate)] += 1
    return counts


def package_utilization(allocations: Sequence[Allocation]) -> dict[str, dict[str, object]]:
    usage: dict[str, dict[str, object]] = {}
    for allocation in allocations:
        entry = usage.setdefault(
            allocation.package_id,
            {"package_name": allocation.package_name, "orders": 0, "packages": 0},
        )
        entry["orders"] = int(entry["orders"]) + 1
        entry["packages"] = int(entry["packages"]) + allocation.package_count
    total = len(allocations)
    ranked = sorted(usage.items(), key=lambda kv: int(kv[1]["orders"]), reverse=True)
    return {
        package_id: {**entry, "percent": round(int(entry["orders"]) / total * 100, 2) if total else 0.0}
        for package_id, entry in ranked
    }


def _summarize(
    run: AllocationRun,
    total_orders: int,
    elapsed: float,
    config: AnalyzerConfig,
) -> None:
    allocations = run.allocations
    count = len(allocations)
    package_total = sum(a.cost.package_cost for a in allocations)
    shipping_total = sum(a.cost.shipping_cost for a in allocations)
    materials_total = sum(a.materials_cost for a in allocations)
    package_count = sum(a.package_count for a in allocations)
    run.cost_of_ownership = total_cost_of_ownership(
        packaging=package_total,
        shipping=shipping_total,
        package_count=package_count,
        total_volume_cuin=sum(a.package_volume * a.package_count for a in allocations),
        storage_days=config.storage_days,
        materials=materials_total,
    )
    run.fill_rate_distribution = fill_rate_distribution(allocations)
    run.package_utilization = package_utilization(allocations)
    run.summary = {
        "total_orders": total_orders,
        "successful_allocations": count,
        "failed_allocations": len(run.failures),
        "average_fill_rate": sum(a.fill_rate for a in allocations) / count if count else 0.0,
        "average_efficiency": sum(a.efficiency for a in allocations) / count if count else 0.0,
        "total_packages": package_count,
        "total_package_cost": package_total,
        "total_shipping_cost": shipping_total,
        "total_materials_cost": materials_total,
        "optimized_total_cost": package_total + shipping_total,
        "processing_seconds": elapsed,
        "orders_per_second": total_orders / elapsed if elapsed > 0 else float(total_orders),
    }


def allocate_orders(
    orders: Sequence[OrderRecord],
    packages: Sequence[PackageType],
    config: AnalyzerConfig | None = None,
    progress: ProgressTracker | None = None,
    cancel_token: CancellationToken | None = None,
    logger: logging.Logger | None = None,
    clock: Callable[[], float] = time.perf_counter,
    final_stage: str = "complete",
) -> AllocationRun:
    """Allocate every order in batches; per-order failures are recorded, not raised."""
    log = logger or logging.getLogger(__name__)
    config = config or AnalyzerConfig()
    if not packages:
        raise ValueError("At least one package type is required")

    started = clock()
    run = AllocationRun()
    batches = create_batches(orders, config.batch_size)
    processed = 0
    for batch_idx, batch in enumerate(batches):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        for order in batch:
            try:
                run.allocations.append(allocate_order(order, packages, config))
            except AllocationError as exc:
                log.warning("Order %s could not be allocated: %s", order.order_id, exc)
                run.failures.append(AllocationFailure(order.order_id, str(exc), order.row_number))
            except Exception as exc:
                log.warning("Unexpected error allocating order %s: %s", order.order_id, exc)
                run.failures.append(
                    AllocationFailure(order.order_id, f"Unexpected error: {exc}", order.row_number)
                )
            processed += 1
        log.debug("Finished batch %s/%s (%s orders)", batch_idx + 1, len(batches), processed)
        if progress is not None:
            progress.report(
                "optimization",
                (batch_idx + 1) / len(batches) * 80,
                processed,
                len(orders),
                f"Processed batch {batch_idx + 1} of {len(batches)}",
            )
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    if progress is not None:
        progress.report("analysis", 85, processed, len(orders), "Calculating allocation summary")
    _summarize(run, len(orders), clock() - started, config)
    if progress is not None:
        progress.report("analysis", 95, processed, len(orders), "Allocation summary ready")
        progress.report(final_stage, 100, processed, len(orders), "Allocation complete")

    log.info(
        "Allocated %s of %s orders (%s failures)",
        len(run.allocations),
        len(orders),
        len(run.failures),
    )
    return run
