"""Greedy 3D container packing for order items.

Single containers are filled with guillotine free-space partitioning; multiple
containers are chosen with Best-Fit-Decreasing. Free spaces always partition
the unused region, so placed items stay inside the container and never overlap.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Sequence

from models import Orientation, PackageType, PackedItem, PackingItem, PackingResult
from volume_model import fill_rate, fits_within, to_inches


logger = logging.getLogger(__name__)

TOLERANCE = 1e-9
FRAGILE_MODES = ("padded", "bottom_only", "separate")
ITEM_PACKED_BONUS = 10.0
STABILITY_ORIGIN = 1000.0
TIGHTNESS_CEILING = 10000.0


@dataclass(frozen=True)
class PackingConstraints:
    allow_rotation: bool = True
    allow_stacking: bool = True
    max_stack_height: float | None = None
    fragile_handling: str = "padded"

    def __post_init__(self) -> None:
        if self.fragile_handling not in FRAGILE_MODES:
            raise ValueError(f"fragile_handling must be one of {', '.join(FRAGILE_MODES)}")
        if self.max_stack_height is not None and self.max_stack_height <= 0:
            raise ValueError("max_stack_height must be greater than 0")


@dataclass(frozen=True)
class FreeSpace:
    x: float
    y: float
    z: float
    length: float
    width: float
    height: float

    @property
    def volume(self) -> float:
        return self.length * self.width * self.height


@dataclass
class MultiPackingResult:
    solutions: list[PackingResult] = field(default_factory=list)
    unpacked: list[PackingItem] = field(default_factory=list)
    savings: float = 0.0

    @property
    def total_cost(self) -> float:
        return sum(s.total_cost for s in self.solutions)

    @property
    def total_containers(self) -> int:
        return len(self.solutions)

    @property
    def average_fill_rate(self) -> float:
        if not self.solutions:
            return 0.0
        return sum(s.fill_rate for s in self.solutions) / len(self.solutions)

    def as_dict(self) -> dict[str, object]:
        return {
            "solutions": [s.as_dict() for s in self.solutions],
            "unpacked_items": [i.item_id for i in self.unpacked],
            "total_cost": round(self.total_cost, 2),
            "total_containers": self.total_containers,
            "average_fill_rate": round(self.average_fill_rate, 2),
            "savings": round(self.savings, 2),
        }


def item_orientations(
    extents: tuple[float, float, float],
    allow_rotation: bool = True,
) -> list[tuple[Orientation, tuple[float, float, float]]]:
    l, w, h = extents
    if not allow_rotation:
        return [(Orientation.ORIGINAL, (l, w, h))]
    return [
        (Orientation.ORIGINAL, (l, w, h)),
        (Orientation.ROTATED_X, (l, h, w)),
        (Orientation.ROTATED_Y, (h, w, l)),
        (Orientation.ROTATED_Z, (w, l, h)),
    ]


def _placement_score(space: FreeSpace, dims: tuple[float, float, float]) -> float:
    stability = (STABILITY_ORIGIN - space.z) * 3 + (STABILITY_ORIGIN - space.x) + (STABILITY_ORIGIN - space.y)
    leftover = space.volume - dims[0] * dims[1] * dims[2]
    return stability + max(0.0, TIGHTNESS_CEILING - leftover)


def _best_placement(
    item: PackingItem,
    spaces: Sequence[FreeSpace],
    constraints: PackingConstraints,
) -> tuple[FreeSpace, Orientation, tuple[float, float, float]] | None:
    best = None
    best_score = -math.inf
    floor_only = item.fragile and constraints.fragile_handling == "bottom_only"
    for space in spaces:
        if floor_only and space.z > TOLERANCE:
            continue
        for orientation, dims in item_orientations(item.extents, constraints.allow_rotation):
            l, w, h = dims
            if l > space.length + TOLERANCE or w > space.width + TOLERANCE or h > space.height + TOLERANCE:
                continue
            if constraints.max_stack_height is not None and space.z + h > constraints.max_stack_height + TOLERANCE:
                continue
            score = _placement_score(space, dims)
            if score > best_score:
                best = (space, orientation, dims)
                best_score = score
    return best


def _split_space(
    space: FreeSpace,
    dims: tuple[float, float, float],
    keep_top: bool,
) -> list[FreeSpace]:
    l, w, h = dims
    candidates = [
        FreeSpace(space.x + l, space.y, space.z, space.length - l, space.width, space.height),
        FreeSpace(space.x, space.y, space.z + h, l, w, space.height - h) if keep_top else None,
        FreeSpace(space.x, space.y + w, space.z, l, space.width - w, space.height),
    ]
    return [
        c for c in candidates
        if c is not None and c.length > TOLERANCE and c.width > TOLERANCE and c.height > TOLERANCE
    ]


def pack_container(
    items: Sequence[PackingItem],
    container: PackageType,
    constraints: PackingConstraints | None = None,
) -> PackingResult:
    """Place ``items`` in order into one fresh instance of ``container``."""
    constraints = constraints or PackingConstraints()
    extents = to_inches(container.dimensions).as_tuple()
    capacity = container.weight_capacity
    spaces = [FreeSpace(0.0, 0.0, 0.0, *extents)]
    result = PackingResult(container=container, container_extents=extents)

    for item in items:
        item_weight = item.weight * item.quantity
        if result.total_weight + item_weight > capacity + TOLERANCE:
            result.unpacked.append(item)
            continue
        if not fits_within(item.extents, extents):
            result.unpacked.append(item)
            continue
        placement = _best_placement(item, spaces, constraints)
        if placement is None:
            result.unpacked.append(item)
            continue
        space, orientation, dims = placement
        result.packed.append(PackedItem(item, space.x, space.y, space.z, orientation, *dims))
        result.total_weight += item_weight
        keep_top = constraints.allow_stacking and item.stackable
        spaces = [s for s in spaces if s is not space] + _split_space(space, dims, keep_top)

    packed_volume = sum(p.length * p.width * p.height for p in result.packed)
    result.fill_rate = fill_rate(packed_volume, extents[0] * extents[1] * extents[2])
    result.weight_utilization = min(result.total_weight / capacity * 100, 100.0) if capacity > 0 else 0.0
    result.notes = packing_notes(result)
    return result


def _sorted_items(items: Sequence[PackingItem]) -> list[PackingItem]:
    return sorted(items, key=lambda i: i.volume * i.quantity, reverse=True)


def _container_ratio(container: PackageType) -> float:
    extents = to_inches(container.dimensions).as_tuple()
    cuin = extents[0] * extents[1] * extents[2]
    if container.cost <= 0:
        return math.inf
    return cuin / container.cost


def sort_containers(containers: Sequence[PackageType]) -> list[PackageType]:
    """Most volume per dollar first; free containers lead."""
    return sorted(containers, key=_container_ratio, reverse=True)


def _candidate_score(result: PackingResult) -> float:
    return result.fill_rate + result.weight_utilization + ITEM_PACKED_BONUS * result.packed_count


def _without_packed(items: list[PackingItem], result: PackingResult) -> list[PackingItem]:
    """Drop one list slot per packed item; the same object may appear more than once."""
    left = list(items)
    for packed in result.packed:
        slot = next(idx for idx, item in enumerate(left) if item is packed.item)
        del left[slot]
    return left


def _pack_group(
    items: list[PackingItem],
    containers: list[PackageType],
    constraints: PackingConstraints,
) -> MultiPackingResult:
    outcome = MultiPackingResult()
    remaining = list(items)
    while remaining:
        best: PackingResult | None = None
        best_score = -math.inf
        for container in containers:
            candidate = pack_container(remaining, container, constraints)
            if candidate.packed_count == 0:
                continue
            score = _candidate_score(candidate)
            if score > best_score:
                best = candidate
                best_score = score
        if best is None:
            outcome.unpacked.extend(remaining)
            break
        outcome.solutions.append(best)
        remaining = _without_packed(remaining, best)
    return outcome


def _fragile_groups(items: list[PackingItem], constraints: PackingConstraints) -> list[list[PackingItem]]:
    if constraints.fragile_handling != "separate":
        return [items]
    fragile = [i for i in items if i.fragile]
    sturdy = [i for i in items if not i.fragile]
    return [group for group in (sturdy, fragile) if group]


def best_fit_decreasing(
    items: Sequence[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints | None = None,
    *,
    compute_savings: bool = False,
) -> MultiPackingResult:
    if not containers:
        raise ValueError("At least one container type is required")
    constraints = constraints or PackingConstraints()
    ordered_items = _sorted_items(items)
    ordered_containers = sort_containers(containers)

    outcome = MultiPackingResult()
    for group in _fragile_groups(ordered_items, constraints):
        partial = _pack_group(group, ordered_containers, constraints)
        outcome.solutions.extend(partial.solutions)
        outcome.unpacked.extend(partial.unpacked)

    if compute_savings:
        outcome.savings = individual_packing_cost(items, containers, constraints) - outcome.total_cost
    logger.debug(
        "BFD packed %s items into %s containers (%s unpacked)",
        len(items) - len(outcome.unpacked),
        outcome.total_containers,
        len(outcome.unpacked),
    )
    return outcome


def _best_container_for(
    items: list[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints,
) -> PackingResult | None:
    best: PackingResult | None = None
    best_score = -math.inf
    for container in containers:
        candidate = pack_container(items, container, constraints)
        if candidate.unpacked:
            continue
        score = candidate.fill_rate + candidate.weight_utilization - container.cost * 10
        if score > best_score:
            best = candidate
            best_score = score
    return best


def first_fit_decreasing(
    items: Sequence[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints | None = None,
) -> MultiPackingResult:
    """Add each item to the first open container that still takes it, else open the best one."""
    if not containers:
        raise ValueError("At least one container type is required")
    constraints = constraints or PackingConstraints()
    outcome = MultiPackingResult()
    for item in _sorted_items(items):
        placed = False
        for idx, solution in enumerate(outcome.solutions):
            trial = pack_container([p.item for p in solution.packed] + [item], solution.container, constraints)
            if not trial.unpacked:
                outcome.solutions[idx] = trial
                placed = True
                break
        if placed:
            continue
        fresh = _best_container_for([item], containers, constraints)
        if fresh is None:
            outcome.unpacked.append(item)
        else:
            outcome.solutions.append(fresh)
    return outcome


def genetic_algorithm_packing(
    items: Sequence[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints | None = None,
    generations: int = 100,
    population_size: int = 50,
) -> MultiPackingResult:
    """Entry point kept for callers that ask for an evolutionary search.

    No evolutionary search is performed: the call returns exactly the
    Best-Fit-Decreasing result, and ``generations``/``population_size`` are
    accepted only for signature compatibility.
    """
    if generations <= 0 or population_size <= 0:
        raise ValueError("generations and population_size must be greater than 0")
    return best_fit_decreasing(items, containers, constraints)


def individual_packing_cost(
    items: Sequence[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints | None = None,
) -> float:
    """Cost of shipping every item alone in its best-scoring container."""
    constraints = constraints or PackingConstraints()
    total = 0.0
    for item in items:
        best = _best_container_for([item], containers, constraints)
        if best is not None:
            total += best.total_cost
    return total


PACKING_ALGORITHMS = {
    "best_fit": best_fit_decreasing,
    "first_fit": first_fit_decreasing,
    "genetic": genetic_algorithm_packing,
}


def pack_items(
    items: Sequence[PackingItem],
    containers: Sequence[PackageType],
    constraints: PackingConstraints | None = None,
    algorithm: str = "best_fit",
) -> MultiPackingResult:
    strategy = PACKING_ALGORITHMS.get(algorithm)
    if strategy is None:
        raise ValueError(f"Unknown packing algorithm '{algorithm}'")
    return strategy(items, containers, constraints)


def packing_notes(result: PackingResult) -> list[str]:
    notes: list[str] = []
    if result.fill_rate < 30:
        notes.append("Low space utilization - consider smaller container")
    if result.weight_utilization < 20:
        notes.append("Low weight utilization - could add more items")
    if result.unpacked:
        notes.append(f"{len(result.unpacked)} items couldn't fit - consider larger container or separate shipment")
    if result.fill_rate > 90:
        notes.append("Excellent space utilization")
    if any(p.item.fragile for p in result.packed):
        notes.append("Fragile items detected - ensure proper padding and protection")
    return notes


def _overlap(a_min: float, a_max: float, b_min: float, b_max: float) -> bool:
    return min(a_max, b_max) - max(a_min, b_min) > TOLERANCE


def placement_violations(result: PackingResult) -> list[str]:
    """Describe any packed item outside the container or overlapping another item."""
    problems: list[str] = []
    cl, cw, ch = result.container_extents
    for p in result.packed:
        mx, my, mz = p.max_corner
        if min(p.x, p.y, p.z) < -TOLERANCE or mx > cl + TOLERANCE or my > cw + TOLERANCE or mz > ch + TOLERANCE:
            problems.append(f"{p.item.item_id} extends outside the container")
    for idx, a in enumerate(result.packed):
        a_max = a.max_corner
        for b in result.packed[idx + 1:]:
            b_max = b.max_corner
            if (
                _overlap(a.x, a_max[0], b.x, b_max[0])
                and _overlap(a.y, a_max[1], b.y, b_max[1])
                and _overlap(a.z, a_max[2], b.z, b_max[2])
            ):
                problems.append(f"{a.item.item_id} overlaps {b.item.item_id}")
    return problems
