import pytest

from models import Dimension, Orientation, PackageType, PackingItem
from packing_engine import (
    PackingConstraints,
    best_fit_decreasing,
    first_fit_decreasing,
    genetic_algorithm_packing,
    individual_packing_cost,
    item_orientations,
    pack_container,
    pack_items,
    placement_violations,
    sort_containers,
)


SMALL_BOX = PackageType("small_box", "Small Box", Dimension(8.7, 5.4, 3.1), cost=0.40)
MEDIUM_BOX = PackageType("medium_box", "Medium Box", Dimension(11, 8.5, 6), cost=0.70)


def _mugs(count: int = 2) -> list[PackingItem]:
    return [PackingItem(f"mug-{i}", 6, 4, 2, weight=1.0) for i in range(count)]


def _placements(result):
    return [(p.item.item_id, p.x, p.y, p.z, p.orientation) for p in result.packed]


def test_two_mugs_go_into_two_small_boxes():
    outcome = best_fit_decreasing(_mugs(), [SMALL_BOX, MEDIUM_BOX])
    assert outcome.unpacked == []
    assert [s.container.package_id for s in outcome.solutions] == ["small_box", "small_box"]
    assert outcome.total_containers == 2
    assert outcome.total_cost == pytest.approx(0.80)
    assert outcome.solutions[0].fill_rate == pytest.approx(48 / (8.7 * 5.4 * 3.1) * 100)


def test_repeated_item_object_is_packed_once_per_occurrence():
    mug = PackingItem("mug", 6, 4, 2, weight=1.0)
    outcome = best_fit_decreasing([mug, mug], [SMALL_BOX])
    assert outcome.total_containers == 2
    assert sum(s.packed_count for s in outcome.solutions) == 2
    assert outcome.unpacked == []


def test_medium_box_takes_both_mugs_when_alone():
    result = pack_container(_mugs(), MEDIUM_BOX)
    assert result.packed_count == 2
    assert result.unpacked == []
    assert result.fill_rate == pytest.approx(96 / 561 * 100)
    assert result.weight_utilization == pytest.approx(4.0)
    assert placement_violations(result) == []


def test_orientations():
    assert item_orientations((1, 2, 3)) == [
        (Orientation.ORIGINAL, (1, 2, 3)),
        (Orientation.ROTATED_X, (1, 3, 2)),
        (Orientation.ROTATED_Y, (3, 2, 1)),
        (Orientation.ROTATED_Z, (2, 1, 3)),
    ]
    assert item_orientations((1, 2, 3), allow_rotation=False) == [(Orientation.ORIGINAL, (1, 2, 3))]


def test_mixed_items_stay_inside_and_never_overlap():
    sizes = [(5, 4, 3), (6, 6, 2), (3, 3, 3), (2, 7, 4), (4, 4, 4), (1, 9, 2), (5, 2, 2), (3, 6, 1)] * 3
    items = [PackingItem(f"i{n}", *dims, weight=0.5) for n, dims in enumerate(sizes)]
    crate = PackageType("crate", "Crate", Dimension(12, 12, 12), cost=2.0)
    result = pack_container(items, crate)
    assert result.packed_count > 0
    assert placement_violations(result) == []
    for packed in result.packed:
        assert packed.max_corner[0] <= 12 + 1e-9
        assert packed.max_corner[1] <= 12 + 1e-9
        assert packed.max_corner[2] <= 12 + 1e-9


def test_packing_is_deterministic():
    items = [PackingItem(f"i{n}", 2 + n % 3, 3, 1 + n % 2) for n in range(12)]
    first = best_fit_decreasing(items, [SMALL_BOX, MEDIUM_BOX])
    second = best_fit_decreasing(items, [SMALL_BOX, MEDIUM_BOX])
    assert [_placements(s) for s in first.solutions] == [_placements(s) for s in second.solutions]


def test_rotation_can_be_disabled():
    slot = PackageType("slot", "Slot", Dimension(2, 10, 2), cost=1.0)
    rod = [PackingItem("rod", 10, 2, 2)]
    assert pack_container(rod, slot).packed_count == 1
    blocked = pack_container(rod, slot, PackingConstraints(allow_rotation=False))
    assert blocked.packed_count == 0
    assert [i.item_id for i in blocked.unpacked] == ["rod"]


def test_weight_capacity_limits_packing():
    box = PackageType("box", "Box", Dimension(10, 10, 10), cost=1.0, max_weight=5)
    result = pack_container([PackingItem("a", 2, 2, 2, weight=3), PackingItem("b", 2, 2, 2, weight=3)], box)
    assert [p.item.item_id for p in result.packed] == ["a"]
    assert [i.item_id for i in result.unpacked] == ["b"]
    assert result.weight_utilization == pytest.approx(60)


def test_stacking_constraints():
    cube = PackageType("cube", "Cube", Dimension(4, 4, 4), cost=1.0)
    slabs = [PackingItem("a", 4, 4, 2), PackingItem("b", 4, 4, 2)]
    assert pack_container(slabs, cube).packed_count == 2
    assert pack_container(slabs, cube, PackingConstraints(allow_stacking=False)).packed_count == 1
    assert pack_container(slabs, cube, PackingConstraints(max_stack_height=3)).packed_count == 1

    on_top = pack_container(slabs, cube)
    assert on_top.packed[1].z == pytest.approx(2)


def test_non_stackable_items_block_the_space_above():
    cube = PackageType("cube", "Cube", Dimension(4, 4, 4), cost=1.0)
    items = [PackingItem("vase", 4, 4, 2, fragile=True, stackable=False), PackingItem("b", 4, 4, 2)]
    assert pack_container(items, cube).packed_count == 1


def test_fragile_bottom_only():
    cube = PackageType("cube", "Cube", Dimension(4, 4, 4), cost=1.0)
    items = [PackingItem("base", 4, 4, 2), PackingItem("glass", 4, 4, 2, fragile=True)]
    padded = pack_container(items, cube)
    assert padded.packed_count == 2
    assert "Fragile items detected - ensure proper padding and protection" in padded.notes

    floor_only = pack_container(items, cube, PackingConstraints(fragile_handling="bottom_only"))
    assert [p.item.item_id for p in floor_only.packed] == ["base"]


def test_fragile_items_packed_separately():
    box = PackageType("box", "Box", Dimension(20, 20, 20), cost=1.0)
    items = [PackingItem("glass", 2, 2, 2, fragile=True, stackable=False), PackingItem("book", 3, 3, 3)]
    together = best_fit_decreasing(items, [box])
    assert together.total_containers == 1
    apart = best_fit_decreasing(items, [box], PackingConstraints(fragile_handling="separate"))
    assert apart.total_containers == 2
    for solution in apart.solutions:
        assert len({p.item.fragile for p in solution.packed}) == 1


def test_items_that_fit_nowhere_are_unpacked():
    outcome = best_fit_decreasing([PackingItem("sofa", 80, 40, 30)], [SMALL_BOX, MEDIUM_BOX])
    assert outcome.solutions == []
    assert [i.item_id for i in outcome.unpacked] == ["sofa"]


def test_container_order_prefers_volume_per_dollar():
    free = PackageType("free", "Free", Dimension(1, 1, 1), cost=0.0)
    assert [c.package_id for c in sort_containers([SMALL_BOX, MEDIUM_BOX, free])] == [
        "free",
        "medium_box",
        "small_box",
    ]


def test_constraint_validation():
    with pytest.raises(ValueError, match="fragile_handling"):
        PackingConstraints(fragile_handling="bubble")
    with pytest.raises(ValueError, match="container"):
        best_fit_decreasing(_mugs(), [])


def test_first_fit_and_individual_cost():
    ffd = first_fit_decreasing(_mugs(), [SMALL_BOX, MEDIUM_BOX])
    assert [s.container.package_id for s in ffd.solutions] == ["small_box", "small_box"]
    assert individual_packing_cost(_mugs(), [SMALL_BOX, MEDIUM_BOX]) == pytest.approx(0.80)

    bfd = best_fit_decreasing(_mugs(), [SMALL_BOX, MEDIUM_BOX], compute_savings=True)
    assert bfd.savings == pytest.approx(0.0)


def test_genetic_entry_point_matches_best_fit():
    items = _mugs(3)
    genetic = genetic_algorithm_packing(items, [SMALL_BOX, MEDIUM_BOX])
    bfd = best_fit_decreasing(items, [SMALL_BOX, MEDIUM_BOX])
    assert [_placements(s) for s in genetic.solutions] == [_placements(s) for s in bfd.solutions]


def test_pack_items_dispatches_by_name():
    first_fit = pack_items(_mugs(), [SMALL_BOX, MEDIUM_BOX], algorithm="first_fit")
    assert [s.container.package_id for s in first_fit.solutions] == ["small_box", "small_box"]
    genetic = pack_items(_mugs(), [SMALL_BOX, MEDIUM_BOX], algorithm="genetic")
    assert genetic.total_containers == 2
    with pytest.raises(ValueError, match="Unknown packing algorithm"):
        pack_items(_mugs(), [SMALL_BOX], algorithm="annealing")


def test_packing_notes():
    crate = PackageType("crate", "Crate", Dimension(20, 20, 20), cost=2.0)
    result = pack_container([PackingItem("tiny", 1, 1, 1), PackingItem("huge", 30, 30, 30)], crate)
    assert result.notes == [
        "Low space utilization - consider smaller container",
        "Low weight utilization - could add more items",
        "1 items couldn't fit - consider larger container or separate shipment",
    ]
