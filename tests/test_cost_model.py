import math

import pytest

from cost_model import (
    CARRIER_RATES,
    break_even,
    packaging_cost,
    roi_analysis,
    shipping_cost,
    total_cost_of_ownership,
)
from models import Carrier, Dimension, PackageType, ShippingPriority, Zone


def test_dim_weight_billed_ground_parcel():
    quote = shipping_cost(Dimension(10, 10, 10), actual_weight=2)
    assert quote.dimensional_weight == pytest.approx(1000 / 139)
    assert quote.chargeable_weight == pytest.approx(1000 / 139)
    assert quote.is_dim_weight_billed
    assert quote.total == pytest.approx(1000 / 139 * 2.25 * 1.145)
    assert quote.potential_savings > 0


def test_actual_weight_billed_when_heavier():
    quote = shipping_cost(Dimension(2, 2, 2), actual_weight=5, carrier="fedex_ground")
    assert not quote.is_dim_weight_billed
    assert quote.base_rate == pytest.approx(5 * CARRIER_RATES[Carrier.FEDEX_GROUND])
    assert quote.potential_savings == 0
    assert quote.dim_weight_penalty == 0


def test_zone_and_priority_surcharges():
    base = shipping_cost(Dimension(10, 10, 10), 2)
    zoned = shipping_cost(Dimension(10, 10, 10), 2, zone=Zone.ZONE_2)
    assert zoned.zone_surcharge == pytest.approx(base.base_rate * 0.15)
    express = shipping_cost(Dimension(10, 10, 10), 2, priority=ShippingPriority.EXPRESS)
    assert express.total - base.total == pytest.approx(8.50)
    assert shipping_cost(Dimension(10, 10, 10), 2, priority="economy").total < base.total


def test_cost_grows_with_size_and_weight():
    small = shipping_cost(Dimension(10, 10, 10), 2).total
    assert shipping_cost(Dimension(12, 12, 12), 2).total > small
    assert shipping_cost(Dimension(10, 10, 10), 20).total > small


def test_unknown_rate_keys_raise():
    with pytest.raises(ValueError, match="Unknown carrier"):
        shipping_cost(Dimension(1, 1, 1), 1, carrier="pony_express")
    with pytest.raises(ValueError, match="Unknown zone"):
        shipping_cost(Dimension(1, 1, 1), 1, zone="moon")
    with pytest.raises(ValueError, match="actual_weight"):
        shipping_cost(Dimension(1, 1, 1), -1)


def test_packaging_cost_for_cubic_foot_box():
    box = PackageType("cube", "Cube", Dimension(12, 12, 12), cost=1.0)
    cost = packaging_cost(box)
    assert cost.cardboard == pytest.approx(0.03)
    assert cost.bubble_wrap == pytest.approx(0.006)
    assert cost.tape == pytest.approx(0.08)
    assert cost.labels == pytest.approx(0.05)
    assert cost.labor == pytest.approx(0.50)
    assert cost.total == pytest.approx(1.666)
    assert packaging_cost(box, quantity=3).total == pytest.approx(3 * 1.666)
    with pytest.raises(ValueError, match="quantity"):
        packaging_cost(box, quantity=0)


def test_total_cost_of_ownership():
    tco = total_cost_of_ownership(10, 20, package_count=4, total_volume_cuin=3456, storage_days=3)
    assert tco.handling == pytest.approx(2.0)
    assert tco.storage == pytest.approx(0.6)
    assert tco.total == pytest.approx(32.6)

    with_materials = total_cost_of_ownership(10, 20, package_count=4, total_volume_cuin=3456, storage_days=3, materials=1.5)
    assert with_materials.total == pytest.approx(34.1)
    assert with_materials.as_dict()["materials"] == pytest.approx(1.5)
    with pytest.raises(ValueError, match="materials"):
        total_cost_of_ownership(10, 20, package_count=4, total_volume_cuin=0, materials=-1)


def test_roi_analysis():
    roi = roi_analysis(1000, 6000)
    assert roi.total_savings == pytest.approx(12000)
    assert roi.net_benefit == pytest.approx(6000)
    assert roi.roi_percent == pytest.approx(100)
    assert roi.payback_months == pytest.approx(6)
    assert roi.irr_percent == pytest.approx((2 ** (1 / 12) - 1) * 1200)
    assert 5000 < roi.npv < 6000


def test_roi_without_implementation_cost():
    roi = roi_analysis(500, 0)
    assert roi.roi_percent == 0
    assert roi.payback_months == 0
    assert roi.irr_percent == 0
    assert roi.as_dict()["payback_months"] == 0


def test_roi_never_pays_back():
    roi = roi_analysis(0, 100)
    assert math.isinf(roi.payback_months)
    assert roi.as_dict()["payback_months"] is None


def test_break_even():
    result = break_even(1000, 6, 10)
    assert result.break_even_units == pytest.approx(250)
    assert result.break_even_revenue == pytest.approx(2500)
    assert result.contribution_margin_ratio == pytest.approx(0.4)
    with pytest.raises(ValueError, match="exceed"):
        break_even(1000, 10, 10)
    with pytest.raises(ValueError, match="greater than 0"):
        break_even(1000, 1, 0)
