"""Shipping, packaging material and ownership cost calculations."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Mapping

from models import Carrier, Dimension, PackageType, ShippingPriority, Zone
from volume_model import CUIN_PER_CUFT, DEFAULT_DIM_FACTOR, dimensional_weight, surface_area_sqft, to_inches, volume


CARRIER_RATES = {
    Carrier.UPS_GROUND: 2.25,
    Carrier.FEDEX_GROUND: 2.15,
    Carrier.USPS_PRIORITY: 1.85,
    Carrier.UPS_AIR: 4.50,
    Carrier.DHL_EXPRESS: 5.25,
}

ZONE_MULTIPLIERS = {
    Zone.DOMESTIC: 1.0,
    Zone.REGIONAL: 0.85,
    Zone.ZONE_2: 1.15,
    Zone.ZONE_3: 1.35,
    Zone.ZONE_4: 1.55,
    Zone.ZONE_5: 1.75,
    Zone.INTERNATIONAL: 2.8,
    Zone.CANADA: 2.2,
    Zone.MEXICO: 2.5,
}

PRIORITY_SURCHARGES = {
    ShippingPriority.STANDARD: 0.0,
    ShippingPriority.EXPRESS: 8.50,
    ShippingPriority.OVERNIGHT: 25.00,
    ShippingPriority.TWO_DAY: 12.75,
    ShippingPriority.ECONOMY: -2.50,
}

FUEL_SURCHARGE_RATE = 0.145
DIM_PENALTY_FACTOR = 0.5

MATERIAL_PRICES = {
    "cardboard": 0.05,
    "bubble_wrap": 0.03,
    "foam": 0.08,
    "tape": 0.02,
    "labels": 0.05,
    "plastic": 0.04,
}
CARDBOARD_SQFT_FACTOR = 0.1
BUBBLE_WRAP_VOLUME_SHARE = 0.2
LABOR_COST_PER_PACKAGE = 0.50
WAREHOUSE_RATE_PER_CUFT_DAY = 0.10
ANNUAL_DISCOUNT_RATE = 0.05


def _lookup(table: Mapping[Enum, float], enum_cls: type[Enum], key: object, label: str) -> float:
    try:
        member = key if isinstance(key, enum_cls) else enum_cls(str(key).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown {label} '{key}'") from None
    if member not in table:
        raise ValueError(f"No {label} rate configured for '{member.value}'")
    return table[member]


def carrier_rate(carrier: Carrier | str) -> float:
    return _lookup(CARRIER_RATES, Carrier, carrier, "carrier")


def zone_multiplier(zone: Zone | str) -> float:
    return _lookup(ZONE_MULTIPLIERS, Zone, zone, "zone")


def priority_surcharge(priority: ShippingPriority | str) -> float:
    return _lookup(PRIORITY_SURCHARGES, ShippingPriority, priority, "priority")


@dataclass(frozen=True)
class ShippingQuote:
    actual_weight: float
    dimensional_weight: float
    chargeable_weight: float
    base_rate: float
    zone_surcharge: float
    priority_surcharge: float
    fuel_surcharge: float
    potential_savings: float = 0.0
    dim_weight_penalty: float = 0.0

    @property
    def total(self) -> float:
        return self.base_rate + self.zone_surcharge + self.priority_surcharge + self.fuel_surcharge

    @property
    def is_dim_weight_billed(self) -> bool:
        return self.dimensional_weight > self.actual_weight

    def as_dict(self) -> dict[str, object]:
        return {
            "actual_weight": round(self.actual_weight, 2),
            "dimensional_weight": round(self.dimensional_weight, 2),
            "chargeable_weight": round(self.chargeable_weight, 2),
            "base_rate": round(self.base_rate, 2),
            "zone_surcharge": round(self.zone_surcharge, 2),
            "priority_surcharge": round(self.priority_surcharge, 2),
            "fuel_surcharge": round(self.fuel_surcharge, 2),
            "total": round(self.total, 2),
            "dim_weight_billed": self.is_dim_weight_billed,
            "potential_savings": round(self.potential_savings, 2),
            "dim_weight_penalty": round(self.dim_weight_penalty, 2),
        }


def shipping_cost(
    dimensions: Dimension,
    actual_weight: float,
    zone: Zone | str = Zone.DOMESTIC,
    priority: ShippingPriority | str = ShippingPriority.STANDARD,
    carrier: Carrier | str = Carrier.UPS_GROUND,
    dim_factor: float = DEFAULT_DIM_FACTOR,
) -> ShippingQuote:
    """Quote a parcel billed on the greater of actual and dimensional weight."""
    if actual_weight < 0:
        raise ValueError("actual_weight must be >= 0")
    rate = carrier_rate(carrier)
    multiplier = zone_multiplier(zone)
    flat = priority_surcharge(priority)

    dim_weight = dimensional_weight(dimensions, dim_factor)
    chargeable = max(float(actual_weight), dim_weight)
    base = chargeable * rate
    zone_extra = base * (multiplier - 1)
    fuel = (base + zone_extra) * FUEL_SURCHARGE_RATE

    excess = max(0.0, dim_weight - actual_weight)
    return ShippingQuote(
        actual_weight=float(actual_weight),
        dimensional_weight=dim_weight,
        chargeable_weight=chargeable,
        base_rate=base,
        zone_surcharge=zone_extra,
        priority_surcharge=flat,
        fuel_surcharge=fuel,
        potential_savings=excess * rate * multiplier * (1 + FUEL_SURCHARGE_RATE),
        dim_weight_penalty=excess * rate * DIM_PENALTY_FACTOR,
    )


@dataclass(frozen=True)
class PackagingCost:
    quantity: int
    unit_cost: float
    cardboard: float
    bubble_wrap: float
    tape: float
    labels: float
    labor: float

    @property
    def package_cost(self) -> float:
        return self.unit_cost * self.quantity

    @property
    def material_cost(self) -> float:
        return self.cardboard + self.bubble_wrap + self.tape + self.labels

    @property
    def total(self) -> float:
        return self.package_cost + self.material_cost + self.labor

    def as_dict(self) -> dict[str, object]:
        return {
            "quantity": self.quantity,
            "package_cost": round(self.package_cost, 2),
            "materials": {
                "cardboard": round(self.cardboard, 4),
                "bubble_wrap": round(self.bubble_wrap, 4),
                "tape": round(self.tape, 4),
                "labels": round(self.labels, 4),
            },
            "material_cost": round(self.material_cost, 2),
            "labor_cost": round(self.labor, 2),
            "total": round(self.total, 2),
        }


def packaging_cost(package: PackageType, quantity: int = 1) -> PackagingCost:
    """Unit cost plus per-package materials and handling labor."""
    if quantity < 1:
        raise ValueError("quantity must be >= 1")
    inches = to_inches(package.dimensions)
    girth_ft = 2 * (inches.length + inches.width) / 12
    cuft = volume(package.dimensions) / CUIN_PER_CUFT
    return PackagingCost(
        quantity=quantity,
        unit_cost=float(package.cost),
        cardboard=surface_area_sqft(package.dimensions) * CARDBOARD_SQFT_FACTOR * MATERIAL_PRICES["cardboard"] * quantity,
        bubble_wrap=cuft * BUBBLE_WRAP_VOLUME_SHARE * MATERIAL_PRICES["bubble_wrap"] * quantity,
        tape=girth_ft * MATERIAL_PRICES["tape"] * quantity,
        labels=MATERIAL_PRICES["labels"] * quantity,
        labor=LABOR_COST_PER_PACKAGE * quantity,
    )


@dataclass(frozen=True)
class CostOfOwnership:
    packaging: float
    shipping: float
    handling: float
    storage: float
    materials: float = 0.0

    @property
    def total(self) -> float:
        return self.packaging + self.materials + self.shipping + self.handling + self.storage

    def as_dict(self) -> dict[str, float]:
        return {
            "packaging": round(self.packaging, 2),
            "materials": round(self.materials, 2),
            "shipping": round(self.shipping, 2),
            "handling": round(self.handling, 2),
            "storage": round(self.storage, 2),
            "total": round(self.total, 2),
        }


def total_cost_of_ownership(
    packaging: float,
    shipping: float,
    package_count: int,
    total_volume_cuin: float,
    storage_days: float = 1.0,
    materials: float = 0.0,
) -> CostOfOwnership:
    """Landed cost of a run; ``materials`` is the filler, tape and label spend on top of package prices."""
    if package_count < 0 or total_volume_cuin < 0 or storage_days < 0 or materials < 0:
        raise ValueError("package_count, total_volume_cuin, storage_days and materials must be >= 0")
    return CostOfOwnership(
        packaging=float(packaging),
        shipping=float(shipping),
        handling=LABOR_COST_PER_PACKAGE * package_count,
        storage=total_volume_cuin / CUIN_PER_CUFT * WAREHOUSE_RATE_PER_CUFT_DAY * storage_days,
        materials=float(materials),
    )


@dataclass(frozen=True)
class RoiAnalysis:
    monthly_savings: float
    implementation_cost: float
    months: int
    total_savings: float
    net_benefit: float
    roi_percent: float
    payback_months: float
    npv: float
    irr_percent: float

    def as_dict(self) -> dict[str, object]:
        return {
            "monthly_savings": round(self.monthly_savings, 2),
            "implementation_cost": round(self.implementation_cost, 2),
            "months": self.months,
            "total_savings": round(self.total_savings, 2),
            "net_benefit": round(self.net_benefit, 2),
            "roi_percent": round(self.roi_percent, 2),
            "payback_months": None if math.isinf(self.payback_months) else round(self.payback_months, 2),
            "npv": round(self.npv, 2),
            "irr_percent": round(self.irr_percent, 2),
        }


def roi_analysis(
    monthly_savings: float,
    implementation_cost: float,
    months: int = 12,
    annual_discount_rate: float = ANNUAL_DISCOUNT_RATE,
) -> RoiAnalysis:
    if implementation_cost < 0:
        raise ValueError("implementation_cost must be >= 0")
    if months <= 0:
        raise ValueError("months must be greater than 0")
    total = monthly_savings * months
    net = total - implementation_cost
    monthly_rate = annual_discount_rate / 12
    npv = -implementation_cost + sum(monthly_savings / (1 + monthly_rate) ** t for t in range(1, months + 1))

    if implementation_cost > 0:
        roi = net / implementation_cost * 100
        payback = implementation_cost / monthly_savings if monthly_savings > 0 else math.inf
    else:
        roi = 0.0
        payback = 0.0
    if implementation_cost > 0 and total > implementation_cost:
        irr = ((total / implementation_cost) ** (1 / months) - 1) * 12 * 100
    else:
        irr = 0.0
    return RoiAnalysis(
        monthly_savings=float(monthly_savings),
        implementation_cost=float(implementation_cost),
        months=months,
        total_savings=total,
        net_benefit=net,
        roi_percent=roi,
        payback_months=payback,
        npv=npv,
        irr_percent=irr,
    )


@dataclass(frozen=True)
class BreakEven:
    contribution_margin: float
    contribution_margin_ratio: float
    break_even_units: float
    break_even_revenue: float

    def as_dict(self) -> dict[str, float]:
        return {
            "contribution_margin": round(self.contribution_margin, 2),
            "contribution_margin_ratio": round(self.contribution_margin_ratio, 4),
            "break_even_units": round(self.break_even_units, 2),
            "break_even_revenue": round(self.break_even_revenue, 2),
        }


def break_even(fixed_costs: float, variable_cost_per_unit: float, price_per_unit: float) -> BreakEven:
    if price_per_unit <= 0:
        raise ValueError("price_per_unit must be greater than 0")
    margin = price_per_unit - variable_cost_per_unit
    if margin <= 0:
        raise ValueError("price_per_unit must exceed variable_cost_per_unit")
    units = fixed_costs / margin
    return BreakEven(
        contribution_margin=margin,
        contribution_margin_ratio=margin / price_per_unit,
        break_even_units=units,
        break_even_revenue=units * price_per_unit,
    )
