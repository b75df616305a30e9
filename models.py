"""Typed models shared by the packing, costing and allocation engines."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


DEFAULT_MAX_WEIGHT_LB = 50.0
DEFAULT_PACKAGE_WEIGHT_LB = 0.1
DEFAULT_ITEM_WEIGHT_LB = 1.0


class LengthUnit(str, Enum):
    INCH = "in"
    FOOT = "ft"
    CENTIMETER = "cm"
    MILLIMETER = "mm"
    METER = "m"


class PackageCategory(str, Enum):
    BOX = "box"
    ENVELOPE = "envelope"
    TUBE = "tube"
    BAG = "bag"


class Orientation(str, Enum):
    ORIGINAL = "original"
    ROTATED_X = "rotated_x"
    ROTATED_Y = "rotated_y"
    ROTATED_Z = "rotated_z"


class Carrier(str, Enum):
    UPS_GROUND = "ups_ground"
    FEDEX_GROUND = "fedex_ground"
    USPS_PRIORITY = "usps_priority"
    UPS_AIR = "ups_air"
    DHL_EXPRESS = "dhl_express"


class Zone(str, Enum):
    DOMESTIC = "domestic"
    REGIONAL = "regional"
    ZONE_2 = "zone_2"
    ZONE_3 = "zone_3"
    ZONE_4 = "zone_4"
    ZONE_5 = "zone_5"
    INTERNATIONAL = "international"
    CANADA = "canada"
    MEXICO = "mexico"


class ShippingPriority(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    TWO_DAY = "two_day"
    ECONOMY = "economy"


@dataclass(frozen=True)
class Dimension:
    length: float
    width: float
    height: float
    unit: LengthUnit = LengthUnit.INCH

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.length, self.width, self.height)


@dataclass(frozen=True)
class OrderRecord:
    order_id: str
    quantity: int = 1
    dimensions: Dimension | None = None
    total_volume: float | None = None
    weight: float | None = None
    product_name: str = ""
    category: str = ""
    priority: ShippingPriority = ShippingPriority.STANDARD
    zone: Zone = Zone.DOMESTIC
    sku: str = ""
    order_date: date | None = None
    value: float | None = None
    fragile: bool = False
    customer_id: str = ""
    row_number: int = 0
    uses_fallback: bool = False

    @property
    def has_dimensions(self) -> bool:
        return self.dimensions is not None

    @property
    def has_size(self) -> bool:
        return self.dimensions is not None or bool(self.total_volume and self.total_volume > 0)

    @property
    def unit_weight(self) -> float:
        return DEFAULT_ITEM_WEIGHT_LB if self.weight is None else float(self.weight)


@dataclass(frozen=True)
class PackageType:
    package_id: str
    name: str
    dimensions: Dimension
    cost: float = 0.0
    package_weight: float = DEFAULT_PACKAGE_WEIGHT_LB
    max_weight: float | None = None
    category: PackageCategory = PackageCategory.BOX
    material: str = "cardboard"

    @property
    def weight_capacity(self) -> float:
        return DEFAULT_MAX_WEIGHT_LB if self.max_weight is None else float(self.max_weight)


@dataclass(frozen=True)
class PackingItem:
    """One physical unit to place; extents are already in inches."""

    item_id: str
    length: float
    width: float
    height: float
    weight: float = DEFAULT_ITEM_WEIGHT_LB
    quantity: int = 1
    fragile: bool = False
    stackable: bool = True
    category: str = "general"
    name: str = ""

    @property
    def extents(self) -> tuple[float, float, float]:
        return (self.length, self.width, self.height)

    @property
    def volume(self) -> float:
        return self.length * self.width * self.height


@dataclass(frozen=True)
class PackedItem:
    item: PackingItem
    x: float
    y: float
    z: float
    orientation: Orientation
    length: float
    width: float
    height: float

    @property
    def max_corner(self) -> tuple[float, float, float]:
        return (self.x + self.length, self.y + self.width, self.z + self.height)


@dataclass
class PackingResult:
    container: PackageType
    container_extents: tuple[float, float, float]
    packed: list[PackedItem] = field(default_factory=list)
    unpacked: list[PackingItem] = field(default_factory=list)
    fill_rate: float = 0.0
    weight_utilization: float = 0.0
    total_weight: float = 0.0
    notes: list[str] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return float(self.container.cost)

    @property
    def efficiency(self) -> float:
        return (self.fill_rate + self.weight_utilization) / 2

    @property
    def packed_count(self) -> int:
        return len(self.packed)

    def as_dict(self) -> dict[str, object]:
        return {
            "container_id": self.container.package_id,
            "container_name": self.container.name,
            "packed_items": [p.item.item_id for p in self.packed],
            "unpacked_items": [i.item_id for i in self.unpacked],
            "fill_rate": round(self.fill_rate, 2),
            "weight_utilization": round(self.weight_utilization, 2),
            "efficiency": round(self.efficiency, 2),
            "total_cost": round(self.total_cost, 2),
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class CostBreakdown:
    package_cost: float
    shipping_cost: float

    @property
    def total_cost(self) -> float:
        return self.package_cost + self.shipping_cost

    def as_dict(self) -> dict[str, float]:
        return {
            "package_cost": round(self.package_cost, 2),
            "shipping_cost": round(self.shipping_cost, 2),
            "total_cost": round(self.total_cost, 2),
        }


@dataclass(frozen=True)
class Allocation:
    order_id: str
    package_id: str
    package_name: str
    item_dimensions: tuple[float, float, float]
    item_volume: float
    package_dimensions: tuple[float, float, float]
    package_volume: float
    fill_rate: float
    weight_utilization: float
    package_count: int
    cost: CostBreakdown
    materials_cost: float = 0.0

    @property
    def efficiency(self) -> float:
        return (self.fill_rate + self.weight_utilization) / 2

    def as_dict(self) -> dict[str, object]:
        return {
            "order_id": self.order_id,
            "recommended_package": self.package_name,
            "recommended_package_id": self.package_id,
            "item_length_in": round(self.item_dimensions[0], 2),
            "item_width_in": round(self.item_dimensions[1], 2),
            "item_height_in": round(self.item_dimensions[2], 2),
            "item_volume_cuin": round(self.item_volume, 2),
            "package_length_in": round(self.package_dimensions[0], 2),
            "package_width_in": round(self.package_dimensions[1], 2),
            "package_height_in": round(self.package_dimensions[2], 2),
            "package_volume_cuin": round(self.package_volume, 2),
            "fill_rate": round(self.fill_rate, 2),
            "efficiency": round(self.efficiency, 2),
            "package_count": self.package_count,
            **self.cost.as_dict(),
            "materials_cost": round(self.materials_cost, 2),
        }


@dataclass(frozen=True)
class BaselineMixItem:
    package_name: str
    package_id: str
    usage_percent: float
    monthly_volume: int
    average_cost: float
    synthetic: bool = False

    @property
    def total_cost(self) -> float:
        return self.monthly_volume * self.average_cost

    def as_dict(self) -> dict[str, object]:
        return {
            "package_name": self.package_name,
            "package_id": self.package_id,
            "usage_percent": round(self.usage_percent, 2),
            "monthly_volume": self.monthly_volume,
            "average_cost": round(self.average_cost, 2),
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class Recommendation:
    rec_type: str
    priority: str
    impact: str
    title: str
    description: str
    savings_amount: float = 0.0
    savings_percent: float = 0.0
    affected_orders: int = 0
    difficulty: str = "medium"
    timeframe: str = ""
    steps: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, object]:
        return {
            "type": self.rec_type,
            "priority": self.priority,
            "impact_level": self.impact,
            "title": self.title,
            "description": self.description,
            "impact": {
                "savings_amount": round(self.savings_amount, 2),
                "savings_percent": round(self.savings_percent, 2),
                "affected_orders": self.affected_orders,
            },
            "implementation": {
                "difficulty": self.difficulty,
                "timeframe": self.timeframe,
                "steps": list(self.steps),
            },
        }
