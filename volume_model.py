"""Dimension normalization, cubic-inch volume and dimensional weight math."""
from __future__ import annotations

from dataclasses import dataclass, field
import math
import re
from typing import Sequence

from models import Dimension, LengthUnit


UNIT_TO_INCHES = {
    LengthUnit.INCH: 1.0,
    LengthUnit.FOOT: 12.0,
    LengthUnit.CENTIMETER: 0.393701,
    LengthUnit.MILLIMETER: 0.0393701,
    LengthUnit.METER: 39.3701,
}

UNIT_SYNONYMS = {
    "in": LengthUnit.INCH,
    "inch": LengthUnit.INCH,
    "inches": LengthUnit.INCH,
    '"': LengthUnit.INCH,
    "ft": LengthUnit.FOOT,
    "foot": LengthUnit.FOOT,
    "feet": LengthUnit.FOOT,
    "'": LengthUnit.FOOT,
    "cm": LengthUnit.CENTIMETER,
    "centimeter": LengthUnit.CENTIMETER,
    "centimeters": LengthUnit.CENTIMETER,
    "mm": LengthUnit.MILLIMETER,
    "millimeter": LengthUnit.MILLIMETER,
    "millimeters": LengthUnit.MILLIMETER,
    "m": LengthUnit.METER,
    "meter": LengthUnit.METER,
    "meters": LengthUnit.METER,
}

MIN_DIMENSION_IN = 0.1
MAX_DIMENSION_IN = 120.0
MIN_VOLUME_CUIN = 0.001
MAX_VOLUME_CUIN = 1_728_000.0
MAX_ASPECT_RATIO = 100.0
DEFAULT_DIM_FACTOR = 139.0

CUIN_PER_CUFT = 1728.0
LITERS_PER_CUIN = 0.0163871
CM3_PER_CUIN = 16.3871
SQIN_PER_SQFT = 144.0

_DIMENSION_STRING_UNIT = re.compile(r"([a-z\"']+)\s*$")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


@dataclass(frozen=True)
class DimensionCheck:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def parse_unit(raw_unit: object, default: LengthUnit = LengthUnit.INCH) -> LengthUnit:
    """Resolve free-text unit labels; unknown or blank text falls back to ``default``."""
    text = str(raw_unit or "").strip().lower()
    if not text or text == "nan":
        return default
    return UNIT_SYNONYMS.get(text, default)


def is_known_unit(raw_unit: object) -> bool:
    text = str(raw_unit or "").strip().lower()
    return not text or text == "nan" or text in UNIT_SYNONYMS


def convert_value(value: float, from_unit: LengthUnit, to_unit: LengthUnit) -> float:
    if from_unit == to_unit:
        return float(value)
    return float(value) * UNIT_TO_INCHES[from_unit] / UNIT_TO_INCHES[to_unit]


def to_inches(dim: Dimension) -> Dimension:
    unit = LengthUnit(dim.unit)
    return Dimension(*(convert_value(v, unit, LengthUnit.INCH) for v in dim.as_tuple()), LengthUnit.INCH)


def volume(dim: Dimension) -> float:
    """Volume in cubic inches."""
    inches = to_inches(dim)
    return inches.length * inches.width * inches.height


def volume_in_units(dim: Dimension) -> dict[str, float]:
    cuin = volume(dim)
    return {
        "cuin": cuin,
        "cuft": cuin / CUIN_PER_CUFT,
        "liters": cuin * LITERS_PER_CUIN,
        "cm3": cuin * CM3_PER_CUIN,
    }


def surface_area_sqft(dim: Dimension) -> float:
    inches = to_inches(dim)
    l, w, h = inches.as_tuple()
    return 2 * (l * w + w * h + h * l) / SQIN_PER_SQFT


def dimensional_weight(dim: Dimension, dim_factor: float = DEFAULT_DIM_FACTOR) -> float:
    if dim_factor <= 0:
        raise ValueError("dim_factor must be greater than 0")
    return volume(dim) / dim_factor


def fill_rate(item_volume: float, container_volume: float) -> float:
    """Percentage of ``container_volume`` used, clamped to [0, 100]."""
    if container_volume <= 0:
        return 0.0
    return max(0.0, min(item_volume / container_volume * 100, 100.0))


def validate_dimension(value: object, name: str = "dimension", unit: LengthUnit = LengthUnit.INCH) -> str | None:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return f"{name} must be a valid number"
    if math.isnan(number):
        return f"{name} must be a valid number"
    if number <= 0:
        return f"{name} must be positive"
    inches = number * UNIT_TO_INCHES[LengthUnit(unit)]
    if inches < MIN_DIMENSION_IN:
        return f"{name} too small (minimum {MIN_DIMENSION_IN}\" when converted to inches)"
    if inches > MAX_DIMENSION_IN:
        return f"{name} too large (maximum {MAX_DIMENSION_IN:g}\" when converted to inches)"
    return None


def validate_dimensions(dim: Dimension) -> DimensionCheck:
    errors: list[str] = []
    warnings: list[str] = []
    for name, value in (("length", dim.length), ("width", dim.width), ("height", dim.height)):
        message = validate_dimension(value, name, dim.unit)
        if message:
            errors.append(message)
    if errors:
        return DimensionCheck(errors, warnings)

    cuin = volume(dim)
    if cuin < MIN_VOLUME_CUIN:
        warnings.append("Very small volume - please verify dimensions")
    if cuin > MAX_VOLUME_CUIN:
        errors.append("Volume exceeds maximum packaging size limits")
    extents = dim.as_tuple()
    if max(extents) / min(extents) > MAX_ASPECT_RATIO:
        warnings.append("Unusual aspect ratio detected - please verify dimensions")
    return DimensionCheck(errors, warnings)


def fits_within(item: Sequence[float], container: Sequence[float], tolerance: float = 1e-9) -> bool:
    """True when the item fits the container in some axis-aligned orientation."""
    return all(i <= c + tolerance for i, c in zip(sorted(item, reverse=True), sorted(container, reverse=True)))


def find_optimal_container(item: Dimension, containers: Sequence[Dimension]) -> tuple[int, float] | None:
    """Index and fill rate of the tightest container the item fits, if any."""
    item_inches = to_inches(item).as_tuple()
    item_cuin = volume(item)
    best: tuple[int, float] | None = None
    for idx, container in enumerate(containers):
        if not fits_within(item_inches, to_inches(container).as_tuple()):
            continue
        rate = fill_rate(item_cuin, volume(container))
        if best is None or rate > best[1]:
            best = (idx, rate)
    return best


def cube_edge(total_cuin: float, quantity: int = 1) -> float:
    if quantity <= 0:
        raise ValueError("quantity must be greater than 0")
    if total_cuin <= 0:
        raise ValueError("total volume must be greater than 0")
    return (total_cuin / quantity) ** (1.0 / 3.0)


def parse_dimension_string(text: str, default_unit: LengthUnit = LengthUnit.INCH) -> Dimension | None:
    """Parse free text such as ``12 x 8 x 4 cm``; returns None without three numbers."""
    cleaned = str(text or "").strip().lower()
    unit = default_unit
    match = _DIMENSION_STRING_UNIT.search(cleaned)
    if match:
        unit = parse_unit(match.group(1), default_unit)
    numbers = _NUMBER.findall(cleaned)
    if len(numbers) < 3:
        return None
    return Dimension(float(numbers[0]), float(numbers[1]), float(numbers[2]), unit)
