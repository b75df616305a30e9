from __future__ import annotations

from dataclasses import dataclass, replace
import io
import logging
import math
import re
from typing import Callable

import pandas as pd

from column_mapper import ColumnMapping, StructuralInputError, map_columns, require_fields
from field_specs import REQUIRED_COLUMNS, synonym_table
from models import (
    BaselineMixItem,
    Dimension,
    OrderRecord,
    PackageCategory,
    PackageType,
    ShippingPriority,
    Zone,
)
from progress import ProgressTracker
from volume_model import is_known_unit, parse_dimension_string, parse_unit, validate_dimensions, volume


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationIssue:
    row_number: int
    field: str
    code: str
    message: str

    def as_dict(self) -> dict[str, object]:
        return {
            "row_number": self.row_number,
            "field": self.field,
            "code": self.code,
            "message": self.message,
        }


@dataclass(frozen=True)
class ImportReport:
    records: list
    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]
    summary: dict[str, object]
    mapping: dict[str, str]

    def as_dict(self) -> dict[str, object]:
        return {
            "errors": [issue.as_dict() for issue in self.errors],
            "warnings": [issue.as_dict() for issue in self.warnings],
            "summary": self.summary,
            "mapping": dict(self.mapping),
        }


@dataclass(frozen=True)
class FallbackDimensions:
    smallest: Dimension
    average: Dimension
    largest: Dimension

    def pick(self, order: OrderRecord) -> Dimension:
        text = f"{order.product_name} {order.category}".lower()
        if "small" in text:
            return self.smallest
        if "large" in text:
            return self.largest
        return self.average


class RowValidationError(ValueError):
    """One row cannot be accepted; carries the issue code for the report."""

    def __init__(self, field: str, code: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.code = code
        self.message = message


IssueSink = Callable[[str, str, str], None]

ZONE_ALIASES = {
    "local": Zone.REGIONAL,
    "intl": Zone.INTERNATIONAL,
    "ca": Zone.CANADA,
    "mx": Zone.MEXICO,
    "us": Zone.DOMESTIC,
    "usa": Zone.DOMESTIC,
}
PACKAGE_CATEGORY_KEYWORDS = (
    (("envelope", "mailer"), PackageCategory.ENVELOPE),
    (("tube", "cylinder"), PackageCategory.TUBE),
    (("bag", "poly"), PackageCategory.BAG),
)
TRUE_TOKENS = {"1", "true", "yes", "y", "x", "fragile"}
FALSE_TOKENS = {"0", "false", "no", "n", ""}
_CURRENCY = re.compile(r"[^0-9.\-eE]")
_WHITESPACE = re.compile(r"[\s\-]+")


def _clean_text(raw_value: object) -> str:
    text = str(raw_value if raw_value is not None else "").strip()
    return "" if text.lower() == "nan" else text


def _slugify(text: str) -> str:
    return _WHITESPACE.sub("_", text.strip().lower())


def _to_number(raw_value: object, *, strip_currency: bool = False) -> float | None:
    """None for a blank cell, NaN for text that is not a finite number."""
    text = _clean_text(raw_value)
    if not text:
        return None
    if strip_currency:
        text = _CURRENCY.sub("", text)
    number = float(pd.to_numeric(text, errors="coerce"))
    return number if math.isfinite(number) else math.nan


def _is_nan(number: float | None) -> bool:
    return number is not None and number != number


def _to_bool(raw_value: object) -> bool | None:
    text = _clean_text(raw_value).lower()
    if text in TRUE_TOKENS:
        return True
    if text in FALSE_TOKENS:
        return False
    return None


def parse_priority(raw_value: object) -> ShippingPriority:
    text = _clean_text(raw_value).lower()
    if "overnight" in text or "next" in text:
        return ShippingPriority.OVERNIGHT
    if "two" in text or "2day" in text or "2-day" in text or "2_day" in text:
        return ShippingPriority.TWO_DAY
    if "express" in text or "fast" in text:
        return ShippingPriority.EXPRESS
    if "economy" in text:
        return ShippingPriority.ECONOMY
    return ShippingPriority.STANDARD


def parse_zone(raw_value: object) -> Zone | None:
    """Zone for free text; None when the text is not recognized."""
    text = _slugify(_clean_text(raw_value))
    if not text:
        return Zone.DOMESTIC
    if text.isdigit():
        text = f"zone_{text}"
    elif text.startswith("zone") and not text.startswith("zone_"):
        text = "zone_" + text[4:]
    if text in ZONE_ALIASES:
        return ZONE_ALIASES[text]
    try:
        return Zone(text)
    except ValueError:
        return None


def parse_package_category(raw_value: object) -> PackageCategory:
    text = _clean_text(raw_value).lower()
    for keywords, category in PACKAGE_CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return PackageCategory.BOX


def read_csv_rows(csv_text: str, label: str) -> tuple[list[str], list[list[str]]]:
    if not str(csv_text or "").strip():
        raise StructuralInputError(f"No data found in {label} CSV")
    try:
        frame = pd.read_csv(
            io.StringIO(csv_text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            index_col=False,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise StructuralInputError(f"Could not parse {label} CSV: {exc}") from exc
    frame = frame.fillna("")
    headers = [str(col).strip() for col in frame.columns]
    if frame.empty:
        raise StructuralInputError(f"{label.capitalize()} CSV has a header but no data rows")
    return headers, frame.astype(str).values.tolist()


def _resolve_mapping(headers: list[str], table_key: str, label: str) -> ColumnMapping:
    mapping = map_columns(headers, synonym_table(table_key))
    require_fields(mapping, REQUIRED_COLUMNS[table_key], label)
    logger.debug("Resolved %s columns: %s", label, mapping.as_dict())
    return mapping


class _IssueCollector:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []
        self.error_rows: set[int] = set()
        self.warn_rows: set[int] = set()

    def add_error(self, row_number: int, field: str, code: str, message: str) -> None:
        self.errors.append(ValidationIssue(row_number, field, code, message))
        if row_number > 0:
            self.error_rows.add(row_number)

    def add_warning(self, row_number: int, field: str, code: str, message: str) -> None:
        self.warnings.append(ValidationIssue(row_number, field, code, message))
        if row_number > 0:
            self.warn_rows.add(row_number)

    def summary(self, total_rows: int, record_count: int) -> dict[str, object]:
        return {
            "total_rows": total_rows,
            "accepted_rows": max(total_rows - len(self.error_rows), 0),
            "failed_rows": len(self.error_rows),
            "warned_rows": len(self.warn_rows),
            "records": record_count,
            "errored_row_numbers": sorted(self.error_rows),
            "warned_row_numbers": sorted(self.warn_rows),
        }


def _split_dimensions(mapping: ColumnMapping, row: list[str]) -> tuple[float, float, float] | None:
    raw = {name: _clean_text(mapping.value(row, name)) for name in ("length", "width", "height")}
    if not any(raw.values()):
        return None
    if not all(raw.values()):
        missing = ", ".join(name for name, text in raw.items() if not text)
        raise RowValidationError("dimensions", "INCOMPLETE_DIMENSIONS", f"Missing dimension values: {missing}.")

    numbers: list[float] = []
    for name, text in raw.items():
        number = _to_number(text)
        if number is None or _is_nan(number):
            raise RowValidationError(name, "INVALID_DIMENSION", f"{name} '{text}' is not a number.")
        if number <= 0:
            raise RowValidationError(name, "NON_POSITIVE_VALUE", f"{name} must be a positive number.")
        numbers.append(number)
    return numbers[0], numbers[1], numbers[2]


def _parse_dimensions(
    mapping: ColumnMapping,
    row: list[str],
    warn: IssueSink,
) -> Dimension | None:
    """Separate length/width/height cells win; a combined ``12 x 8 x 4 cm`` cell is the fallback."""
    extents = _split_dimensions(mapping, row)
    combined = _clean_text(mapping.value(row, "dimensions"))
    if extents is None and not combined:
        return None

    unit_text = _clean_text(mapping.value(row, "unit"))
    if not is_known_unit(unit_text):
        warn("unit", "UNKNOWN_UNIT", f"Unknown unit '{unit_text}'; assuming inches.")
    if extents is not None:
        dim = Dimension(*extents, parse_unit(unit_text))
    else:
        dim = parse_dimension_string(combined, parse_unit(unit_text))
        if dim is None:
            raise RowValidationError(
                "dimensions", "INVALID_DIMENSION", f"dimensions '{combined}' must hold three numbers, e.g. 12 x 8 x 4 in."
            )
        if min(dim.as_tuple()) <= 0:
            raise RowValidationError("dimensions", "NON_POSITIVE_VALUE", "dimensions must be positive numbers.")

    check = validate_dimensions(dim)
    if not check.is_valid:
        raise RowValidationError("dimensions", "DIMENSION_OUT_OF_RANGE", "; ".join(check.errors))
    for message in check.warnings:
        warn("dimensions", "DIMENSION_WARNING", message)
    return dim


def _parse_order_row(mapping: ColumnMapping, row: list[str], row_number: int, warn: IssueSink) -> OrderRecord:
    order_id = _clean_text(mapping.value(row, "order_id"))
    if not order_id:
        raise RowValidationError("order_id", "MISSING_REQUIRED_FIELD", "order_id is required.")

    quantity = 1
    qty_number = _to_number(mapping.value(row, "quantity"))
    if qty_number is not None:
        if _is_nan(qty_number) or qty_number < 1 or qty_number != int(qty_number):
            raise RowValidationError("quantity", "INVALID_QUANTITY", "quantity must be a positive integer.")
        quantity = int(qty_number)

    dimensions = _parse_dimensions(mapping, row, warn)

    total_volume = _to_number(mapping.value(row, "total_volume"))
    if _is_nan(total_volume):
        raise RowValidationError("total_volume", "INVALID_VOLUME", "total_volume is not a number.")
    if total_volume is not None and total_volume <= 0:
        raise RowValidationError("total_volume", "NON_POSITIVE_VALUE", "total_volume must be a positive number.")

    weight = _to_number(mapping.value(row, "weight"))
    if _is_nan(weight) or (weight is not None and weight < 0):
        warn("weight", "INVALID_WEIGHT", "weight is not a non-negative number; using the default.")
        weight = None

    zone_text = _clean_text(mapping.value(row, "zone"))
    zone = parse_zone(zone_text)
    if zone is None:
        warn("zone", "UNKNOWN_ZONE", f"Unknown zone '{zone_text}'; using domestic.")
        zone = Zone.DOMESTIC

    order_date = None
    date_text = _clean_text(mapping.value(row, "order_date"))
    if date_text:
        parsed = pd.to_datetime(date_text, errors="coerce")
        if pd.isna(parsed):
            warn("order_date", "INVALID_DATE", f"Could not parse order date '{date_text}'.")
        else:
            order_date = parsed.date()

    value = _to_number(mapping.value(row, "value"), strip_currency=True)
    if _is_nan(value):
        warn("value", "INVALID_VALUE", "value is not a number; ignored.")
        value = None

    fragile_text = _clean_text(mapping.value(row, "fragile"))
    fragile = _to_bool(fragile_text)
    if fragile is None:
        warn("fragile", "INVALID_FLAG", f"Unrecognized fragile flag '{fragile_text}'; treating as not fragile.")
        fragile = False

    return OrderRecord(
        order_id=order_id,
        quantity=quantity,
        dimensions=dimensions,
        total_volume=total_volume,
        weight=weight,
        product_name=_clean_text(mapping.value(row, "product_name")),
        category=_clean_text(mapping.value(row, "category")),
        priority=parse_priority(mapping.value(row, "priority")),
        zone=zone,
        sku=_clean_text(mapping.value(row, "sku")),
        order_date=order_date,
        value=value,
        fragile=fragile,
        customer_id=_clean_text(mapping.value(row, "customer_id")),
        row_number=row_number,
    )


def _same_shape(a: OrderRecord, b: OrderRecord) -> bool:
    return a.dimensions == b.dimensions and a.weight == b.weight and a.fragile == b.fragile


def _merge_orders(existing: OrderRecord, incoming: OrderRecord) -> OrderRecord:
    total = existing.total_volume
    if existing.total_volume is not None and incoming.total_volume is not None:
        total = existing.total_volume + incoming.total_volume
    return replace(existing, quantity=existing.quantity + incoming.quantity, total_volume=total)


def apply_fallback_dimensions(orders: list[OrderRecord], fallback: FallbackDimensions) -> list[OrderRecord]:
    """Give orders with neither dimensions nor total volume a fallback size."""
    updated: list[OrderRecord] = []
    for order in orders:
        if order.has_size:
            updated.append(order)
        else:
            updated.append(replace(order, dimensions=fallback.pick(order), uses_fallback=True))
    return updated


def parse_order_history(
    csv_text: str,
    fallback: FallbackDimensions | None = None,
    progress: ProgressTracker | None = None,
) -> ImportReport:
    headers, rows = read_csv_rows(csv_text, "order")
    mapping = _resolve_mapping(headers, "orders", "order")
    issues = _IssueCollector()
    merged: dict[str, OrderRecord] = {}
    total_rows = len(rows)
    step = max(1, total_rows // 50)

    for idx, row in enumerate(rows):
        row_number = idx + 2

        def _warn(field: str, code: str, message: str, _row: int = row_number) -> None:
            issues.add_warning(_row, field, code, message)

        try:
            order = _parse_order_row(mapping, row, row_number, _warn)
        except RowValidationError as exc:
            issues.add_error(row_number, exc.field, exc.code, exc.message)
            continue
        except Exception as exc:
            logger.warning("Unexpected error parsing order row %s: %s", row_number, exc)
            issues.add_error(row_number, "row", "ROW_PROCESSING_ERROR", f"Row could not be processed: {exc}")
            continue

        existing = merged.get(order.order_id)
        if existing is None:
            merged[order.order_id] = order
        elif _same_shape(existing, order):
            merged[order.order_id] = _merge_orders(existing, order)
        else:
            issues.add_error(
                row_number,
                "order_id",
                "CONFLICTING_DUPLICATE_ORDER",
                f"Order '{order.order_id}' already appeared on row {existing.row_number} with a different item shape.",
            )

        if progress is not None and (idx % step == 0 or idx == total_rows - 1):
            progress.report("validation", (idx + 1) / total_rows * 100, idx + 1, total_rows, f"Validated order row {row_number}")

    orders = list(merged.values())
    if fallback is not None:
        orders = apply_fallback_dimensions(orders, fallback)

    accepted: list[OrderRecord] = []
    for order in orders:
        if not order.has_size:
            issues.add_error(
                order.row_number,
                "dimensions",
                "MISSING_DIMENSIONS",
                "Order has neither dimensions nor total volume.",
            )
            continue
        if order.uses_fallback:
            issues.add_warning(
                order.row_number,
                "dimensions",
                "FALLBACK_DIMENSIONS_APPLIED",
                "Fallback dimensions were applied to an order without size information.",
            )
        accepted.append(order)

    logger.info("Parsed %s orders from %s rows (%s errors)", len(accepted), total_rows, len(issues.errors))
    return ImportReport(accepted, issues.errors, issues.warnings, issues.summary(total_rows, len(accepted)), mapping.as_dict())


def _parse_package_row(mapping: ColumnMapping, row: list[str], warn: IssueSink) -> PackageType:
    name = _clean_text(mapping.value(row, "package_name"))
    if not name:
        raise RowValidationError("package_name", "MISSING_REQUIRED_FIELD", "package_name is required.")

    dims = _parse_dimensions(mapping, row, warn)
    if dims is None:
        raise RowValidationError("dimensions", "MISSING_REQUIRED_FIELD", "length, width and height are required.")

    cost = _to_number(mapping.value(row, "cost_per_unit"), strip_currency=True)
    if cost is None:
        warn("cost_per_unit", "MISSING_COST", "No package cost given; using 0.")
        cost = 0.0
    elif _is_nan(cost) or cost < 0:
        raise RowValidationError("cost_per_unit", "INVALID_COST", "cost_per_unit must be a non-negative number.")

    package_weight = _to_number(mapping.value(row, "package_weight"))
    if package_weight is None:
        package_weight = 0.1
    elif _is_nan(package_weight) or package_weight < 0:
        warn("package_weight", "INVALID_WEIGHT", "package_weight is not a non-negative number; using 0.1 lb.")
        package_weight = 0.1

    max_weight = _to_number(mapping.value(row, "max_weight"))
    if max_weight is not None and (_is_nan(max_weight) or max_weight <= 0):
        warn("max_weight", "INVALID_WEIGHT", "max_weight is not a positive number; using 50 lb.")
        max_weight = None

    return PackageType(
        package_id=_clean_text(mapping.value(row, "package_id")) or _slugify(name),
        name=name,
        dimensions=dims,
        cost=cost,
        package_weight=package_weight,
        max_weight=max_weight,
        category=parse_package_category(mapping.value(row, "package_type")),
        material=_clean_text(mapping.value(row, "material")).lower() or "cardboard",
    )


def parse_packaging_suite(csv_text: str) -> ImportReport:
    headers, rows = read_csv_rows(csv_text, "packaging")
    mapping = _resolve_mapping(headers, "packaging", "packaging")
    issues = _IssueCollector()
    packages: list[PackageType] = []
    seen_ids: dict[str, int] = {}

    for idx, row in enumerate(rows):
        row_number = idx + 2

        def _warn(field: str, code: str, message: str, _row: int = row_number) -> None:
            issues.add_warning(_row, field, code, message)

        try:
            package = _parse_package_row(mapping, row, _warn)
        except RowValidationError as exc:
            issues.add_error(row_number, exc.field, exc.code, exc.message)
            continue
        except Exception as exc:
            logger.warning("Unexpected error parsing packaging row %s: %s", row_number, exc)
            issues.add_error(row_number, "row", "ROW_PROCESSING_ERROR", f"Row could not be processed: {exc}")
            continue

        if package.package_id in seen_ids:
            issues.add_error(
                row_number,
                "package_id",
                "DUPLICATE_PACKAGE_ID",
                f"Package id '{package.package_id}' already defined on row {seen_ids[package.package_id]}.",
            )
            continue
        seen_ids[package.package_id] = row_number
        if volume(package.dimensions) <= 0:
            issues.add_error(row_number, "dimensions", "NON_POSITIVE_VALUE", "Package volume must be positive.")
            continue
        packages.append(package)

    logger.info("Parsed %s packages from %s rows", len(packages), len(rows))
    return ImportReport(packages, issues.errors, issues.warnings, issues.summary(len(rows), len(packages)), mapping.as_dict())


def _parse_baseline_row(mapping: ColumnMapping, row: list[str]) -> BaselineMixItem:
    name = _clean_text(mapping.value(row, "package_name"))
    if not name:
        raise RowValidationError("package_name", "MISSING_REQUIRED_FIELD", "package_name is required.")
    usage = _to_number(mapping.value(row, "usage_percent"), strip_currency=True)
    monthly = _to_number(mapping.value(row, "monthly_volume"))
    cost = _to_number(mapping.value(row, "average_cost"), strip_currency=True)
    bad = [
        field_name
        for field_name, number in (("usage_percent", usage), ("monthly_volume", monthly), ("average_cost", cost))
        if number is None or _is_nan(number) or number <= 0
    ]
    if bad:
        raise RowValidationError(bad[0], "INVALID_USAGE_DATA", f"{', '.join(bad)} must be positive numbers.")
    return BaselineMixItem(
        package_name=name,
        package_id=_clean_text(mapping.value(row, "package_id")) or _slugify(name),
        usage_percent=float(usage),
        monthly_volume=int(round(monthly)),
        average_cost=float(cost),
    )


def parse_baseline_mix(csv_text: str) -> ImportReport:
    headers, rows = read_csv_rows(csv_text, "baseline")
    mapping = _resolve_mapping(headers, "baseline", "baseline")
    issues = _IssueCollector()
    items: list[BaselineMixItem] = []

    for idx, row in enumerate(rows):
        row_number = idx + 2
        try:
            items.append(_parse_baseline_row(mapping, row))
        except RowValidationError as exc:
            issues.add_error(row_number, exc.field, exc.code, exc.message)
        except Exception as exc:
            logger.warning("Unexpected error parsing baseline row %s: %s", row_number, exc)
            issues.add_error(row_number, "row", "ROW_PROCESSING_ERROR", f"Row could not be processed: {exc}")

    logger.info("Parsed %s baseline mix entries", len(items))
    return ImportReport(items, issues.errors, issues.warnings, issues.summary(len(rows), len(items)), mapping.as_dict())
