from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class FieldSpec:
    field_type: str
    synonyms: tuple[str, ...]
    required: bool = False
    description: str = ""
    example: str = ""
    notes: str = ""
    in_template: bool = True


TABLE_SPECS: dict[str, dict[str, FieldSpec]] = {
    "orders": {
        "order_id": FieldSpec(
            "text",
            (
                "order_id", "orderid", "order_number", "order", "id", "order id", "order_no", "orderno",
                "order no", "po", "po_number", "purchase_order", "transaction_id", "trans_id", "reference",
                "ref", "order_ref",
            ),
            required=True,
            description="Order identifier; rows sharing it are merged",
            example="ORD-1001",
        ),
        "product_name": FieldSpec(
            "text",
            (
                "product_name", "product", "item_name", "name", "description", "product name", "item",
                "sku_name", "article", "product_description", "item_description", "title", "product_title",
            ),
            description="Product label, also used to pick fallback dimensions",
            example="Small Ceramic Mug",
        ),
        "sku": FieldSpec(
            "text",
            ("sku", "product_id", "productid", "item_code", "part_number"),
            description="Product SKU",
            example="MUG-S-01",
            in_template=False,
        ),
        "dimensions": FieldSpec(
            "text",
            ("dimensions", "dims", "lxwxh", "l_x_w_x_h", "item_dimensions", "product_dimensions", "package_dimensions"),
            description="Combined unit size such as 12 x 8 x 4 in",
            example="6 x 4 x 2",
            notes="Used only when length, width and height columns are absent or blank.",
            in_template=False,
        ),
        "total_volume": FieldSpec(
            "decimal",
            (
                "total_order_volume", "total_volume", "order_volume", "volume", "total order volume",
                "total_cuin", "cuin", "total cuin", "cubic_inches", "total_cubic_inches", "cu_in",
                "total_cu_in", "size", "total_size", "capacity", "total_capacity", "cubic", "total cubic",
                "volume_cubic_inches", "order_size", "total_order_size",
            ),
            description="Total order volume in cubic inches when dimensions are unknown",
            example="96",
            notes="Required when quantity is absent.",
            in_template=False,
        ),
        "length": FieldSpec(
            "decimal",
            ("length", "l", "len", "dimension_l", "dim_l", "product_length", "item_length", "depth", "d", "long", "longest"),
            description="Unit length",
            example="6",
        ),
        "width": FieldSpec(
            "decimal",
            ("width", "w", "wid", "dimension_w", "dim_w", "product_width", "item_width", "breadth", "b", "wide", "widest"),
            description="Unit width",
            example="4",
        ),
        "height": FieldSpec(
            "decimal",
            (
                "height", "h", "hgt", "dimension_h", "dim_h", "product_height", "item_height", "tall",
                "thickness", "t", "high", "highest",
            ),
            description="Unit height",
            example="2",
        ),
        "unit": FieldSpec(
            "text",
            (
                "unit", "dimension_unit", "dim_unit", "measurement_unit", "units", "measure", "measurement",
                "uom", "unit_of_measure", "size_unit",
            ),
            description="Length unit (in, ft, cm, mm, m)",
            example="in",
        ),
        "quantity": FieldSpec(
            "int",
            (
                "quantity", "qty", "count", "amount", "pieces", "pcs", "units", "number", "num",
                "quantity_ordered", "order_qty", "items", "no_of_items", "total_items",
            ),
            description="Units ordered",
            example="2",
            notes="Defaults to 1 when blank.",
        ),
        "weight": FieldSpec(
            "decimal",
            (
                "weight", "wt", "mass", "pounds", "lbs", "kg", "kilograms", "product_weight", "item_weight",
                "total_weight", "gross_weight", "net_weight", "grams", "g", "oz", "ounces",
            ),
            description="Weight in pounds",
            example="1",
            notes="Defaults to 1 lb when blank.",
        ),
        "category": FieldSpec(
            "text",
            (
                "category", "type", "product_type", "class", "product_category", "item_category",
                "classification", "group", "product_group", "dept", "department", "section",
            ),
            description="Product category",
            example="kitchen",
        ),
        "priority": FieldSpec(
            "text",
            (
                "priority", "service", "shipping_priority", "speed", "shipping_speed", "delivery_type",
                "service_level", "ship_method", "shipping_method", "urgency", "shipping_service",
            ),
            description="Service level",
            example="standard",
        ),
        "zone": FieldSpec(
            "text",
            (
                "zone", "shipping_zone", "delivery_zone", "region", "area", "location", "destination",
                "ship_to", "delivery_region", "geo", "geography", "territory",
            ),
            description="Shipping zone",
            example="domestic",
        ),
        "order_date": FieldSpec(
            "date",
            ("date", "order_date", "orderdate", "created_at", "timestamp"),
            description="Order date",
            example="2026-01-15",
            in_template=False,
        ),
        "value": FieldSpec(
            "decimal",
            ("value", "order_value", "declared_value", "price"),
            description="Declared value",
            example="24.99",
            in_template=False,
        ),
        "fragile": FieldSpec(
            "bool",
            ("fragile", "breakable", "delicate", "handle_with_care", "is_fragile"),
            description="Fragile flag",
            example="no",
            in_template=False,
        ),
        "customer_id": FieldSpec(
            "text",
            ("customer_id", "customerid", "customer", "client_id"),
            description="Customer reference",
            example="C-042",
            in_template=False,
        ),
    },
    "packaging": {
        "package_name": FieldSpec(
            "text",
            ("package_name", "name", "package", "container_name"),
            required=True,
            description="Package display name",
            example="Small Box",
        ),
        "package_id": FieldSpec(
            "text",
            ("package_id", "id", "sku", "code"),
            description="Package identifier; defaults to the slugified name",
            example="small_box",
        ),
        "length": FieldSpec("decimal", ("length", "l", "len", "dimension_l"), required=True, description="Inside length", example="8.7"),
        "width": FieldSpec("decimal", ("width", "w", "wid", "dimension_w"), required=True, description="Inside width", example="5.4"),
        "height": FieldSpec("decimal", ("height", "h", "hgt", "dimension_h"), required=True, description="Inside height", example="3.1"),
        "unit": FieldSpec("text", ("unit", "dimension_unit", "measurement_unit"), description="Length unit", example="in"),
        "cost_per_unit": FieldSpec(
            "decimal",
            ("cost_per_unit", "cost", "price", "unit_cost"),
            description="Package unit cost (USD)",
            example="0.40",
        ),
        "package_weight": FieldSpec(
            "decimal",
            ("package_weight", "weight", "container_weight", "wt"),
            description="Empty package weight in pounds",
            example="0.1",
            notes="Defaults to 0.1 lb when blank.",
        ),
        "max_weight": FieldSpec(
            "decimal",
            ("max_weight", "weight_limit", "capacity"),
            description="Weight capacity in pounds",
            example="20",
            notes="Defaults to 50 lb when blank.",
        ),
        "material": FieldSpec("text", ("material", "material_type"), description="Package material", example="cardboard"),
        "package_type": FieldSpec(
            "text",
            ("package_type", "container_type", "category", "type"),
            description="box, envelope, tube or bag",
            example="box",
        ),
    },
    "baseline": {
        "package_name": FieldSpec("text", ("package_name", "name", "package"), required=True, description="Package name", example="Medium Box"),
        "package_id": FieldSpec("text", ("package_id", "id", "sku"), description="Package identifier", example="medium_box", in_template=False),
        "usage_percent": FieldSpec(
            "decimal",
            ("usage_percent", "current_usage_percent", "percent", "percentage", "current_usage"),
            required=True,
            description="Share of historical orders",
            example="40",
        ),
        "monthly_volume": FieldSpec(
            "int",
            ("monthly_volume", "volume", "count", "quantity"),
            required=True,
            description="Packages used per month",
            example="400",
        ),
        "average_cost": FieldSpec(
            "decimal",
            ("average_cost", "cost", "avg_cost"),
            required=True,
            description="Average landed cost per package (USD)",
            example="3.25",
        ),
    },
}

REQUIRED_COLUMNS: dict[str, list[str | tuple[str, ...]]] = {
    "orders": ["order_id", ("quantity", "total_volume")],
    "packaging": ["package_name", "length", "width", "height"],
    "baseline": ["package_name"],
}


def synonym_table(table_key: str) -> dict[str, tuple[str, ...]]:
    specs = TABLE_SPECS.get(table_key)
    if specs is None:
        raise ValueError(f"Unknown table '{table_key}'")
    return {name: spec.synonyms for name, spec in specs.items()}


def build_help_text(table_key: str, field: str) -> str:
    spec = TABLE_SPECS.get(table_key, {}).get(field)
    if not spec:
        return ""
    chunks = [spec.description]
    if spec.required:
        chunks.append("Required")
    if spec.notes:
        chunks.append(spec.notes)
    if spec.example:
        chunks.append(f"Example: {spec.example}")
    chunks.append("Also accepts: " + ", ".join(spec.synonyms[1:4]) if len(spec.synonyms) > 1 else "")
    return " | ".join([c for c in chunks if c])


def field_guide_df(table_key: str) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for col, spec in TABLE_SPECS.get(table_key, {}).items():
        rows.append(
            {
                "column": col,
                "type": spec.field_type,
                "required": "yes" if spec.required else "no",
                "accepted_headers": ", ".join(spec.synonyms),
                "example": spec.example,
                "notes": spec.notes or "-",
            }
        )
    return pd.DataFrame(rows)


def csv_template(table_key: str) -> str:
    """Header plus one example row for the given table."""
    specs = TABLE_SPECS.get(table_key)
    if specs is None:
        raise ValueError(f"Unknown table '{table_key}'")
    row = {col: spec.example for col, spec in specs.items() if spec.in_template}
    return pd.DataFrame([row]).to_csv(index=False)
