import pytest

from column_mapper import (
    StructuralInputError,
    levenshtein,
    map_columns,
    normalize_header,
    require_fields,
    similarity,
)
from field_specs import REQUIRED_COLUMNS, synonym_table


MESSY_ORDER_HEADERS = ["Order Number", "Product", "Qty", "L", "W", "H", "Units", "Weight (lbs)"]


def test_normalize_and_distance():
    assert normalize_header(" Order ID ") == "order_id"
    assert normalize_header("Weight (lbs)") == "weight__lbs_"
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3


def test_similarity_scores():
    assert similarity("qty", "qty") == 1.0
    assert similarity("order_qty", "qty") == 0.9
    assert similarity("length", "l") == pytest.approx(1 - 5 / 6)
    assert similarity("height", "weight") == pytest.approx(1 - 1 / 6)


def test_messy_order_headers_map_to_fields():
    mapping = map_columns(MESSY_ORDER_HEADERS, synonym_table("orders"))
    resolved = mapping.as_dict()
    assert resolved["order_id"] == "Order Number"
    assert resolved["product_name"] == "Product"
    assert resolved["quantity"] == "Qty"
    assert resolved["length"] == "L"
    assert resolved["width"] == "W"
    assert resolved["height"] == "H"
    assert resolved["unit"] == "Units"
    assert resolved["weight"] == "Weight (lbs)"
    assert not mapping.has("sku")


def test_mapping_is_deterministic():
    first = map_columns(MESSY_ORDER_HEADERS, synonym_table("orders"))
    second = map_columns(list(MESSY_ORDER_HEADERS), synonym_table("orders"))
    assert first == second


def test_first_header_wins_ties():
    mapping = map_columns(["qty", "count"], {"quantity": ("qty", "count")})
    assert mapping.as_dict() == {"quantity": "qty"}


def test_shared_header_stays_with_strongest_field():
    mapping = map_columns(["height"], synonym_table("orders"))
    assert mapping.has("height")
    assert not mapping.has("weight")


def test_losing_field_falls_back_to_its_next_best_header():
    mapping = map_columns(["Product", "Weight (lbs)"], synonym_table("orders"))
    assert mapping.as_dict() == {"product_name": "Product", "weight": "Weight (lbs)"}
    assert mapping.scores["weight"] == pytest.approx(0.9)

    table = {"label": ("name",), "title": ("name", "caption")}
    assert map_columns(["name", "caption"], table).as_dict() == {"label": "name", "title": "caption"}


def test_each_header_feeds_one_field():
    mapping = map_columns(MESSY_ORDER_HEADERS, synonym_table("orders"))
    assert len(set(mapping.indexes.values())) == len(mapping.indexes)


def test_mapping_value_handles_short_rows():
    mapping = map_columns(["order_id", "qty"], synonym_table("orders"))
    assert mapping.value(["A-1", "3"], "quantity") == "3"
    assert mapping.value(["A-1"], "quantity") is None
    assert mapping.value(["A-1", "3"], "zone") is None


def test_require_fields_reports_missing_columns():
    mapping = map_columns(["Product", "Qty"], synonym_table("orders"))
    with pytest.raises(StructuralInputError, match="order_id"):
        require_fields(mapping, REQUIRED_COLUMNS["orders"], "order")


def test_one_of_requirement_accepts_total_volume():
    mapping = map_columns(["order_id", "total_volume"], synonym_table("orders"))
    require_fields(mapping, REQUIRED_COLUMNS["orders"], "order")

    bare = map_columns(["order_id"], synonym_table("orders"))
    with pytest.raises(StructuralInputError, match="quantity or total_volume"):
        require_fields(bare, REQUIRED_COLUMNS["orders"], "order")
