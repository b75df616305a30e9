import csv
import io

import pytest

from field_specs import TABLE_SPECS, build_help_text, csv_template, field_guide_df, synonym_table
from services.csv_import import parse_baseline_mix, parse_order_history, parse_packaging_suite


def _header(text: str) -> list[str]:
    return next(csv.reader(io.StringIO(text)))


def test_template_headers_match_table_specs():
    for table_key, specs in TABLE_SPECS.items():
        expected = [name for name, spec in specs.items() if spec.in_template]
        assert _header(csv_template(table_key)) == expected


def test_order_template_parses_cleanly():
    report = parse_order_history(csv_template("orders"))
    assert report.errors == []
    (order,) = report.records
    assert order.order_id == "ORD-1001"
    assert order.quantity == 2
    assert order.dimensions.as_tuple() == (6.0, 4.0, 2.0)


def test_packaging_and_baseline_templates_parse_cleanly():
    packages = parse_packaging_suite(csv_template("packaging"))
    assert packages.errors == []
    assert packages.records[0].package_id == "small_box"
    assert packages.records[0].cost == pytest.approx(0.40)

    baseline = parse_baseline_mix(csv_template("baseline"))
    assert baseline.errors == []
    assert baseline.records[0].monthly_volume == 400


def test_field_guide_and_help_text():
    guide = field_guide_df("packaging")
    assert list(guide.columns) == ["column", "type", "required", "accepted_headers", "example", "notes"]
    assert len(guide) == len(TABLE_SPECS["packaging"])
    assert "Required" in build_help_text("orders", "order_id")
    assert build_help_text("orders", "nope") == ""


def test_unknown_table_raises():
    with pytest.raises(ValueError, match="Unknown table"):
        synonym_table("invoices")
    with pytest.raises(ValueError, match="Unknown table"):
        csv_template("invoices")
