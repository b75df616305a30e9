import csv
import json

from suite_pipeline import main, run_suite_pipeline


ORDERS_CSV = "order_id,quantity,length,width,height,weight\nA-1,2,6,4,2,1\nA-2,1,30,30,30,5\n"
PACKAGING_CSV = "package_name,length,width,height,cost\nSmall Box,8.7,5.4,3.1,0.40\nMedium Box,11,8.5,6,0.70\n"


def _inputs(tmp_path):
    orders = tmp_path / "orders.csv"
    packaging = tmp_path / "packaging.csv"
    orders.write_text(ORDERS_CSV, encoding="utf-8")
    packaging.write_text(PACKAGING_CSV, encoding="utf-8")
    return orders, packaging


def test_pipeline_writes_outputs(tmp_path):
    orders, packaging = _inputs(tmp_path)
    result = run_suite_pipeline(orders, packaging, output_dir=tmp_path / "out")

    files = result["output_files"]
    assert set(files) == {"allocations", "failures", "recommendations", "report"}
    with open(files["allocations"], newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["order_id"] for r in rows] == ["A-1"]
    assert rows[0]["recommended_package"] == "Small Box"
    with open(files["failures"], newline="", encoding="utf-8") as f:
        assert [r["order_id"] for r in csv.DictReader(f)] == ["A-2"]

    report = json.loads((tmp_path / "out" / "report.json").read_text(encoding="utf-8"))
    assert report["analysis_id"] == result["analysis_id"]
    assert report["summary"]["processed_orders"] == 1
    assert result["summary"]["failed_orders"] == 1


def test_pipeline_reads_utf8_bom(tmp_path):
    orders, packaging = _inputs(tmp_path)
    orders.write_text("\ufeff" + ORDERS_CSV, encoding="utf-8")
    result = run_suite_pipeline(orders, packaging, output_dir=tmp_path / "out")
    assert result["summary"]["total_orders"] == 2


def test_cli_entry_point(tmp_path):
    orders, packaging = _inputs(tmp_path)
    baseline = tmp_path / "baseline.csv"
    baseline.write_text("package_name,usage_percent,monthly_volume,average_cost\nMedium Box,100,10,5\n", encoding="utf-8")
    result = main([str(orders), str(packaging), "--baseline", str(baseline), "--out", str(tmp_path / "cli")])
    assert (tmp_path / "cli" / "recommendations.csv").exists()
    report = json.loads((tmp_path / "cli" / "report.json").read_text(encoding="utf-8"))
    assert report["baseline"]["baseline_source"] == "supplied"
    assert result["summary"]["processed_orders"] == 1
