from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path
from typing import Any

from analyzer import AnalysisReport, analyze_suite
from config import AnalyzerConfig


OUTPUT_DIR = Path(__file__).resolve().parent / "outputs" / "suite"


def _read_text(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8-sig")


def _write_csv(output_dir: Path, name: str, rows: list[dict[str, Any]]) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / name
    if not rows:
        path.write_text("", encoding="utf-8")
        return path
    fieldnames = list(rows[0].keys())
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return path


def _recommendation_rows(report: AnalysisReport) -> list[dict[str, Any]]:
    rows = []
    for rank, rec in enumerate(report.recommendations, start=1):
        rows.append(
            {
                "rank": rank,
                "type": rec.rec_type,
                "priority": rec.priority,
                "impact_level": rec.impact,
                "title": rec.title,
                "description": rec.description,
                "savings_amount": round(rec.savings_amount, 2),
                "savings_percent": round(rec.savings_percent, 2),
                "affected_orders": rec.affected_orders,
                "difficulty": rec.difficulty,
                "timeframe": rec.timeframe,
                "steps": " | ".join(rec.steps),
            }
        )
    return rows


def run_suite_pipeline(
    orders_path: str | Path,
    packaging_path: str | Path,
    baseline_path: str | Path | None = None,
    output_dir: str | Path = OUTPUT_DIR,
    config: AnalyzerConfig | None = None,
) -> dict[str, Any]:
    out_dir = Path(output_dir)
    report = analyze_suite(
        _read_text(orders_path),
        _read_text(packaging_path),
        _read_text(baseline_path) if baseline_path else None,
        config=config or AnalyzerConfig.from_env(),
    )
    payload = report.as_dict()

    out_paths = {
        "allocations": _write_csv(out_dir, "allocations.csv", [a.as_dict() for a in report.allocations]),
        "failures": _write_csv(out_dir, "failures.csv", [f.as_dict() for f in report.failures]),
        "recommendations": _write_csv(out_dir, "recommendations.csv", _recommendation_rows(report)),
    }
    report_path = out_dir / "report.json"
    report_path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    out_paths["report"] = report_path

    return {
        "analysis_id": report.analysis_id,
        "summary": payload["summary"],
        "output_files": {k: str(v) for k, v in out_paths.items()},
    }


def main(argv: list[str] | None = None) -> dict[str, Any]:
    parser = argparse.ArgumentParser(description="Analyze a packaging suite against order history.")
    parser.add_argument("orders", help="Order history CSV")
    parser.add_argument("packaging", help="Packaging suite CSV")
    parser.add_argument("--baseline", help="Optional current packaging mix CSV")
    parser.add_argument("--out", default=str(OUTPUT_DIR), help="Output directory")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    return run_suite_pipeline(args.orders, args.packaging, args.baseline, args.out)


if __name__ == "__main__":
    result = main()
    print("Suite analysis complete")
    print(f"Orders processed: {result['summary']['processed_orders']} / {result['summary']['total_orders']}")
    print(f"Total savings (USD): {result['summary']['total_savings']}")
    for name, path in result["output_files"].items():
        print(f"- {name}: {path}")
