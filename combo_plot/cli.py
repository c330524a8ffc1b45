from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path
from typing import Any, Sequence

from combo_plot.api import chart_from_manifest
from combo_plot.config import load_chart_manifest
from combo_plot.diagnostics import JsonlDiagnosticSink
from combo_plot.errors import ChartInputError


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="combo-plot")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="Resolve a chart manifest (chart.toml) against rows and print the render plan as JSON.")
    plan.add_argument("manifest", type=Path)
    plan.add_argument("rows", type=Path, help="Rows as a JSON array of objects, a JSON object of columns, or CSV.")
    plan.add_argument("--out", type=Path, default=None, help="Write the plan here instead of stdout.")
    plan.add_argument("--indent", type=int, default=2)
    plan.add_argument("--diagnostics-jsonl", type=Path, default=None)

    report = sub.add_parser("diagnostics-report", help="Print a summary of a JSONL diagnostics sink.")
    report.add_argument("--diagnostics-jsonl", type=Path, required=True)

    prune = sub.add_parser("diagnostics-prune", help="Prune old diagnostic rows to max row count.")
    prune.add_argument("--diagnostics-jsonl", type=Path, required=True)
    prune.add_argument("--max-rows", type=int, required=True)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "plan":
        manifest = load_chart_manifest(args.manifest)
        rows = load_rows(args.rows)
        sink = JsonlDiagnosticSink(args.diagnostics_jsonl) if args.diagnostics_jsonl is not None else None
        chart = chart_from_manifest(manifest)
        result = chart.render(rows, manifest.x_field, diagnostics=sink)
        text = json.dumps(result.to_dict(), indent=args.indent if args.indent > 0 else None, sort_keys=True)
        if args.out is not None:
            args.out.write_text(text + "\n", encoding="utf-8")
            print(f"plan written: series={len(result.series)} skipped={len(result.skipped)} path={args.out}")
        else:
            print(text)
        return 0

    if args.command == "diagnostics-report":
        print(json.dumps(JsonlDiagnosticSink(args.diagnostics_jsonl).summarize(), indent=2, sort_keys=True))
        return 0

    if args.command == "diagnostics-prune":
        deleted = JsonlDiagnosticSink(args.diagnostics_jsonl).prune(max_rows=args.max_rows)
        print(f"pruned rows={deleted}")
        return 0

    raise RuntimeError(f"unsupported command: {args.command}")


def load_rows(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"rows file not found: {path}")
    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8", newline="") as f:
            return [dict(row) for row in csv.DictReader(f)]
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ChartInputError(f"rows file is not valid JSON: {path}: {exc}") from exc
