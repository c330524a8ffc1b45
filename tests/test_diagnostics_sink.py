from __future__ import annotations

import json
from pathlib import Path
import tempfile
import unittest

from combo_plot.diagnostics import JsonlDiagnosticSink, MemoryDiagnosticSink, null_sink


class DiagnosticSinkTests(unittest.TestCase):
    def test_jsonl_sink_log_and_summary(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "diagnostics" / "combo.jsonl"
            sink = JsonlDiagnosticSink(path)
            sink({"action": "series_skipped", "series": "Revenue", "axis": "right", "reason": "missing_scale"})
            sink({"action": "series_skipped", "series": "Margin", "axis": "right", "reason": "missing_scale"})
            sink({"action": "empty_render", "reason": "no_rows", "rows": 0, "series_count": 2})

            summary = sink.summarize()
            self.assertEqual(summary["total"], 3)
            self.assertEqual(summary["by_action"]["series_skipped"], 2)
            self.assertEqual(summary["by_action"]["empty_render"], 1)
            self.assertEqual(summary["by_series"], {"Revenue": 1, "Margin": 1})
            self.assertEqual(summary["by_reason"], {"missing_scale": 2, "no_rows": 1})
            self.assertEqual([e["action"] for e in sink.entries()], ["series_skipped", "series_skipped", "empty_render"])

            first = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
            self.assertEqual(first["reason"], "missing_scale")

    def test_summary_skips_corrupt_lines(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "combo.jsonl"
            path.write_text('{"action":"series_skipped"}\nnot json\n\n', encoding="utf-8")
            self.assertEqual(JsonlDiagnosticSink(path).summarize()["total"], 1)

    def test_summary_of_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            summary = JsonlDiagnosticSink(Path(td) / "missing.jsonl").summarize()
            self.assertEqual(summary, {"total": 0, "by_action": {}, "by_series": {}, "by_reason": {}})

    def test_jsonl_sink_prune_max_rows(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "combo.jsonl"
            sink = JsonlDiagnosticSink(path)
            for i in range(5):
                sink.log({"action": "series_skipped", "series": f"s{i}"})
            deleted = sink.prune(max_rows=2)
            self.assertEqual(deleted, 3)
            rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
            self.assertEqual([r["series"] for r in rows], ["s3", "s4"])
            self.assertEqual(sink.prune(max_rows=10), 0)
            self.assertEqual(sink.prune(), 0)

    def test_memory_sink(self) -> None:
        sink = MemoryDiagnosticSink()
        entry = {"action": "unknown_chart_type", "series": "x"}
        sink(entry)
        entry["action"] = "mutated"
        self.assertEqual(sink.actions(), ["unknown_chart_type"])
        self.assertIsNone(null_sink(entry))


if __name__ == "__main__":
    unittest.main()
