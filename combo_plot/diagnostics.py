from __future__ import annotations

from collections import Counter
import json
from pathlib import Path
import threading
from typing import Any, Callable, Iterator


DiagnosticSink = Callable[[dict[str, object]], None]


def null_sink(entry: dict[str, object]) -> None:
    return None


class MemoryDiagnosticSink:
    """Keeps diagnostic entries in memory; handy for tests and interactive inspection."""

    def __init__(self) -> None:
        self.entries: list[dict[str, object]] = []

    def __call__(self, entry: dict[str, object]) -> None:
        self.entries.append(dict(entry))

    def actions(self) -> list[str]:
        return [str(e.get("action", "")) for e in self.entries]


class JsonlDiagnosticSink:
    """Appends one JSON object per render event; safe to share between threads of one process."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def __call__(self, entry: dict[str, object]) -> None:
        self.log(entry)

    def log(self, entry: dict[str, object]) -> None:
        line = json.dumps(entry, separators=(",", ":"), sort_keys=True, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def entries(self) -> Iterator[dict[str, Any]]:
        """Decoded entries in write order. Blank and corrupt lines are skipped."""
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(row, dict):
                    yield row

    def summarize(self) -> dict[str, Any]:
        by_action: Counter[str] = Counter()
        by_series: Counter[str] = Counter()
        by_reason: Counter[str] = Counter()
        for row in self.entries():
            by_action[str(row.get("action", ""))] += 1
            if "series" in row:
                by_series[str(row["series"])] += 1
            if "reason" in row:
                by_reason[str(row["reason"])] += 1
        return {
            "total": sum(by_action.values()),
            "by_action": dict(by_action),
            "by_series": dict(by_series),
            "by_reason": dict(by_reason),
        }

    def prune(self, *, max_rows: int | None = None) -> int:
        """Keep the newest ``max_rows`` lines; returns how many were dropped."""
        if max_rows is None or max_rows <= 0 or not self.path.exists():
            return 0
        with self._lock:
            lines = [line for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
            dropped = len(lines) - max_rows
            if dropped <= 0:
                return 0
            self.path.write_text("".join(line + "\n" for line in lines[dropped:]), encoding="utf-8")
        return dropped
