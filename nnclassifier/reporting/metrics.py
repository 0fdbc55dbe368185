"""Iteration history sinks for training runs."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping

from .artifacts import git_sha


class JsonlSink:
    """Append-only JSONL writer, one record per optimizer iteration."""

    def __init__(
        self,
        path: str | Path,
        *,
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.seed = seed
        self.sha = sha or git_sha()

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        record = {"iteration": int(step), "seed": self.seed, "sha": self.sha}
        record.update(
            {k: float(v) for k, v in metrics.items() if k != "iteration" and isinstance(v, (int, float))}
        )
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_step


class CsvSink:
    """Write iteration records to CSV with a stable schema."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        row = {"iteration": int(step)}
        row.update(
            {k: float(v) for k, v in metrics.items() if k != "iteration" and isinstance(v, (int, float))}
        )
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    __call__ = on_step


__all__ = ["CsvSink", "JsonlSink"]
