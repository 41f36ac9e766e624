"""
history.py — File-backed metric time series for the dashboard charts

One JSON file per (pair, metric) under <root>/<pair_id>/<metric>.json,
holding a list of {"t": <ms timestamp>, "v": <value>} points.

At the default 5-second cadence 720 points cover one hour. A series is only
trimmed back to max_points once it grows past cleanup_threshold, so most
appends are a plain read-append-write.
"""

import json
import logging
import time
from pathlib import Path

logger = logging.getLogger(__name__)

METRICS = (
    "psi", "spread", "bid_depth", "ask_depth",
    "imbalance", "near_peg_liq", "peg_dev",
)


class HistoryStore:

    def __init__(self, root, max_points: int = 720, cleanup_threshold: int = 800, clock=time.time):
        self.root = Path(root)
        self.max_points = max_points
        self.cleanup_threshold = cleanup_threshold
        self.clock = clock

    def _path(self, pair_id: str, metric: str) -> Path:
        if metric not in METRICS:
            raise ValueError(f"Unknown history metric: {metric!r}")
        return self.root / pair_id / f"{metric}.json"

    def read(self, pair_id: str, metric: str) -> list[dict]:
        path = self._path(pair_id, metric)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable history {path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def append(self, pair_id: str, metric: str, value: float) -> None:
        path = self._path(pair_id, metric)
        history = self.read(pair_id, metric)
        history.append({"t": int(self.clock() * 1000), "v": value})
        if len(history) > self.cleanup_threshold:
            history = history[-self.max_points:]
        self._write(path, history)

    def seed(self, pair_id: str, metric: str, points: list[dict]) -> bool:
        """Fill an empty series with `points`. Returns False if it already had data."""
        if self.read(pair_id, metric):
            return False
        self._write(self._path(pair_id, metric), points[-self.max_points:])
        return True

    def _write(self, path: Path, history: list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(history, f)

    def append_metrics(self, pair_id: str, metrics: dict) -> None:
        for metric, value in metrics.items():
            if value is not None:
                self.append(pair_id, metric, value)

    def recent(self, pair_id: str, metric: str, minutes: float = 60) -> list[dict]:
        cutoff = int(self.clock() * 1000) - minutes * 60_000
        return [p for p in self.read(pair_id, metric) if p.get("t", 0) >= cutoff]

    def clear(self, pair_id: str, metric: str) -> None:
        self._path(pair_id, metric).unlink(missing_ok=True)

    def clear_pair(self, pair_id: str) -> None:
        for metric in METRICS:
            self.clear(pair_id, metric)
