"""publish.py — Write peg stability reports to JSON files."""

import json
import logging
from pathlib import Path

from tempo_sentinel.config import cfg

logger = logging.getLogger(__name__)


def _root(data_dir: str | None = None) -> Path:
    p = Path(data_dir or cfg.data_dir)
    p.mkdir(parents=True, exist_ok=True)
    return p


def publish_latest(report: dict, data_dir: str | None = None) -> Path:
    path = _root(data_dir) / "latest.json"
    _write(report, path)
    logger.debug(f"Published {path}")
    return path


def publish_report(report: dict, stamp: str, data_dir: str | None = None) -> Path:
    path = _root(data_dir) / "reports" / f"{stamp}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    _write(report, path)
    logger.info(f"Exported report {path}")
    return path


def _write(payload: dict, path: Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
