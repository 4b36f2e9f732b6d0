# moonlotto/logger.py
from __future__ import annotations
import csv
import logging
import sys
from pathlib import Path
from typing import Dict, List, Union

Cell = Union[str, int, float, None]

LOG_FORMAT = "[MoonLotto] %(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    root = logging.getLogger("moonlotto")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)
    if not any(getattr(h, "_moonlotto", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
        handler._moonlotto = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def ensure_csv(path: Union[str, Path], headers: List[str]) -> None:
    p = Path(path)
    if not p.exists() or p.stat().st_size == 0:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(headers)


def append_row(path: Union[str, Path], row: Dict[str, Cell]) -> None:
    p = Path(path)
    # header order follows the row keys when the file is new
    ensure_csv(p, list(row.keys()))
    with p.open("a", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(row.keys()))
        w.writerow(row)
