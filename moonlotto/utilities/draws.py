# moonlotto/utilities/draws.py - local CSV draw history (no network providers)
from __future__ import annotations

import csv
import json
import logging
import os
import re
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

import pandas as pd

from ..models import DrawRecord, PrizeShare, as_utc

logger = logging.getLogger(__name__)

_MAIN_COL = re.compile(r"n(\d+)")
_BONUS_COL = re.compile(r"s(\d+)")


class DrawRepository(Protocol):
    def recent(self, game_slug: str, limit: int) -> List[DrawRecord]: ...

    def on(self, game_slug: str, when: Union[date, datetime]) -> Optional[DrawRecord]: ...


def _read_csv(csv_path: Path) -> List[Dict[str, str]]:
    try:
        return pd.read_csv(csv_path, dtype=str).fillna("").to_dict(orient="records")
    except FileNotFoundError:
        return []
    except pd.errors.EmptyDataError:
        return []


def _write_csv(csv_path: Path, rows: List[Dict[str, str]], fieldnames: List[str]) -> None:
    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for r in rows:
            w.writerow({k: r.get(k, "") for k in fieldnames})


def _cols(row: Dict[str, str], pattern: re.Pattern) -> List[int]:
    keyed = []
    for k, v in row.items():
        m = pattern.fullmatch(str(k).strip().lower())
        if m and str(v).strip():
            keyed.append((int(m.group(1)), int(float(v))))
    return [v for _, v in sorted(keyed)]


def _parse_shares(text: str) -> List[PrizeShare]:
    if not text or not text.strip():
        return []
    try:
        raw = json.loads(text)
    except ValueError as e:
        logger.warning("Ignoring malformed prize_shares JSON: %s", e)
        return []
    return [PrizeShare.from_dict(r) for r in raw if isinstance(r, dict)]


def row_to_draw(row: Dict[str, str]) -> Optional[DrawRecord]:
    stamp = pd.to_datetime(row.get("date", ""), utc=True, errors="coerce", format="mixed")
    if pd.isna(stamp):
        return None
    try:
        numbers = _cols(row, _MAIN_COL)
        bonus = _cols(row, _BONUS_COL)
    except (ValueError, OverflowError) as e:
        logger.debug("Unreadable number cell in row dated %s: %s", row.get("date"), e)
        return None
    if not numbers:
        return None
    return DrawRecord.create(
        drawn_at=stamp.to_pydatetime(),
        numbers=numbers,
        bonus=bonus,
        prize_shares=_parse_shares(row.get("prize_shares", "")),
    )


def draw_to_row(draw: DrawRecord) -> Dict[str, str]:
    rec = {"date": draw.drawn_at.isoformat()}
    for i, n in enumerate(draw.numbers):
        rec[f"n{i + 1}"] = str(n)
    for i, n in enumerate(draw.bonus):
        rec[f"s{i + 1}"] = str(n)
    if draw.prize_shares:
        rec["prize_shares"] = json.dumps(
            [{"match": s.match, "amount": s.amount, "winningTickets": s.winning_tickets} for s in draw.prize_shares],
            ensure_ascii=False,
        )
    return rec


class CsvDrawRepository:
    """One CSV per game at <data_dir>/draws_<slug>.csv with columns date, n1.., s1.., prize_shares."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def path_for(self, game_slug: str) -> Path:
        return self.data_dir / f"draws_{game_slug}.csv"

    def load(self, game_slug: str) -> List[DrawRecord]:
        """Every readable draw, newest first."""
        path = self.path_for(game_slug)
        out: List[DrawRecord] = []
        skipped = 0
        for row in _read_csv(path):
            draw = row_to_draw(row)
            if draw is None:
                skipped += 1
                continue
            out.append(draw)
        if skipped:
            logger.warning("Skipped %d unreadable rows in %s", skipped, path)
        out.sort(key=lambda d: d.drawn_at, reverse=True)
        return out

    def recent(self, game_slug: str, limit: int) -> List[DrawRecord]:
        return self.load(game_slug)[: max(int(limit), 0)]

    def on(self, game_slug: str, when: Union[date, datetime]) -> Optional[DrawRecord]:
        """The draw at exactly `when` (a datetime), or on the UTC calendar day `when` (a date)."""
        if isinstance(when, datetime):
            target = as_utc(when)
            return next((d for d in self.load(game_slug) if d.drawn_at == target), None)
        return next((d for d in self.load(game_slug) if d.drawn_at.date() == when), None)

    def save(self, game_slug: str, draws: Iterable[DrawRecord]) -> Path:
        draws = sorted(draws, key=lambda d: d.drawn_at)
        rows = [draw_to_row(d) for d in draws]
        width = max((len(d.numbers) for d in draws), default=0)
        extra = max((len(d.bonus) for d in draws), default=0)
        fields = ["date"] + [f"n{i}" for i in range(1, width + 1)] + [f"s{i}" for i in range(1, extra + 1)]
        if any("prize_shares" in r for r in rows):
            fields.append("prize_shares")
        path = self.path_for(game_slug)
        _write_csv(path, rows, fields)
        return path
