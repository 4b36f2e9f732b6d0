# moonlotto/utilities/performance_tracker.py
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

from ..logger import append_row
from ..models import DrawRecord, EvaluationResult, GeneratedCandidate, as_utc, numbers_text

SUMMARY_COLUMNS = ["strategy", "rows", "avg_main", "max_main", "three_plus_rate", "winners", "total_prize"]


def log_candidate(
    path: Union[str, Path],
    candidate: GeneratedCandidate,
    intended_draw_at: Optional[datetime] = None,
    eligible: Optional[bool] = None,
) -> None:
    """
    Append one generated ticket.
    intended_draw_at / eligible come from the draw schedule when the caller has them.
    """
    row: Dict[str, Any] = {
        "generated_at": candidate.generated_at.isoformat(),
        "game": candidate.game_slug,
        "strategy": candidate.strategy,
        "seed": candidate.seed,
        "main": numbers_text(candidate.main_numbers),
        "bonus": numbers_text(candidate.bonus_numbers),
        "tithi": candidate.tithi_index,
        "nakshatra": candidate.nakshatra_index,
        "full_moon": int(candidate.is_full_moon),
        "modifier_applied": int(candidate.modifier_applied),
        "intended_draw_at": as_utc(intended_draw_at).isoformat() if intended_draw_at else "",
        "eligible": "" if eligible is None else int(bool(eligible)),
        "metadata_json": json.dumps(candidate.metadata, default=str, ensure_ascii=False),
    }
    append_row(path, row)


def log_evaluation(
    path: Union[str, Path],
    candidate: GeneratedCandidate,
    official: DrawRecord,
    result: EvaluationResult,
) -> None:
    row: Dict[str, Any] = {
        "draw_at": official.drawn_at.isoformat(),
        "game": candidate.game_slug,
        "strategy": candidate.strategy,
        "seed": candidate.seed,
        "main": numbers_text(candidate.main_numbers),
        "bonus": numbers_text(candidate.bonus_numbers),
        "winning_main": numbers_text(official.numbers),
        "winning_bonus": numbers_text(official.bonus),
        "match_main": result.match_main,
        "match_bonus": result.match_bonus,
        "match_grand": result.match_grand,
        "category": result.category or "",
        # blank = annuity prize with no comparable value
        "prize_value": "" if result.prize_value is None else result.prize_value,
        "prize_text": result.prize_text or "",
    }
    append_row(path, row)


def summarize_evaluations(path: Union[str, Path]) -> pd.DataFrame:
    """Per-strategy accuracy snapshot of an evaluations ledger."""
    p = Path(path)
    if not p.exists():
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    df = pd.read_csv(p, keep_default_na=False)
    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df["match_main"] = pd.to_numeric(df["match_main"], errors="coerce").fillna(0).astype(int)
    df["prize_num"] = pd.to_numeric(df["prize_value"], errors="coerce")
    df["winner"] = df["category"].astype(str).str.len() > 0
    out = (
        df.groupby("strategy", sort=True)
        .agg(
            rows=("match_main", "size"),
            avg_main=("match_main", "mean"),
            max_main=("match_main", "max"),
            three_plus_rate=("match_main", lambda s: float((s >= 3).mean())),
            winners=("winner", "sum"),
            total_prize=("prize_num", "sum"),
        )
        .reset_index()
    )
    out["avg_main"] = out["avg_main"].round(3)
    out["winners"] = out["winners"].astype(int)
    return out[SUMMARY_COLUMNS]
