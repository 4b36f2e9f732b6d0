# moonlotto/backtest.py
"""
Rolling-window backtest.

For every draw after the first `window` draws, a profile is built from the
draws immediately before it, each strategy generates a ticket seeded with
the draw's epoch milliseconds, and the main-number matches are tallied.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Union

import pandas as pd

from .astrology import LunarClock
from .games import GameDefinition
from .generator import generate_candidate
from .hot_cold import build_profile
from .models import DrawRecord, epoch_ms
from .strategies import Strategy

logger = logging.getLogger(__name__)

BACKTEST_COLUMNS = ["strategy", "draws", "avg_matches", "max_matches", "three_plus_rate"]
MIN_WINDOW = 10


def backtest_window(game: GameDefinition, n_draws: int) -> int:
    return min(game.history_window, max(MIN_WINDOW, n_draws // 2))


def backtest_game(
    draws: Iterable[DrawRecord],
    game: GameDefinition,
    strategies: Sequence[Union[str, Strategy]],
    clock: LunarClock,
    window: Optional[int] = None,
) -> pd.DataFrame:
    ordered = sorted(draws, key=lambda d: d.drawn_at)
    size = backtest_window(game, len(ordered)) if window is None else int(window)
    parsed = [Strategy.parse(s) for s in strategies]
    if len(ordered) <= size:
        logger.info("%s: not enough historical draws (%d) for a window of %d", game.slug, len(ordered), size)
        return pd.DataFrame(columns=BACKTEST_COLUMNS)

    rows: List[dict] = []
    for i in range(size, len(ordered)):
        actual = ordered[i]
        profile = build_profile(ordered[i - size:i], game, size)
        ctx = clock.context(actual.drawn_at)
        drawn = set(actual.numbers)
        for strategy in parsed:
            cand = generate_candidate(
                game, strategy, actual.drawn_at, epoch_ms(actual.drawn_at), profile, context=ctx
            )
            rows.append({"strategy": strategy.value, "matches": len(drawn & set(cand.main_numbers))})

    df = pd.DataFrame(rows)
    out = (
        df.groupby("strategy", sort=False)["matches"]
        .agg(draws="size", avg_matches="mean", max_matches="max",
             three_plus_rate=lambda s: float((s >= 3).mean()))
        .reset_index()
    )
    out["avg_matches"] = out["avg_matches"].round(3)
    logger.info("%s backtest: %d draws x %d strategies (window %d)", game.slug, len(ordered) - size, len(parsed), size)
    return out[BACKTEST_COLUMNS]
