# Historical profile: frequency/gap scores plus shape statistics over a draw window
from __future__ import annotations

import logging
from collections import Counter
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .games import GameDefinition
from .models import DrawRecord, HistoricalProfile

logger = logging.getLogger(__name__)

FREQUENCY_WEIGHT = 10.0
GAP_WEIGHT = 5.0


# ---- Windowing ----
def _prep_window(draws: Iterable[DrawRecord], window: int) -> List[DrawRecord]:
    newest_first = sorted(draws, key=lambda d: d.drawn_at, reverse=True)
    return newest_first[: max(int(window), 1)]


def _scores(columns: Sequence[Sequence[int]], pool: Sequence[int]) -> Tuple[Dict[int, float], Dict[int, float]]:
    """
    Frequency and gap scores for every number in pool.
    columns is newest first; a number's gap index is the position of the
    newest draw that contains it.
    """
    total = len(columns)
    max_gap = max(1, total - 1)
    valid = set(pool)

    flat = [n for nums in columns for n in nums if n in valid]
    vc = pd.Series(flat, dtype="int64").value_counts()
    counts = {int(k): int(v) for k, v in vc.items()}

    last_seen: Dict[int, int] = {}
    for idx, nums in enumerate(columns):
        for n in nums:
            if n in valid and n not in last_seen:
                last_seen[n] = idx

    frequency: Dict[int, float] = {}
    gap: Dict[int, float] = {}
    for n in pool:
        frequency[n] = counts.get(n, 0) / total * FREQUENCY_WEIGHT if total else 0.0
        if n in last_seen:
            gap[n] = min(last_seen[n], max_gap) / max_gap * GAP_WEIGHT
        else:
            gap[n] = GAP_WEIGHT
    return frequency, gap


def build_profile(
    draws: Iterable[DrawRecord],
    game: GameDefinition,
    window: Optional[int] = None,
) -> HistoricalProfile:
    window = game.history_window if window is None else int(window)
    dfx = _prep_window(draws, window)
    pool = game.main_range
    valid = set(pool)

    mains = [sorted({n for n in d.numbers if n in valid}) for d in dfx]
    frequency, gap = _scores(mains, pool)
    combined = {n: frequency[n] + gap[n] for n in pool}

    sums = np.array([sum(nums) for nums in mains], dtype=float)
    odds = np.array([sum(1 for n in nums if n % 2) for nums in mains], dtype=float)
    sum_mean = float(sums.mean()) if sums.size else 0.0
    sum_std = float(sums.std()) if sums.size else 0.0   # population
    odd_mean = float(odds.mean()) if odds.size else 0.0

    deltas: Counter = Counter()
    pairs: Counter = Counter()
    for nums in mains:
        deltas.update(b - a for a, b in zip(nums, nums[1:]) if b > a)
        pairs.update(combinations(nums, 2))

    bonus_combined = None
    if game.bonus_count:
        bpool = game.bonus_range
        bvalid = set(bpool)
        bonus_cols = [[n for n in d.bonus if n in bvalid] for d in dfx]
        bfreq, bgap = _scores(bonus_cols, bpool)
        bonus_combined = {n: bfreq[n] + bgap[n] for n in bpool}

    newest = dfx[0] if dfx else None
    logger.debug("Profile for %s over %d draws (window %d)", game.slug, len(dfx), window)
    return HistoricalProfile(
        total_draws=len(dfx),
        frequency=frequency,
        gap=gap,
        combined=combined,
        sum_mean=sum_mean,
        sum_std=sum_std,
        odd_mean=odd_mean,
        delta_histogram=dict(sorted(deltas.items())),
        cooccurrence=dict(pairs),
        last_draw=tuple(newest.numbers) if newest else (),
        last_drawn_at=newest.drawn_at if newest else None,
        bonus_combined=bonus_combined,
    )


def load_profile(repository, game: GameDefinition, window: Optional[int] = None) -> Optional[HistoricalProfile]:
    """Profile from the newest draws in a records repository, or None when it has none."""
    window = game.history_window if window is None else int(window)
    draws = list(repository.recent(game.slug, window))
    if not draws:
        logger.info("No draw history for %s; strategies will use seeded fills", game.slug)
        return None
    return build_profile(draws, game, window)


def hot_cold(profile: HistoricalProfile, topn: int = 10) -> Tuple[List[int], List[int]]:
    """Most and least frequent numbers in the profile window."""
    ranked = sorted(profile.frequency.items(), key=lambda kv: (-kv[1], kv[0]))
    hot = [n for n, _ in ranked[: max(0, int(topn))]]
    cold = [n for n, _ in sorted(profile.frequency.items(), key=lambda kv: (kv[1], kv[0]))[: max(0, int(topn))]]
    return hot, cold
