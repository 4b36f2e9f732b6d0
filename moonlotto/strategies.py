# moonlotto/strategies.py
"""
Number-selection strategies.

Every strategy is a pure function of (game, seed, calendar indices, profile)
and returns the sorted main numbers plus a metadata dict. All randomness is
drawn from random.Random(seed). Bounded construction loops that run out of
attempts fall back to a seeded-random valid set.
"""
from __future__ import annotations

import logging
import math
import random
from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import GenerationConstraintUnsatisfiable
from .games import GameDefinition
from .models import HistoricalProfile
from .numerology import anchor_root, digital_root, root_bias
from .predictor_core_base import (
    TIEBREAK_RANDOM,
    rank_by_score,
    seeded_shuffle,
    top_k_by_score,
    uniform_random,
)

logger = logging.getLogger(__name__)

Result = Tuple[List[int], Dict[str, Any]]

ROOT_MATCH_BONUS = 10.0
STATISTICAL_ROOT_BONUS = 5.0

POISSON_ATTEMPTS = 100
POISSON_SUM_TOLERANCE = 0.15
POISSON_PERFECT = 20

DELTA_WEIGHTS = [20, 18, 15, 12, 10, 8, 6, 5, 4, 3, 2, 1]   # deltas 1..12
DELTA_ATTEMPTS = 50

MARKOV_TOP = 5

HYBRID_OFFSETS = (1000, 2000, 3000, 4000)


class Strategy(str, Enum):
    TITHI = "TITHI"
    NAKSHATRA = "NAKSHATRA"
    STATISTICAL = "STATISTICAL"
    POISSON = "POISSON"
    DELTA = "DELTA"
    MARKOV = "MARKOV"
    HYBRID = "HYBRID"

    @classmethod
    def parse(cls, value) -> "Strategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown strategy {value!r}; expected one of {[s.value for s in cls]}") from None

    @property
    def repairs_full_moon(self) -> bool:
        return self in (Strategy.TITHI, Strategy.NAKSHATRA, Strategy.HYBRID)

    @property
    def anchors_on_nakshatra(self) -> bool:
        return self in (Strategy.NAKSHATRA, Strategy.MARKOV)


def strategy_anchor(strategy: Strategy, tithi_index: int, nakshatra_index: int) -> int:
    if strategy.anchors_on_nakshatra:
        return anchor_root(nakshatra_index)
    return digital_root(tithi_index)


def _fallback(game: GameDefinition, rng: random.Random, err: GenerationConstraintUnsatisfiable) -> List[int]:
    logger.warning("%s; using seeded-random set for %s", err, game.slug)
    return uniform_random(game.main_range, game.main_count, rng)


# ---- A: digital-root biased ----
def digital_root_biased(
    game: GameDefinition, seed: int, anchor: int, profile: Optional[HistoricalProfile] = None
) -> Result:
    rng = random.Random(seed)
    scores: Dict[int, float] = {}
    for n in game.main_range:
        base = profile.combined.get(n, 0.0) if profile else rng.random() * 10
        scores[n] = base + root_bias(digital_root(n), anchor, ROOT_MATCH_BONUS)
    numbers = top_k_by_score(scores, game.main_count)
    return numbers, {"method": "digital_root_bias", "anchor_root": anchor, "profiled": profile is not None}


# ---- B: frequency / gap ----
def statistical(
    game: GameDefinition, seed: int, tithi_index: int, profile: Optional[HistoricalProfile] = None
) -> Result:
    rng = random.Random(seed)
    root = digital_root(tithi_index)
    scores: Dict[int, float] = {}
    for n in game.main_range:
        if profile:
            freq = profile.frequency.get(n, 0.0)
            gap = profile.gap.get(n, 0.0) * 4   # 0..5 scaled to 0..20
        else:
            freq = rng.random() * 10
            gap = rng.randint(0, 19)
        bonus = STATISTICAL_ROOT_BONUS if digital_root(n) == root else 0.0
        scores[n] = freq * 0.6 + gap * 0.3 + bonus
    numbers = top_k_by_score(scores, game.main_count)
    return numbers, {"method": "frequency_gap", "tithi_root": root, "profiled": profile is not None}


# ---- C: sum / parity constrained ----
def poisson(game: GameDefinition, seed: int, profile: Optional[HistoricalProfile] = None) -> Result:
    rng = random.Random(seed)
    pool = game.main_range
    k = game.main_count
    if profile and profile.total_draws:
        target_sum = profile.sum_mean
        target_odd = int(round(profile.odd_mean))
    else:
        target_sum = (game.main_min + game.main_max) / 2 * k
        target_odd = k // 2
    lo = target_sum * (1 - POISSON_SUM_TOLERANCE)
    hi = target_sum * (1 + POISSON_SUM_TOLERANCE)

    best: List[int] = []
    best_score = -1
    attempts = 0
    for attempts in range(1, POISSON_ATTEMPTS + 1):
        cand = sorted(seeded_shuffle(pool, rng)[:k])
        odd = sum(1 for n in cand if n % 2)
        score = 0
        if lo <= sum(cand) <= hi:
            score += 10
        if abs(odd - target_odd) <= 1:
            score += 10
        if score > best_score:
            best, best_score = cand, score
        if score >= POISSON_PERFECT:
            break

    meta: Dict[str, Any] = {"method": "sum_parity_balance", "attempts": attempts, "score": best_score}
    try:
        if best_score <= 0:
            raise GenerationConstraintUnsatisfiable(
                f"POISSON: no subset near sum {target_sum:.1f} / odd {target_odd} in {attempts} attempts"
            )
        numbers = best
    except GenerationConstraintUnsatisfiable as err:
        numbers = _fallback(game, rng, err)
        meta["fallback"] = True
    meta["sum"] = sum(numbers)
    meta["odd_count"] = sum(1 for n in numbers if n % 2)
    return numbers, meta


# ---- D: delta construction ----
def _delta_weights(profile: Optional[HistoricalProfile]) -> List[float]:
    weights = [float(w) for w in DELTA_WEIGHTS]
    if profile:
        for i in range(len(weights)):
            weights[i] += profile.delta_histogram.get(i + 1, 0)
    return weights


def _construct_by_deltas(game: GameDefinition, rng: random.Random, weights: List[float]) -> List[int]:
    deltas = list(range(1, len(weights) + 1))
    for _ in range(DELTA_ATTEMPTS):
        first = math.floor(rng.random() * (game.main_max / 3)) + game.main_min
        if first > game.main_max:
            continue
        numbers = [first]
        while len(numbers) < game.main_count:
            nxt = numbers[-1] + rng.choices(deltas, weights=weights)[0]
            if nxt > game.main_max:
                break
            numbers.append(nxt)
        if len(numbers) == game.main_count:
            return numbers
    raise GenerationConstraintUnsatisfiable(f"DELTA: no in-range walk for {game.slug} in {DELTA_ATTEMPTS} attempts")


def delta(game: GameDefinition, seed: int, profile: Optional[HistoricalProfile] = None) -> Result:
    rng = random.Random(seed)
    meta: Dict[str, Any] = {"method": "delta_construction"}
    try:
        numbers = _construct_by_deltas(game, rng, _delta_weights(profile))
    except GenerationConstraintUnsatisfiable as err:
        numbers = _fallback(game, rng, err)
        meta["fallback"] = True
    meta["deltas"] = [b - a for a, b in zip(numbers, numbers[1:])]
    return numbers, meta


# ---- E: proximity walk ----
def markov(
    game: GameDefinition, seed: int, nakshatra_index: int, profile: Optional[HistoricalProfile] = None
) -> Result:
    rng = random.Random(seed)
    start = (int(nakshatra_index) * 2) % game.range_size + game.main_min
    selected = [start]
    current = start
    max_pair = profile.max_pair_count if profile else 0

    while len(selected) < game.main_count:
        cands = []
        for n in game.main_range:
            if n in selected:
                continue
            score = 10.0 / (abs(n - current) + 1)
            if digital_root(n) == digital_root(current):
                score += 3
            score += rng.random() * 2
            if max_pair:
                score += 2.0 * profile.pair_count(current, n) / max_pair
            cands.append((n, score))
        cands.sort(key=lambda c: -c[1])
        current = cands[rng.randrange(min(MARKOV_TOP, len(cands)))][0]
        selected.append(current)

    return sorted(selected), {"method": "markov_walk", "start": start, "path": selected}


# ---- F: consensus ----
def hybrid(
    game: GameDefinition,
    seed: int,
    tithi_index: int,
    nakshatra_index: int,
    profile: Optional[HistoricalProfile] = None,
) -> Result:
    a, c, d, e = (seed + off for off in HYBRID_OFFSETS)
    runs = {
        Strategy.TITHI.value: digital_root_biased(game, a, digital_root(tithi_index), profile)[0],
        Strategy.POISSON.value: poisson(game, c, profile)[0],
        Strategy.DELTA.value: delta(game, d, profile)[0],
        Strategy.MARKOV.value: markov(game, e, nakshatra_index, profile)[0],
    }
    votes = Counter(n for nums in runs.values() for n in nums)
    ranked = rank_by_score(dict(votes), tiebreak=TIEBREAK_RANDOM, rng=random.Random(seed))
    numbers = sorted(n for n, _ in ranked[: game.main_count])
    return numbers, {
        "method": "consensus_filter",
        "votes": {n: int(v) for n, v in ranked[:10]},
        "sources": runs,
    }


def run_strategy(
    strategy: Strategy,
    game: GameDefinition,
    seed: int,
    tithi_index: int,
    nakshatra_index: int,
    profile: Optional[HistoricalProfile] = None,
) -> Result:
    strategy = Strategy.parse(strategy)
    if strategy in (Strategy.TITHI, Strategy.NAKSHATRA):
        anchor = strategy_anchor(strategy, tithi_index, nakshatra_index)
        return digital_root_biased(game, seed, anchor, profile)
    if strategy is Strategy.STATISTICAL:
        return statistical(game, seed, tithi_index, profile)
    if strategy is Strategy.POISSON:
        return poisson(game, seed, profile)
    if strategy is Strategy.DELTA:
        return delta(game, seed, profile)
    if strategy is Strategy.MARKOV:
        return markov(game, seed, nakshatra_index, profile)
    return hybrid(game, seed, tithi_index, nakshatra_index, profile)
