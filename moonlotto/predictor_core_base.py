from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

TIEBREAK_NUMBER = "number"
TIEBREAK_RANDOM = "random"


def rank_by_score(
    scores: Dict[int, float],
    tiebreak: str = TIEBREAK_NUMBER,
    rng: Optional[random.Random] = None,
) -> List[Tuple[int, float]]:
    """Order (number, score) pairs by score descending.

    Ties go to the lower number, or with tiebreak="random" to a seeded draw
    taken once per number in ascending number order.
    """
    if tiebreak == TIEBREAK_NUMBER:
        return sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))
    if tiebreak != TIEBREAK_RANDOM:
        raise ValueError(f"unknown tiebreak {tiebreak!r}")
    if rng is None:
        raise ValueError("random tiebreak needs a seeded rng")
    draws = {n: rng.random() for n in sorted(scores)}
    return sorted(scores.items(), key=lambda kv: (-kv[1], -draws[kv[0]]))


def top_k_by_score(
    scores: Dict[int, float],
    k: int,
    tiebreak: str = TIEBREAK_NUMBER,
    rng: Optional[random.Random] = None,
) -> List[int]:
    items = rank_by_score(scores, tiebreak=tiebreak, rng=rng)
    return sorted(n for n, _ in items[:k])


def seeded_shuffle(pool: Sequence[int], rng: random.Random) -> List[int]:
    out = list(pool)
    rng.shuffle(out)
    return out


def uniform_random(pool: Sequence[int], k: int, rng: random.Random) -> List[int]:
    if k >= len(pool):
        return sorted(pool)
    return sorted(seeded_shuffle(pool, rng)[:k])
