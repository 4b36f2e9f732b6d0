# moonlotto/generator.py
from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from .astrology import LunarClock, LunarContext
from .games import GameDefinition
from .models import FullMoonModifier, GeneratedCandidate, HistoricalProfile, as_utc
from .numerology import digital_root, root_bias
from .predictor_core_base import top_k_by_score
from .strategies import ROOT_MATCH_BONUS, Strategy, run_strategy, strategy_anchor

logger = logging.getLogger(__name__)

REPAIR_ATTEMPTS = 10
BONUS_SEED_OFFSET = 9999


def full_moon_repair(numbers: Sequence[int], game: GameDefinition) -> Tuple[List[int], FullMoonModifier]:
    """
    Nudge the largest number's ones digit forward, up to REPAIR_ATTEMPTS
    times, until it lands on an unused in-range value. The set is left
    unchanged when no attempt is valid.
    """
    numbers = sorted(numbers)
    before = numbers[-1]
    taken = set(numbers)
    value = before
    for attempt in range(1, REPAIR_ATTEMPTS + 1):
        value = value - value % 10 + (value % 10 + 1) % 10
        if game.main_min <= value <= game.main_max and value not in taken:
            numbers[-1] = value
            return sorted(numbers), FullMoonModifier(True, before, value, attempt)
    return numbers, FullMoonModifier(False, before, before, REPAIR_ATTEMPTS)


def generate_bonus(
    game: GameDefinition,
    main_numbers: Sequence[int],
    anchor: int,
    seed: int,
    profile: Optional[HistoricalProfile] = None,
) -> List[int]:
    if not game.bonus_count:
        return []
    rng = random.Random(seed + BONUS_SEED_OFFSET)
    pool = game.bonus_range
    if game.bonus_same_drum:
        chosen = set(main_numbers)
        pool = [n for n in pool if n not in chosen]
    scored = profile.bonus_combined if profile and profile.bonus_combined else None
    scores: Dict[int, float] = {}
    for n in pool:
        base = scored.get(n, 0.0) if scored else rng.random() * 10
        scores[n] = base + root_bias(digital_root(n), anchor, ROOT_MATCH_BONUS)
    return top_k_by_score(scores, game.bonus_count)


def generate_candidate(
    game: GameDefinition,
    strategy,
    when: datetime,
    seed: int,
    profile: Optional[HistoricalProfile] = None,
    *,
    clock: Optional[LunarClock] = None,
    context: Optional[LunarContext] = None,
) -> GeneratedCandidate:
    if (clock is None) == (context is None):
        raise ValueError("pass exactly one of clock= or context=")
    strategy = Strategy.parse(strategy)
    when = as_utc(when)
    ctx = context if context is not None else clock.context(when)
    seed = int(seed)

    tithi = ctx.tithi_index
    nak = ctx.nakshatra_index
    numbers, metadata = run_strategy(strategy, game, seed, tithi, nak, profile)

    modifier = None
    if strategy.repairs_full_moon and ctx.is_full_moon:
        numbers, modifier = full_moon_repair(numbers, game)
        if not modifier.applied:
            logger.info("Full-moon repair found no free value for %s (kept %d)", game.slug, modifier.before)

    anchor = strategy_anchor(strategy, tithi, nak)
    bonus = generate_bonus(game, numbers, anchor, seed, profile)

    return GeneratedCandidate(
        game_slug=game.slug,
        strategy=strategy.value,
        generated_at=when,
        seed=seed,
        main_numbers=tuple(sorted(numbers)),
        bonus_numbers=tuple(bonus),
        tithi_index=tithi,
        nakshatra_index=nak,
        is_full_moon=ctx.is_full_moon,
        anchor_root=anchor,
        modifier=modifier,
        metadata=metadata,
    )


def validate_candidate(candidate: GeneratedCandidate, game: GameDefinition) -> List[str]:
    """Human-readable rule violations; empty when the ticket is playable."""
    problems: List[str] = []
    mains = list(candidate.main_numbers)
    if len(mains) != game.main_count:
        problems.append(f"expected {game.main_count} main numbers, got {len(mains)}")
    if len(set(mains)) != len(mains):
        problems.append("duplicate main numbers")
    if mains != sorted(mains):
        problems.append("main numbers not ascending")
    out = [n for n in mains if not game.main_min <= n <= game.main_max]
    if out:
        problems.append(f"main numbers out of range: {out}")
    bonus = list(candidate.bonus_numbers)
    if len(bonus) != game.bonus_count:
        problems.append(f"expected {game.bonus_count} bonus numbers, got {len(bonus)}")
    if bonus:
        bad = [n for n in bonus if n not in game.bonus_range]
        if bad:
            problems.append(f"bonus numbers out of range: {bad}")
        if game.bonus_same_drum and set(bonus) & set(mains):
            problems.append("bonus repeats a main number")
    return problems
