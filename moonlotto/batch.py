# moonlotto/batch.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Union

from .astrology import LunarClock, LunarContext
from .games import GameDefinition, get_game
from .generator import generate_candidate
from .models import GeneratedCandidate, HistoricalProfile, as_utc, epoch_ms
from .strategies import Strategy

logger = logging.getLogger(__name__)

STRATEGY_SEED_STRIDE = 10000


@dataclass(frozen=True)
class BatchJob:
    game: GameDefinition
    strategy: Strategy
    line: int
    seed: int


def line_seed(base_seed: int, strategy_position: int, line: int) -> int:
    return int(base_seed) + STRATEGY_SEED_STRIDE * int(strategy_position) + int(line)


def plan_jobs(
    games: Sequence[Union[str, GameDefinition]],
    strategies: Sequence[Union[str, Strategy]],
    base_seed: int,
    lines_per_strategy: int = 1,
) -> List[BatchJob]:
    jobs: List[BatchJob] = []
    parsed = [Strategy.parse(s) for s in strategies]
    for g in games:
        game = g if isinstance(g, GameDefinition) else get_game(g)
        for pos, strategy in enumerate(parsed):
            for line in range(1, int(lines_per_strategy) + 1):
                jobs.append(BatchJob(game, strategy, line, line_seed(base_seed, pos, line)))
    return jobs


def generate_batch(
    games: Sequence[Union[str, GameDefinition]],
    strategies: Sequence[Union[str, Strategy]],
    when: datetime,
    clock: Optional[LunarClock] = None,
    lines_per_strategy: int = 1,
    profiles: Optional[Mapping[str, Optional[HistoricalProfile]]] = None,
    base_seed: Optional[int] = None,
    max_workers: int = 1,
    context: Optional[LunarContext] = None,
) -> List[GeneratedCandidate]:
    """
    Every (game, strategy, line) ticket for one timestamp, in job order.
    The lunar context is computed once and shared by all jobs.
    """
    when = as_utc(when)
    if context is None:
        if clock is None:
            raise ValueError("generate_batch needs a clock or a precomputed context")
        context = clock.context(when)
    base = epoch_ms(when) if base_seed is None else int(base_seed)
    profiles = profiles or {}
    jobs = plan_jobs(games, strategies, base, lines_per_strategy)

    def run(job: BatchJob) -> GeneratedCandidate:
        return generate_candidate(
            job.game, job.strategy, when, job.seed, profiles.get(job.game.slug),
            context=context,
        )

    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            out = list(executor.map(run, jobs))
    else:
        out = [run(job) for job in jobs]

    logger.info(
        "Generated %d candidates (%d games x %d strategies x %d lines) at %s",
        len(out), len(games), len(strategies), lines_per_strategy, when.isoformat(),
    )
    return out
