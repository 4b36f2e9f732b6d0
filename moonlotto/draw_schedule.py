from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from .games import GameDefinition
from .models import GeneratedCandidate, as_utc

DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]   # datetime.weekday() order
DEFAULT_TZ = "America/Toronto"

FALLBACK_REASON = "No eligible candidates - using latest ineligible"

TzLike = Union[str, ZoneInfo, None]


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: str
    next_draw_at: datetime
    lead_minutes: float


@dataclass(frozen=True)
class ScheduledCandidate:
    candidate: GeneratedCandidate
    intended_draw_at: datetime
    eligible: bool
    reason: str = ""


@dataclass(frozen=True)
class Selection:
    candidate: GeneratedCandidate
    fallback_reason: Optional[str] = None


def _zone(tz: TzLike) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or DEFAULT_TZ)


def _draw_clock(game: GameDefinition) -> time:
    hh, mm = (int(x) for x in game.draw_time.split(":", 1))
    return time(hh, mm)


def next_draw_at(game: GameDefinition, when: datetime, tz: TzLike = None) -> datetime:
    """Next draw strictly after `when`, as UTC. Games without draw days draw daily."""
    zone = _zone(tz)
    when = as_utc(when)
    local = when.astimezone(zone)
    days = set(game.draw_days) or set(DAY_NAMES)
    at = _draw_clock(game)
    for d in range(0, 8):
        day = local.date() + timedelta(days=d)
        if DAY_NAMES[day.weekday()] not in days:
            continue
        cand = datetime.combine(day, at, tzinfo=zone)
        if cand > local:
            return as_utc(cand)
    raise ValueError(f"{game.slug}: no draw day in {sorted(days)}")


def check_eligibility(game: GameDefinition, when: datetime, tz: TzLike = None) -> Eligibility:
    when = as_utc(when)
    nxt = next_draw_at(game, when, tz)
    lead = (nxt - when).total_seconds() / 60.0
    eligible = lead >= game.min_lead_minutes
    if eligible:
        reason = f"{int(lead)} minutes before draw"
    else:
        reason = f"Only {int(lead)} minutes lead time (need {game.min_lead_minutes})"
    return Eligibility(eligible, reason, nxt, lead)


def schedule(candidate: GeneratedCandidate, game: GameDefinition, tz: TzLike = None) -> ScheduledCandidate:
    elig = check_eligibility(game, candidate.generated_at, tz)
    return ScheduledCandidate(candidate, elig.next_draw_at, elig.eligible, elig.reason)


def select_candidate(
    candidates: Iterable[ScheduledCandidate],
    draw_at: datetime,
    strategy: str,
) -> Optional[Selection]:
    """Latest eligible candidate for the draw, else the latest ineligible one."""
    draw_at = as_utc(draw_at)
    strategy = str(getattr(strategy, "value", strategy)).upper()
    pool: List[ScheduledCandidate] = [
        c for c in candidates
        if as_utc(c.intended_draw_at) == draw_at and c.candidate.strategy == strategy
    ]
    if not pool:
        return None
    eligible = [c for c in pool if c.eligible]
    if eligible:
        return Selection(max(eligible, key=lambda c: c.candidate.generated_at).candidate)
    return Selection(max(pool, key=lambda c: c.candidate.generated_at).candidate, FALLBACK_REASON)
