# moonlotto/models.py
from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

Amount = Union[str, Sequence[Mapping[str, Any]]]


def as_utc(when: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def epoch_ms(when: datetime) -> int:
    return int(as_utc(when).timestamp() * 1000)


@dataclass(frozen=True)
class PrizeShare:
    """One tier of a per-draw prize breakdown, as published with the result."""
    match: str
    amount: Amount
    winning_tickets: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PrizeShare":
        return cls(
            match=str(raw.get("match", "")),
            amount=raw.get("amount", ""),
            winning_tickets=raw.get("winningTickets", raw.get("winning_tickets")),
        )


@dataclass(frozen=True)
class DrawRecord:
    drawn_at: datetime
    numbers: Tuple[int, ...]
    bonus: Tuple[int, ...] = ()
    prize_shares: Tuple[PrizeShare, ...] = ()

    @classmethod
    def create(
        cls,
        drawn_at: datetime,
        numbers: Iterable[int],
        bonus: Iterable[int] = (),
        prize_shares: Iterable[Union[PrizeShare, Mapping[str, Any]]] = (),
    ) -> "DrawRecord":
        shares = tuple(s if isinstance(s, PrizeShare) else PrizeShare.from_dict(s) for s in prize_shares)
        return cls(
            drawn_at=as_utc(drawn_at),
            numbers=tuple(sorted(int(n) for n in numbers)),
            bonus=tuple(int(n) for n in bonus),
            prize_shares=shares,
        )


@dataclass(frozen=True)
class HistoricalProfile:
    total_draws: int
    frequency: Dict[int, float]
    gap: Dict[int, float]
    combined: Dict[int, float]
    sum_mean: float
    sum_std: float
    odd_mean: float
    delta_histogram: Dict[int, int]
    cooccurrence: Dict[Tuple[int, int], int]
    last_draw: Tuple[int, ...] = ()
    last_drawn_at: Optional[datetime] = None
    bonus_combined: Optional[Dict[int, float]] = None

    def pair_count(self, a: int, b: int) -> int:
        if a == b:
            return 0
        key = (a, b) if a < b else (b, a)
        return self.cooccurrence.get(key, 0)

    @property
    def max_pair_count(self) -> int:
        return max(self.cooccurrence.values(), default=0)


@dataclass(frozen=True)
class FullMoonModifier:
    applied: bool
    before: int
    after: int
    attempts: int


@dataclass(frozen=True)
class GeneratedCandidate:
    game_slug: str
    strategy: str
    generated_at: datetime
    seed: int
    main_numbers: Tuple[int, ...]
    bonus_numbers: Tuple[int, ...] = ()
    tithi_index: int = 0
    nakshatra_index: int = 0
    is_full_moon: bool = False
    anchor_root: int = 0
    modifier: Optional[FullMoonModifier] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def modifier_applied(self) -> bool:
        return bool(self.modifier and self.modifier.applied)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["generated_at"] = self.generated_at.isoformat()
        out["main_numbers"] = list(self.main_numbers)
        out["bonus_numbers"] = list(self.bonus_numbers)
        return out


@dataclass(frozen=True)
class PrizeRule:
    match_main: int
    match_bonus: bool
    category: str
    prize_value: Optional[float]
    prize_text: str
    match_grand: bool = False


@dataclass(frozen=True)
class EvaluationResult:
    category: Optional[str]
    prize_value: Optional[float]
    prize_text: Optional[str]
    match_main: int
    match_bonus: int
    match_grand: int

    @property
    def is_winner(self) -> bool:
        return self.category is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def numbers_text(numbers: Sequence[int]) -> str:
    return " ".join(str(int(n)) for n in numbers)


def parse_numbers(text: Any) -> List[int]:
    """Accept '1 2 3', '1,2,3', '[1, 2, 3]' or an iterable of ints."""
    if text is None:
        return []
    if isinstance(text, (list, tuple)):
        return [int(x) for x in text]
    return [int(x) for x in re.findall(r"\d+", str(text))]
