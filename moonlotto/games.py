# moonlotto/games.py
# Game catalog. One frozen GameDefinition per supported game, loaded once.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import InvalidGameConfig


@dataclass(frozen=True)
class GameDefinition:
    slug: str
    name: str
    main_count: int
    main_min: int
    main_max: int
    bonus_count: int = 0
    bonus_min: Optional[int] = None
    bonus_max: Optional[int] = None
    bonus_same_drum: bool = False
    history_window: int = 120
    cost: Optional[float] = None
    draw_days: Tuple[str, ...] = field(default_factory=tuple)
    draw_time: str = "22:30"
    min_lead_minutes: int = 30

    def __post_init__(self) -> None:
        if self.main_min > self.main_max:
            raise InvalidGameConfig(f"{self.slug}: main range [{self.main_min}, {self.main_max}] is empty")
        if self.main_count <= 0 or self.main_count > self.range_size:
            raise InvalidGameConfig(
                f"{self.slug}: cannot pick {self.main_count} numbers from a range of {self.range_size}"
            )
        if self.bonus_count:
            if self.bonus_min is None or self.bonus_max is None or self.bonus_min > self.bonus_max:
                raise InvalidGameConfig(f"{self.slug}: bonus_count set without a valid bonus range")
            pool = self.bonus_max - self.bonus_min + 1
            if self.bonus_same_drum:
                # bonus picks must avoid the main picks, so the pool has to cover both
                pool -= self.main_count
            if self.bonus_count > pool:
                raise InvalidGameConfig(f"{self.slug}: bonus pool too small for {self.bonus_count} picks")
        if self.history_window <= 0:
            raise InvalidGameConfig(f"{self.slug}: history_window must be positive")

    @property
    def range_size(self) -> int:
        return self.main_max - self.main_min + 1

    @property
    def main_range(self) -> List[int]:
        return list(range(self.main_min, self.main_max + 1))

    @property
    def bonus_range(self) -> List[int]:
        if not self.bonus_count:
            return []
        return list(range(int(self.bonus_min), int(self.bonus_max) + 1))

    @property
    def uses_grand_number(self) -> bool:
        """A player-picked bonus from its own drum (the annuity-style game)."""
        return self.bonus_count > 0 and not self.bonus_same_drum


DEFAULT_GAMES: Dict[str, GameDefinition] = {
    g.slug: g
    for g in (
        GameDefinition(
            slug="daily-grand", name="Daily Grand",
            main_count=5, main_min=1, main_max=49,
            bonus_count=1, bonus_min=1, bonus_max=7, bonus_same_drum=False,
            history_window=108, cost=3.0, draw_days=("mon", "thu"), draw_time="22:30",
        ),
        GameDefinition(
            slug="lotto-max", name="Lotto Max",
            main_count=7, main_min=1, main_max=50,
            history_window=108, cost=5.0, draw_days=("tue", "fri"), draw_time="22:30",
        ),
        GameDefinition(
            slug="lotto-649", name="Lotto 6/49",
            main_count=6, main_min=1, main_max=49,
            history_window=108, cost=3.0, draw_days=("wed", "sat"), draw_time="22:30",
        ),
        GameDefinition(
            slug="lottario", name="Lottario",
            main_count=6, main_min=1, main_max=45,
            history_window=52, cost=1.0, draw_days=("sat",), draw_time="22:30",
        ),
    )
}


def get_game(slug: str, games: Optional[Mapping[str, GameDefinition]] = None) -> GameDefinition:
    key = (slug or "").strip().lower()
    table = DEFAULT_GAMES if games is None else games
    try:
        return table[key]
    except KeyError:
        raise InvalidGameConfig(f"Unknown game: {slug!r}") from None


def game_slugs() -> List[str]:
    return list(DEFAULT_GAMES.keys())
