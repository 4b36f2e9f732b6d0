# moonlotto/astrology.py
"""
Lunar calendar on top of an ephemeris backend.

The clock turns two continuous quantities into discrete indices:
  tithi      the Moon-Sun phase angle in 30 bands of 12 degrees
  nakshatra  the sidereal lunar longitude in 27 bands of 13.33 degrees

and finds the next instant either index changes, plus the next full moon.
All datetimes are tz-aware; naive input is read as UTC.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date as dt_date, datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .config import Settings, load_settings
from .errors import BoundaryCrossingNotFound
from .models import as_utc
from .utilities.ephemeris import Ephemeris, make_ephemeris

logger = logging.getLogger(__name__)

TITHI_COUNT = 30
TITHI_WIDTH = 360.0 / TITHI_COUNT
NAKSHATRA_COUNT = 27
NAKSHATRA_WIDTH = 360.0 / NAKSHATRA_COUNT

AYANAMSA_AT_J2000 = 23.85               # degrees at 2000-01-01T00:00Z
AYANAMSA_RATE = 50.29 / 3600.0          # degrees per year
AYANAMSA_EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)
DAYS_PER_YEAR = 365.25

FULL_MOON_DEGREES = 180.0
FULL_MOON_LOOKBACK = timedelta(days=15)


@dataclass(frozen=True)
class TithiReading:
    index: int          # 1..30
    fraction: float     # position inside the band, [0, 1)
    phase_angle: float


@dataclass(frozen=True)
class NakshatraReading:
    index: int          # 1..27
    fraction: float
    longitude: float    # sidereal


@dataclass(frozen=True)
class LunarContext:
    when: datetime
    tithi: TithiReading
    nakshatra: NakshatraReading
    is_full_moon: bool

    @property
    def tithi_index(self) -> int:
        return self.tithi.index

    @property
    def nakshatra_index(self) -> int:
        return self.nakshatra.index


def _band(value: float, width: float, count: int):
    value = float(value) % 360.0
    idx = int(math.floor(value / width))
    # float noise just under 360 must not spill into band count+1
    idx = min(idx, count - 1)
    return idx + 1, (value - idx * width) / width


def ayanamsa(when: datetime) -> float:
    years = (as_utc(when) - AYANAMSA_EPOCH).total_seconds() / (DAYS_PER_YEAR * 86400.0)
    return AYANAMSA_AT_J2000 + AYANAMSA_RATE * years


class LunarClock:
    def __init__(self, ephemeris: Ephemeris, settings: Optional[Settings] = None):
        self.ephemeris = ephemeris
        self.settings = settings or Settings()
        self.tz = ZoneInfo(self.settings.reference_timezone)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LunarClock":
        settings = settings or load_settings()
        return cls(make_ephemeris(settings), settings)

    # ---- indices -------------------------------------------------------

    def phase_index(self, when: datetime) -> TithiReading:
        angle = self.ephemeris.phase_angle(as_utc(when)) % 360.0
        idx, frac = _band(angle, TITHI_WIDTH, TITHI_COUNT)
        return TithiReading(idx, frac, angle)

    def sidereal_index(self, when: datetime) -> NakshatraReading:
        when = as_utc(when)
        sidereal = (self.ephemeris.ecliptic_longitude(when) - ayanamsa(when)) % 360.0
        idx, frac = _band(sidereal, NAKSHATRA_WIDTH, NAKSHATRA_COUNT)
        return NakshatraReading(idx, frac, sidereal)

    # ---- boundary search -----------------------------------------------

    def next_boundary(self, t0: datetime, index_fn: Callable[[datetime], int]) -> datetime:
        """
        First instant after t0 where index_fn changes, to within the search
        tolerance. Coarse steps bracket the change, bisection narrows it, and
        the upper bound of the final bracket is returned.
        """
        t0 = as_utc(t0)
        step = timedelta(minutes=self.settings.scan_step_minutes)
        tolerance = timedelta(seconds=self.settings.search_tolerance_seconds)
        start_idx = index_fn(t0)

        lo = t0
        for n in range(1, self.settings.scan_max_steps + 1):
            hi = t0 + step * n
            if index_fn(hi) != start_idx:
                while hi - lo > tolerance:
                    mid = lo + (hi - lo) / 2
                    if index_fn(mid) != start_idx:
                        hi = mid
                    else:
                        lo = mid
                logger.debug("Boundary after %s at %s (index %s)", t0.isoformat(), hi.isoformat(), start_idx)
                return hi
            lo = hi

        raise BoundaryCrossingNotFound(
            f"No index change within {self.settings.scan_max_steps} x "
            f"{self.settings.scan_step_minutes} min of {t0.isoformat()}"
        )

    def next_tithi_change(self, t0: datetime) -> datetime:
        return self.next_boundary(t0, lambda t: self.phase_index(t).index)

    def next_nakshatra_change(self, t0: datetime) -> datetime:
        return self.next_boundary(t0, lambda t: self.sidereal_index(t).index)

    # ---- full moon -----------------------------------------------------

    def next_full_moon(self, t0: datetime) -> datetime:
        t0 = as_utc(t0)
        hit = self.ephemeris.search_phase(FULL_MOON_DEGREES, t0, self.settings.full_moon_window_days)
        if hit is None:
            raise BoundaryCrossingNotFound(
                f"No full moon within {self.settings.full_moon_window_days} days of {t0.isoformat()}"
            )
        return as_utc(hit)

    def local_date(self, when: datetime) -> dt_date:
        return as_utc(when).astimezone(self.tz).date()

    def is_local_full_moon_day(self, when: datetime) -> bool:
        when = as_utc(when)
        full = self.next_full_moon(when - FULL_MOON_LOOKBACK)
        return self.local_date(full) == self.local_date(when)

    def context(self, when: datetime) -> LunarContext:
        when = as_utc(when)
        return LunarContext(
            when=when,
            tithi=self.phase_index(when),
            nakshatra=self.sidereal_index(when),
            is_full_moon=self.is_local_full_moon_day(when),
        )
