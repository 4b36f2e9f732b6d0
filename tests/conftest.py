"""Shared fixtures: a linear synthetic ephemeris so no kernel or network is needed."""
from datetime import datetime, timedelta, timezone

import pytest

from moonlotto.astrology import LunarClock
from moonlotto.config import Settings
from moonlotto.models import DrawRecord, as_utc

SYNODIC_DAYS = 29.530588
PHASE_RATE = 360.0 / SYNODIC_DAYS      # deg/day
LONGITUDE_RATE = 13.176358              # deg/day

# 12:00 in Toronto
FULL_MOON_AT = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)


class LinearEphemeris:
    """Phase and longitude advance at constant rates from an epoch."""

    def __init__(self, epoch=FULL_MOON_AT, phase0=180.0, lon0=100.0,
                 phase_rate=PHASE_RATE, lon_rate=LONGITUDE_RATE):
        self.epoch = epoch
        self.phase0 = phase0
        self.lon0 = lon0
        self.phase_rate = phase_rate
        self.lon_rate = lon_rate

    def _days(self, when):
        return (as_utc(when) - self.epoch).total_seconds() / 86400.0

    def phase_angle(self, when):
        return (self.phase0 + self.phase_rate * self._days(when)) % 360.0

    def ecliptic_longitude(self, when):
        return (self.lon0 + self.lon_rate * self._days(when)) % 360.0

    def search_phase(self, target_degrees, start, window_days):
        if self.phase_rate == 0:
            return None
        delta = (target_degrees - self.phase_angle(start)) % 360.0
        if delta == 0:
            delta = 360.0
        days = delta / self.phase_rate
        if days > window_days:
            return None
        return as_utc(start) + timedelta(days=days)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "Data", extras_dir=tmp_path / "Extras")


@pytest.fixture
def ephemeris():
    return LinearEphemeris()


@pytest.fixture
def clock(ephemeris, settings):
    return LunarClock(ephemeris, settings)


@pytest.fixture
def frozen_clock(settings):
    return LunarClock(LinearEphemeris(phase_rate=0.0, lon_rate=0.0), settings)


@pytest.fixture
def full_moon_when():
    # 15:00 Toronto on the full-moon day
    return FULL_MOON_AT + timedelta(hours=3)


@pytest.fixture
def ordinary_when():
    return FULL_MOON_AT + timedelta(days=7)


def make_draws(count, main_count, main_max, start=datetime(2025, 6, 1, 2, 30, tzinfo=timezone.utc),
               bonus_max=None):
    """Deterministic spread of draws, three days apart, oldest first."""
    out = []
    for i in range(count):
        nums = sorted({(i * 7 + k * 11) % main_max + 1 for k in range(main_count * 2)})[:main_count]
        bonus = [(i % bonus_max) + 1] if bonus_max else []
        out.append(DrawRecord.create(start + timedelta(days=3 * i), nums, bonus))
    return out
