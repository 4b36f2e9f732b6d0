# moonlotto/utilities/ephemeris.py
"""
Celestial-mechanics backends for the lunar clock.

Both backends answer the same three questions:
  phase_angle(when)          Moon minus Sun ecliptic longitude, degrees [0, 360)
  ecliptic_longitude(when)   tropical (of date) lunar longitude, degrees [0, 360)
  search_phase(target, start, window_days)
                             first instant after start with the given phase, or None
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Union

import ephem
import numpy as np
from skyfield import almanac
from skyfield.api import Loader, load
from skyfield.framelib import ecliptic_frame
from skyfield.searchlib import find_discrete

from ..models import as_utc

logger = logging.getLogger(__name__)


class Ephemeris(Protocol):
    def phase_angle(self, when: datetime) -> float: ...

    def ecliptic_longitude(self, when: datetime) -> float: ...

    def search_phase(self, target_degrees: float, start: datetime, window_days: float) -> Optional[datetime]: ...


def _norm360(deg: float) -> float:
    deg = float(deg) % 360.0
    return deg + 360.0 if deg < 0 else deg


class EphemerisWrapper:
    """
    Wrap a Skyfield SPK kernel so body names missing from the kernel map to
    barycenters. 'EARTH' still resolves on kernels that only carry
    '3 EARTH BARYCENTER'.
    """
    _name_to_codes = {
        "EARTH": (399, 3, "EARTH BARYCENTER"),
        "MOON": (301,),
        "SUN": (10,),
    }

    def __init__(self, eph):
        self._eph = eph

    def __getitem__(self, key: Union[int, str]):
        try:
            return self._eph[key]
        except KeyError:
            pass
        if isinstance(key, str):
            for alt in self._name_to_codes.get(key.strip().upper(), ()):
                try:
                    return self._eph[alt]
                except KeyError:
                    continue
        raise KeyError(f"{key!r} not found in kernel (even after fallbacks)")


def _has_lunar_targets(eph) -> bool:
    try:
        eph["SUN"]; eph["EARTH"]; eph["MOON"]
        return True
    except KeyError:
        return False


def load_kernel(extras_dir: Path):
    """
    Return a wrapped SPK kernel with Sun, Earth and Moon targets.
    Preference order:
      1) Local de421.bsp in <extras>/ephemeris_cache or <extras>.
      2) Loader cache dir: de421.bsp (downloads if allowed), else de440.bsp.
    """
    extras_dir = Path(extras_dir)
    cache_dir = extras_dir / "ephemeris_cache"
    for cand in (cache_dir / "de421.bsp", extras_dir / "de421.bsp"):
        if not cand.exists():
            continue
        try:
            wrapped = EphemerisWrapper(load(str(cand)))
        except (OSError, ValueError) as e:
            logger.warning("Failed loading %s: %s", cand, e)
            continue
        if _has_lunar_targets(wrapped):
            logger.info("Using ephemeris: %s", cand)
            return wrapped

    cache_dir.mkdir(parents=True, exist_ok=True)
    loader = Loader(str(cache_dir))
    for name in ("de421.bsp", "de440.bsp"):
        try:
            wrapped = EphemerisWrapper(loader(name))
        except (OSError, ValueError) as e:
            logger.warning("%s via Loader failed: %s", name, e)
            continue
        if _has_lunar_targets(wrapped):
            logger.info("Using cache ephemeris: %s", cache_dir / name)
            return wrapped

    raise RuntimeError(
        "Could not obtain an ephemeris with Sun, Earth and Moon targets.\n"
        f"Place 'de421.bsp' in {cache_dir} or {extras_dir}, or set ephemeris=ephem."
    )


class SkyfieldEphemeris:
    """Skyfield over a JPL kernel. Phase search uses find_discrete on half-turns."""

    def __init__(self, extras_dir: Path, kernel=None, timescale=None):
        self._eph = kernel if kernel is not None else load_kernel(extras_dir)
        self._ts = timescale if timescale is not None else load.timescale()
        self._earth = self._eph["EARTH"]
        self._moon = self._eph["MOON"]

    def _t(self, when: datetime):
        return self._ts.from_datetime(as_utc(when))

    def phase_angle(self, when: datetime) -> float:
        return _norm360(almanac.moon_phase(self._eph, self._t(when)).degrees)

    def ecliptic_longitude(self, when: datetime) -> float:
        apparent = self._earth.at(self._t(when)).observe(self._moon).apparent()
        _lat, lon, _dist = apparent.frame_latlon(ecliptic_frame)
        return _norm360(lon.degrees)

    def search_phase(self, target_degrees: float, start: datetime, window_days: float) -> Optional[datetime]:
        eph = self._eph
        target = float(target_degrees)

        # 0 on the half-turn just after the target, 1 on the half-turn before it
        def half_turn(t):
            rel = (almanac.moon_phase(eph, t).degrees - target) % 360.0
            return np.floor(rel / 180.0).astype(int)

        half_turn.step_days = 1.0
        start = as_utc(start)
        t0 = self._t(start)
        t1 = self._t(start + timedelta(days=window_days))
        times, values = find_discrete(t0, t1, half_turn)
        for t, v in zip(times, values):
            if int(v) == 0:
                hit = t.utc_datetime()
                if hit > start:
                    return hit
        return None


class PyEphemEphemeris:
    """PyEphem backend. Needs no kernel file, so it is the default."""

    _finders: Dict[int, Callable] = {
        0: ephem.next_new_moon,
        90: ephem.next_first_quarter_moon,
        180: ephem.next_full_moon,
        270: ephem.next_last_quarter_moon,
    }

    @staticmethod
    def _date(when: datetime) -> ephem.Date:
        return ephem.Date(as_utc(when).replace(tzinfo=None))

    @staticmethod
    def _ecliptic_longitude(body, date: ephem.Date) -> float:
        ecl = ephem.Ecliptic(body, epoch=date)
        return _norm360(math.degrees(float(ecl.lon)))

    def phase_angle(self, when: datetime) -> float:
        d = self._date(when)
        moon = ephem.Moon(d)
        sun = ephem.Sun(d)
        return _norm360(self._ecliptic_longitude(moon, d) - self._ecliptic_longitude(sun, d))

    def ecliptic_longitude(self, when: datetime) -> float:
        d = self._date(when)
        return self._ecliptic_longitude(ephem.Moon(d), d)

    def search_phase(self, target_degrees: float, start: datetime, window_days: float) -> Optional[datetime]:
        key = int(round(_norm360(target_degrees))) % 360
        finder = self._finders.get(key)
        if finder is None or abs(_norm360(target_degrees) - key) > 1e-9:
            raise ValueError(f"PyEphem can only search quarter phases, not {target_degrees!r}")
        start = as_utc(start)
        hit = finder(self._date(start)).datetime().replace(tzinfo=timezone.utc)
        if start < hit <= start + timedelta(days=window_days):
            return hit
        return None


BACKENDS: List[str] = ["ephem", "skyfield"]


def make_ephemeris(settings) -> Ephemeris:
    """Build the backend named by settings.ephemeris."""
    name = getattr(settings, "ephemeris", "ephem")
    if name == "ephem":
        return PyEphemEphemeris()
    if name == "skyfield":
        return SkyfieldEphemeris(settings.extras_dir)
    raise ValueError(f"Unknown ephemeris backend {name!r}; expected one of {BACKENDS}")
