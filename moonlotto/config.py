# moonlotto/config.py
"""
Config module used by the clock, the CLI and the CSV collaborators.

Exports:
- DATA_DIR / EXTRAS_DIR: resolved from MOONLOTTO_DATA_DIR / MOONLOTTO_EXTRAS_DIR
- load_user_config() -> dict
- save_user_config(cfg: dict) -> None
- load_settings(overrides=None) -> Settings
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Allow overrides via environment variables, otherwise default to ./Data and ./Extras
DATA_DIR = Path(os.environ.get("MOONLOTTO_DATA_DIR", Path.cwd() / "Data")).resolve()
EXTRAS_DIR = Path(os.environ.get("MOONLOTTO_EXTRAS_DIR", Path.cwd() / "Extras")).resolve()

CONFIG_PATH = EXTRAS_DIR / "config.json"


@dataclass(frozen=True)
class Settings:
    reference_timezone: str = "America/Toronto"
    ephemeris: str = "ephem"              # "ephem" | "skyfield"
    scan_step_minutes: int = 60
    scan_max_steps: int = 48
    search_tolerance_seconds: float = 5.0
    full_moon_window_days: float = 30.0
    data_dir: Path = DATA_DIR
    extras_dir: Path = EXTRAS_DIR


def load_user_config(path: Optional[Path] = None) -> dict:
    """
    Load user config from Extras/config.json.
    A missing or invalid file gives an empty dict.
    """
    p = Path(path) if path is not None else CONFIG_PATH
    if not p.exists():
        return {}
    try:
        text = p.read_text(encoding="utf-8", errors="ignore")
        return json.loads(text) if text.strip() else {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", p, e)
        return {}


def save_user_config(cfg: dict, path: Optional[Path] = None) -> None:
    """Save user config atomically to Extras/config.json."""
    p = Path(path) if path is not None else CONFIG_PATH
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(".json.tmp")
    tmp.write_text(json.dumps(cfg, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(p)


def _coerce(name: str, value: Any) -> Any:
    default = getattr(Settings, name)
    if isinstance(default, Path):
        return Path(value).expanduser().resolve()
    if isinstance(default, bool):
        return str(value).lower() not in ("0", "false", "no", "")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)


def load_settings(overrides: Optional[Dict[str, Any]] = None, config_path: Optional[Path] = None) -> Settings:
    """Defaults < Extras/config.json < MOONLOTTO_<NAME> env vars < explicit overrides."""
    known = {f.name for f in fields(Settings)}
    merged: Dict[str, Any] = {}
    for k, v in load_user_config(config_path).items():
        if k in known:
            merged[k] = v
        else:
            logger.debug("Unknown config key %r ignored", k)
    for name in known:
        env = os.environ.get(f"MOONLOTTO_{name.upper()}")
        if env:
            merged[name] = env
    for k, v in (overrides or {}).items():
        if v is not None and k in known:
            merged[k] = v
    values = {k: _coerce(k, v) for k, v in merged.items()}
    settings = replace(Settings(), **values)
    if settings.ephemeris not in ("ephem", "skyfield"):
        raise ValueError(f"Unknown ephemeris backend {settings.ephemeris!r}")
    return settings
