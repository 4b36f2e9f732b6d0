# moonlotto/cli.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from .astrology import LunarClock
from .backtest import backtest_game
from .batch import generate_batch
from .config import load_settings
from .draw_schedule import check_eligibility
from .errors import BoundaryCrossingNotFound, MoonLottoError
from .games import game_slugs, get_game
from .generator import validate_candidate
from .hot_cold import load_profile
from .logger import configure_logging
from .models import DrawRecord, GeneratedCandidate, as_utc, parse_numbers
from .prizes import evaluate_candidate
from .strategies import Strategy
from .utilities.draws import CsvDrawRepository
from .utilities.performance_tracker import log_candidate, log_evaluation

logger = logging.getLogger(__name__)


def _when(text: Optional[str]) -> datetime:
    if not text:
        return datetime.now(timezone.utc)
    return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def _emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def _clock(args) -> LunarClock:
    settings = load_settings({
        "ephemeris": args.ephemeris,
        "reference_timezone": args.tz,
        "data_dir": args.data_dir,
    })
    return LunarClock.from_settings(settings)


def cmd_tithi(args) -> int:
    clock = _clock(args)
    when = _when(args.at)
    ctx = clock.context(when)
    out = {
        "at": when.isoformat(),
        "tithi": {"index": ctx.tithi.index, "fraction": round(ctx.tithi.fraction, 4),
                  "phase_angle": round(ctx.tithi.phase_angle, 4)},
        "nakshatra": {"index": ctx.nakshatra.index, "fraction": round(ctx.nakshatra.fraction, 4),
                      "longitude": round(ctx.nakshatra.longitude, 4)},
        "is_full_moon_day": ctx.is_full_moon,
    }
    for key, fn in (("next_tithi_change", clock.next_tithi_change),
                    ("next_nakshatra_change", clock.next_nakshatra_change),
                    ("next_full_moon", clock.next_full_moon)):
        try:
            out[key] = fn(when).isoformat()
        except BoundaryCrossingNotFound as e:
            logger.warning("%s: %s", key, e)
            out[key] = None
    _emit(out)
    return 0


def cmd_generate(args) -> int:
    clock = _clock(args)
    game = get_game(args.game)
    when = _when(args.at)
    strategies = args.strategy or [Strategy.TITHI.value, Strategy.NAKSHATRA.value]
    profiles = {}
    history = args.history or clock.settings.data_dir
    if Path(history).exists():
        profiles[game.slug] = load_profile(CsvDrawRepository(history), game)
    cands = generate_batch(
        [game], strategies, when, clock,
        lines_per_strategy=args.lines, profiles=profiles, base_seed=args.seed, max_workers=args.workers,
    )
    elig = check_eligibility(game, when, clock.tz)
    out = []
    for c in cands:
        problems = validate_candidate(c, game)
        if problems:
            logger.error("Invalid candidate from %s: %s", c.strategy, problems)
        if args.ledger:
            log_candidate(args.ledger, c, elig.next_draw_at, elig.eligible)
        row = c.to_dict()
        row["intended_draw_at"] = elig.next_draw_at.isoformat()
        row["eligible"] = elig.eligible
        row["eligibility_reason"] = elig.reason
        out.append(row)
    _emit(out)
    return 0


def cmd_evaluate(args) -> int:
    settings = load_settings({"data_dir": args.data_dir})
    game = get_game(args.game)
    if args.official:
        drawn_at = _when(args.date) if args.date else datetime.now(timezone.utc)
        official = DrawRecord.create(drawn_at, parse_numbers(args.official), parse_numbers(args.official_bonus))
    else:
        if not args.date:
            raise ValueError("evaluate needs --official numbers or a --date to look up")
        repo = CsvDrawRepository(args.history or settings.data_dir)
        official = repo.on(game.slug, date.fromisoformat(args.date[:10]))
        if official is None:
            raise ValueError(f"No {game.slug} draw on {args.date} in {repo.path_for(game.slug)}")
    result = evaluate_candidate(game, parse_numbers(args.numbers), parse_numbers(args.bonus), official)
    if args.ledger:
        cand = GeneratedCandidate(
            game_slug=game.slug, strategy=(args.strategy or "MANUAL").upper(), generated_at=official.drawn_at,
            seed=0, main_numbers=tuple(sorted(parse_numbers(args.numbers))),
            bonus_numbers=tuple(parse_numbers(args.bonus)),
        )
        log_evaluation(args.ledger, cand, official, result)
    out = result.to_dict()
    out["is_winner"] = result.is_winner
    out["draw_at"] = official.drawn_at.isoformat()
    _emit(out)
    return 0


def cmd_backtest(args) -> int:
    clock = _clock(args)
    game = get_game(args.game)
    repo = CsvDrawRepository(args.history or clock.settings.data_dir)
    draws = repo.load(game.slug)
    strategies = args.strategy or [Strategy.TITHI.value, Strategy.NAKSHATRA.value]
    df = backtest_game(draws, game, strategies, clock, window=args.window)
    _emit({"game": game.slug, "draws": len(draws), "results": df.to_dict(orient="records")})
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="moonlotto", description="Lunar-calendar number generator and prize evaluator")
    ap.add_argument("--ephemeris", choices=["ephem", "skyfield"], default=None, help="Ephemeris backend")
    ap.add_argument("--tz", dest="tz", default=None, help="Reference timezone for full-moon days and draws")
    ap.add_argument("--data-dir", default=None, help="Directory holding draws_<game>.csv files")
    ap.add_argument("--log-level", default="WARNING")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("tithi", help="Calendar indices and next boundaries for a timestamp")
    p.add_argument("--at", default=None, help="ISO timestamp (default: now, UTC)")
    p.set_defaults(func=cmd_tithi)

    p = sub.add_parser("generate", help="Generate candidate tickets")
    p.add_argument("game", choices=game_slugs())
    p.add_argument("--strategy", action="append", type=lambda s: Strategy.parse(s).value,
                   help="Repeatable; default TITHI and NAKSHATRA")
    p.add_argument("--at", default=None)
    p.add_argument("--seed", type=int, default=None, help="Base seed (default: epoch ms of --at)")
    p.add_argument("--lines", type=int, default=1)
    p.add_argument("--workers", type=int, default=1)
    p.add_argument("--history", default=None, help="Directory with draw history CSVs")
    p.add_argument("--ledger", default=None, help="Append candidates to this CSV")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("evaluate", help="Evaluate numbers against an official draw")
    p.add_argument("game", choices=game_slugs())
    p.add_argument("--numbers", required=True, help="Candidate main numbers, e.g. '3 11 19 24 38'")
    p.add_argument("--bonus", default="", help="Candidate bonus / grand number")
    p.add_argument("--official", default=None, help="Winning main numbers (skips the CSV lookup)")
    p.add_argument("--official-bonus", default="")
    p.add_argument("--date", default=None, help="Draw date (YYYY-MM-DD) to look up")
    p.add_argument("--history", default=None)
    p.add_argument("--strategy", default=None, help="Strategy label for the ledger row")
    p.add_argument("--ledger", default=None, help="Append the evaluation to this CSV")
    p.set_defaults(func=cmd_evaluate)

    p = sub.add_parser("backtest", help="Rolling-window backtest over a draw history CSV")
    p.add_argument("game", choices=game_slugs())
    p.add_argument("--strategy", action="append", type=lambda s: Strategy.parse(s).value)
    p.add_argument("--window", type=int, default=None)
    p.add_argument("--history", default=None)
    p.set_defaults(func=cmd_backtest)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except (MoonLottoError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
