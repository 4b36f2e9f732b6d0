"""Draw schedule, batch generation and the rolling backtest."""
from datetime import datetime, timezone

import pytest

from moonlotto.backtest import BACKTEST_COLUMNS, backtest_game, backtest_window
from moonlotto.batch import generate_batch, line_seed, plan_jobs
from moonlotto.draw_schedule import (
    FALLBACK_REASON,
    ScheduledCandidate,
    check_eligibility,
    next_draw_at,
    schedule,
    select_candidate,
)
from moonlotto.games import DEFAULT_GAMES
from moonlotto.generator import validate_candidate
from moonlotto.models import GeneratedCandidate, epoch_ms

from conftest import make_draws

LOTTO_649 = DEFAULT_GAMES["lotto-649"]      # Wed/Sat 22:30 Toronto


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestDrawSchedule:

    def test_same_day_draw(self):
        # Wed 2026-01-14 15:00 Toronto
        assert next_draw_at(LOTTO_649, _utc(2026, 1, 14, 20, 0)) == _utc(2026, 1, 15, 3, 30)

    def test_after_draw_moves_to_next_draw_day(self):
        # Wed 23:00 Toronto -> Saturday 22:30 Toronto
        assert next_draw_at(LOTTO_649, _utc(2026, 1, 15, 4, 0)) == _utc(2026, 1, 18, 3, 30)

    def test_exactly_at_draw_time_is_not_next(self):
        assert next_draw_at(LOTTO_649, _utc(2026, 1, 15, 3, 30)) == _utc(2026, 1, 18, 3, 30)

    def test_eligible_with_lead(self):
        e = check_eligibility(LOTTO_649, _utc(2026, 1, 14, 20, 0))
        assert e.eligible
        assert e.lead_minutes == pytest.approx(450)
        assert e.reason == "450 minutes before draw"

    def test_ineligible_close_to_draw(self):
        e = check_eligibility(LOTTO_649, _utc(2026, 1, 15, 3, 10))
        assert not e.eligible
        assert e.next_draw_at == _utc(2026, 1, 15, 3, 30)
        assert "need 30" in e.reason

    def test_daylight_saving_offset(self):
        # Sat 2026-07-18 22:30 EDT is 02:30Z
        assert next_draw_at(LOTTO_649, _utc(2026, 7, 18, 12, 0)) == _utc(2026, 7, 19, 2, 30)


class TestSelectCandidate:

    DRAW = _utc(2026, 1, 15, 3, 30)

    def _sc(self, hour, eligible, strategy="TITHI", draw=None):
        cand = GeneratedCandidate(game_slug="lotto-649", strategy=strategy,
                                  generated_at=_utc(2026, 1, 14, hour), seed=hour,
                                  main_numbers=(1, 2, 3, 4, 5, 6))
        return ScheduledCandidate(cand, draw or self.DRAW, eligible)

    def test_latest_eligible_wins(self):
        picked = select_candidate([self._sc(8, True), self._sc(12, True), self._sc(20, False)], self.DRAW, "TITHI")
        assert picked.candidate.seed == 12
        assert picked.fallback_reason is None

    def test_falls_back_to_latest_ineligible(self):
        picked = select_candidate([self._sc(8, False), self._sc(20, False)], self.DRAW, "TITHI")
        assert picked.candidate.seed == 20
        assert picked.fallback_reason == FALLBACK_REASON

    def test_filters_strategy_and_draw(self):
        pool = [self._sc(8, True, "NAKSHATRA"), self._sc(9, True, draw=_utc(2026, 1, 18, 3, 30))]
        assert select_candidate(pool, self.DRAW, "TITHI") is None

    def test_schedule_wraps_eligibility(self):
        cand = GeneratedCandidate(game_slug="lotto-649", strategy="TITHI",
                                  generated_at=_utc(2026, 1, 14, 20), seed=1, main_numbers=(1, 2, 3, 4, 5, 6))
        sc = schedule(cand, LOTTO_649)
        assert sc.eligible and sc.intended_draw_at == self.DRAW


class TestBatch:

    WHEN = _utc(2026, 1, 20, 12, 0)

    def test_seed_layout(self):
        jobs = plan_jobs(["lotto-649"], ["TITHI", "NAKSHATRA"], 1000, lines_per_strategy=2)
        assert [j.seed for j in jobs] == [1001, 1002, 11001, 11002]
        assert line_seed(0, 3, 1) == 30001

    def test_sequential_equals_threaded(self, clock):
        games = ["lotto-649", "lotto-max", "daily-grand", "lottario"]
        strategies = ["TITHI", "NAKSHATRA", "HYBRID", "MARKOV"]
        seq = generate_batch(games, strategies, self.WHEN, clock, lines_per_strategy=2)
        par = generate_batch(games, strategies, self.WHEN, clock, lines_per_strategy=2, max_workers=4)
        assert [c.to_dict() for c in seq] == [c.to_dict() for c in par]
        assert len(seq) == 4 * 4 * 2
        for c in seq:
            assert validate_candidate(c, DEFAULT_GAMES[c.game_slug]) == []

    def test_default_base_seed_is_epoch_ms(self, clock):
        out = generate_batch(["lotto-649"], ["TITHI"], self.WHEN, clock)
        assert out[0].seed == epoch_ms(self.WHEN) + 1

    def test_needs_clock_or_context(self):
        with pytest.raises(ValueError):
            generate_batch(["lotto-649"], ["TITHI"], self.WHEN)


class TestBacktest:

    def test_one_row_per_strategy(self, clock):
        game = DEFAULT_GAMES["lottario"]
        draws = make_draws(24, 6, 45)
        size = backtest_window(game, len(draws))
        assert size == 12
        df = backtest_game(draws, game, ["TITHI", "NAKSHATRA", "POISSON"], clock)
        assert list(df.columns) == BACKTEST_COLUMNS
        assert list(df["strategy"]) == ["TITHI", "NAKSHATRA", "POISSON"]
        assert (df["draws"] == 12).all()
        assert ((df["avg_matches"] >= 0) & (df["avg_matches"] <= 6)).all()
        assert ((df["three_plus_rate"] >= 0) & (df["three_plus_rate"] <= 1)).all()

    def test_deterministic(self, clock):
        game = DEFAULT_GAMES["lottario"]
        draws = make_draws(24, 6, 45)
        a = backtest_game(draws, game, ["HYBRID"], clock)
        b = backtest_game(list(reversed(draws)), game, ["HYBRID"], clock)
        assert a.equals(b)

    def test_too_few_draws(self, clock):
        df = backtest_game(make_draws(5, 6, 45), DEFAULT_GAMES["lottario"], ["TITHI"], clock)
        assert df.empty
        assert list(df.columns) == BACKTEST_COLUMNS
