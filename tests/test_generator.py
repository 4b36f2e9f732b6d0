"""Strategies, full-moon repair, bonus picks and the digital-root helpers."""
import random
from dataclasses import replace

import pytest

from moonlotto.games import DEFAULT_GAMES, GameDefinition
from moonlotto.generator import full_moon_repair, generate_bonus, generate_candidate, validate_candidate
from moonlotto.hot_cold import build_profile
from moonlotto.numerology import anchor_root, digital_root, root_bias
from moonlotto.predictor_core_base import TIEBREAK_RANDOM, rank_by_score, top_k_by_score
from moonlotto.strategies import Strategy, delta, markov, poisson

from conftest import make_draws

ALL_GAMES = list(DEFAULT_GAMES.values())
ALL_STRATEGIES = list(Strategy)


def _profile(game):
    draws = make_draws(40, game.main_count, game.main_max, bonus_max=game.bonus_max if game.bonus_count else None)
    return build_profile(draws, game)


class TestDigitalRoot:

    @pytest.mark.parametrize("n,expected", [(0, 9), (9, 9), (10, 1), (27, 9), (38, 2), (99, 9), (1234, 1)])
    def test_digital_root(self, n, expected):
        assert digital_root(n) == expected

    def test_anchor_root(self):
        assert anchor_root(27) == 9
        assert anchor_root(10) == 1
        assert anchor_root(5) == 5

    def test_root_bias(self):
        assert root_bias(4, 4) == 10.0
        assert root_bias(3, 4) == 5.0
        assert root_bias(9, 1) == 5.0      # adjacent on the 1..9 circle
        assert root_bias(1, 3) == 0.0


class TestRanking:

    def test_ties_ascending(self):
        assert top_k_by_score({5: 1.0, 3: 1.0, 9: 2.0, 1: 0.5}, 3) == [3, 5, 9]

    def test_random_tiebreak_is_seeded(self):
        scores = {n: 1.0 for n in range(1, 20)}
        a = rank_by_score(scores, TIEBREAK_RANDOM, random.Random(7))
        b = rank_by_score(scores, TIEBREAK_RANDOM, random.Random(7))
        assert a == b

    def test_random_tiebreak_needs_rng(self):
        with pytest.raises(ValueError):
            rank_by_score({1: 1.0}, TIEBREAK_RANDOM)


class TestCandidates:

    @pytest.mark.parametrize("game", ALL_GAMES, ids=lambda g: g.slug)
    @pytest.mark.parametrize("strategy", ALL_STRATEGIES, ids=lambda s: s.value)
    @pytest.mark.parametrize("profiled", [False, True])
    def test_valid_and_deterministic(self, clock, full_moon_when, game, strategy, profiled):
        profile = _profile(game) if profiled else None
        ctx = clock.context(full_moon_when)
        a = generate_candidate(game, strategy, full_moon_when, 1737000000123, profile, context=ctx)
        b = generate_candidate(game, strategy, full_moon_when, 1737000000123, profile, clock=clock)
        assert validate_candidate(a, game) == []
        assert a.main_numbers == b.main_numbers
        assert a.bonus_numbers == b.bonus_numbers
        assert a.metadata == b.metadata

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES, ids=lambda s: s.value)
    def test_many_seeds_stay_valid(self, clock, ordinary_when, strategy):
        game = DEFAULT_GAMES["lotto-max"]
        ctx = clock.context(ordinary_when)
        for seed in range(25):
            cand = generate_candidate(game, strategy, ordinary_when, seed, context=ctx)
            assert validate_candidate(cand, game) == []

    def test_modifier_only_for_repairing_strategies(self, clock, full_moon_when):
        game = DEFAULT_GAMES["lotto-649"]
        ctx = clock.context(full_moon_when)
        for strategy in ALL_STRATEGIES:
            cand = generate_candidate(game, strategy, full_moon_when, 42, context=ctx)
            if strategy in (Strategy.TITHI, Strategy.NAKSHATRA, Strategy.HYBRID):
                assert cand.modifier is not None
                assert cand.modifier.attempts >= 1
            else:
                assert cand.modifier is None

    def test_no_modifier_off_full_moon(self, clock, ordinary_when):
        cand = generate_candidate(DEFAULT_GAMES["lotto-649"], "TITHI", ordinary_when, 42, clock=clock)
        assert not cand.is_full_moon
        assert cand.modifier is None

    def test_needs_exactly_one_context_source(self, clock, ordinary_when):
        game = DEFAULT_GAMES["lotto-649"]
        with pytest.raises(ValueError):
            generate_candidate(game, "TITHI", ordinary_when, 1)
        with pytest.raises(ValueError):
            generate_candidate(game, "TITHI", ordinary_when, 1, clock=clock, context=clock.context(ordinary_when))

    def test_unknown_strategy(self, clock, ordinary_when):
        with pytest.raises(ValueError):
            generate_candidate(DEFAULT_GAMES["lotto-649"], "ASTRAL", ordinary_when, 1, clock=clock)

    def test_different_seeds_differ(self, clock, ordinary_when):
        game = DEFAULT_GAMES["lotto-649"]
        ctx = clock.context(ordinary_when)
        seen = {generate_candidate(game, "POISSON", ordinary_when, s, context=ctx).main_numbers for s in range(10)}
        assert len(seen) > 1

    def test_to_dict(self, clock, ordinary_when):
        cand = generate_candidate(DEFAULT_GAMES["daily-grand"], "MARKOV", ordinary_when, 5, clock=clock)
        d = cand.to_dict()
        assert d["strategy"] == "MARKOV"
        assert d["main_numbers"] == list(cand.main_numbers)
        assert d["generated_at"] == ordinary_when.isoformat()


class TestStrategyDetails:

    def test_markov_start_from_nakshatra(self):
        game = DEFAULT_GAMES["lotto-649"]
        nums, meta = markov(game, 3, nakshatra_index=20)
        assert meta["start"] == (20 * 2) % 49 + 1
        assert meta["start"] in nums

    def test_delta_falls_back_when_range_is_too_tight(self):
        # 8 picks from 1..9 with steps of at least 1 almost never fit; fallback must still be valid
        game = GameDefinition(slug="tight", name="Tight", main_count=8, main_min=1, main_max=9)
        nums, meta = delta(game, 11)
        assert len(nums) == 8 and len(set(nums)) == 8
        assert all(1 <= n <= 9 for n in nums)
        assert meta["deltas"] == [b - a for a, b in zip(nums, nums[1:])]

    def test_poisson_scores_balanced_subset(self):
        game = DEFAULT_GAMES["lotto-649"]
        nums, meta = poisson(game, 99)
        assert meta["score"] == 20
        assert meta["sum"] == sum(nums)

    def test_hybrid_votes_cover_selection(self, clock, ordinary_when):
        game = DEFAULT_GAMES["lotto-max"]
        cand = generate_candidate(game, "HYBRID", ordinary_when, 77, clock=clock)
        sources = cand.metadata["sources"]
        assert set(sources) == {"TITHI", "POISSON", "DELTA", "MARKOV"}
        voted = {n for nums in sources.values() for n in nums}
        assert set(cand.main_numbers) <= voted


class TestFullMoonRepair:

    def test_simple_increment(self):
        game = DEFAULT_GAMES["lotto-649"]
        nums, mod = full_moon_repair([1, 2, 3, 4, 5, 48], game)
        assert nums == [1, 2, 3, 4, 5, 49]
        assert (mod.applied, mod.before, mod.after, mod.attempts) == (True, 48, 49, 1)

    def test_wraps_ones_digit(self):
        game = DEFAULT_GAMES["lotto-649"]
        nums, mod = full_moon_repair([1, 2, 3, 4, 5, 49], game)
        assert nums == [1, 2, 3, 4, 5, 40]
        assert mod.after == 40

    def test_cumulative_attempts_skip_taken_values(self):
        game = DEFAULT_GAMES["lotto-649"]
        nums, mod = full_moon_repair([40, 41, 42, 43, 44, 49], game)
        assert mod.applied
        assert mod.after == 45
        assert mod.attempts == 6
        assert nums == [40, 41, 42, 43, 44, 45]

    def test_exhausted_keeps_original(self):
        game = GameDefinition(slug="tiny", name="Tiny", main_count=9, main_min=1, main_max=9)
        nums, mod = full_moon_repair(list(range(1, 10)), game)
        assert nums == list(range(1, 10))
        assert (mod.applied, mod.before, mod.after, mod.attempts) == (False, 9, 9, 10)

    def test_never_out_of_range_or_duplicate(self):
        game = DEFAULT_GAMES["lottario"]
        rng = random.Random(3)
        for _ in range(200):
            picks = sorted(rng.sample(game.main_range, game.main_count))
            nums, mod = full_moon_repair(picks, game)
            assert len(set(nums)) == game.main_count
            assert all(game.main_min <= n <= game.main_max for n in nums)
            if not mod.applied:
                assert nums == picks


class TestBonus:

    def test_grand_number_in_its_own_pool(self, clock, ordinary_when):
        game = DEFAULT_GAMES["daily-grand"]
        cand = generate_candidate(game, "TITHI", ordinary_when, 9, clock=clock)
        assert len(cand.bonus_numbers) == 1
        assert 1 <= cand.bonus_numbers[0] <= 7

    def test_same_drum_bonus_excludes_mains(self):
        game = GameDefinition(slug="same", name="Same", main_count=6, main_min=1, main_max=49,
                              bonus_count=1, bonus_min=1, bonus_max=49, bonus_same_drum=True)
        for seed in range(30):
            mains = sorted(random.Random(seed).sample(range(1, 50), 6))
            bonus = generate_bonus(game, mains, anchor=seed % 9 + 1, seed=seed)
            assert len(bonus) == 1 and bonus[0] not in mains

    def test_no_bonus_for_plain_games(self, clock, ordinary_when):
        cand = generate_candidate(DEFAULT_GAMES["lotto-649"], "DELTA", ordinary_when, 9, clock=clock)
        assert cand.bonus_numbers == ()

    def test_profiled_bonus_uses_scores(self):
        game = DEFAULT_GAMES["daily-grand"]
        profile = _profile(game)
        a = generate_bonus(game, [1, 2, 3, 4, 5], anchor=3, seed=1, profile=profile)
        b = generate_bonus(game, [1, 2, 3, 4, 5], anchor=3, seed=2, profile=profile)
        # no randomness once the profile supplies bonus scores
        assert a == b


class TestValidation:

    def test_flags_problems(self, clock, ordinary_when):
        game = DEFAULT_GAMES["lotto-649"]
        cand = generate_candidate(game, "TITHI", ordinary_when, 1, clock=clock)
        bad = replace(cand, main_numbers=(1, 1, 60))
        problems = validate_candidate(bad, game)
        assert any("expected 6" in p for p in problems)
        assert any("duplicate" in p for p in problems)
        assert any("out of range" in p for p in problems)
