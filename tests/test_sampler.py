"""Tests for lane-based matchup sampling."""

import random

import pytest

from arena_rating.core.config import SamplingConfig
from arena_rating.core.errors import InsufficientCandidatesError
from arena_rating.services.match import MatchupSampler, PoolEntry


def _pool(count: int, baselines: int = 0) -> list[PoolEntry]:
    """Regular candidates spaced 10 points apart, plus baselines."""
    entries = [
        PoolEntry(id=f"c{i}", conservative_rating=800.0 + 10 * i, deviation=200.0, total_votes=i)
        for i in range(count)
    ]
    entries += [
        PoolEntry(id=f"base{i}", conservative_rating=900.0, deviation=30.0, is_baseline=True)
        for i in range(baselines)
    ]
    return entries


def _sampler(seed: int = 1, **overrides) -> MatchupSampler:
    return MatchupSampler(SamplingConfig(seed=seed, **overrides))


class TestSamplerInvariants:
    """Tests for properties that hold in every lane."""

    def test_never_pairs_a_candidate_with_itself(self):
        """Test both sides are always distinct."""
        sampler = _sampler()
        pool = _pool(3)
        for _ in range(300):
            pair = sampler.sample(pool)
            assert pair.a.id != pair.b.id

    def test_never_pairs_two_baselines(self):
        """Test at most one side is a baseline when baselines are allowed."""
        sampler = _sampler()
        pool = _pool(2, baselines=3)
        for _ in range(300):
            pair = sampler.sample(pool, include_baseline=True)
            assert not (pair.a.is_baseline and pair.b.is_baseline)

    def test_baselines_excluded_by_default(self):
        """Test baselines are not sampled unless asked for."""
        sampler = _sampler()
        pool = _pool(3, baselines=2)
        for _ in range(200):
            pair = sampler.sample(pool)
            assert not pair.a.is_baseline
            assert not pair.b.is_baseline

    def test_baseline_fills_one_side_when_included(self):
        """Test a single regular candidate can be paired with a baseline."""
        sampler = _sampler()
        pair = sampler.sample(_pool(1, baselines=2), include_baseline=True)
        assert {pair.a.is_baseline, pair.b.is_baseline} == {True, False}

    def test_duplicate_pool_entries_are_ignored(self):
        """Test the same candidate listed twice does not form a pair."""
        entry = _pool(1)[0]
        with pytest.raises(InsufficientCandidatesError):
            _sampler().sample([entry, entry])

    @pytest.mark.parametrize(
        ("pool", "include_baseline"),
        [
            ([], False),
            (_pool(1), False),
            (_pool(1, baselines=3), False),
            (_pool(0, baselines=3), True),
        ],
    )
    def test_insufficient_candidates(self, pool, include_baseline):
        """Test fewer than two pairable candidates raise a retryable condition."""
        with pytest.raises(InsufficientCandidatesError) as exc_info:
            _sampler().sample(pool, include_baseline=include_baseline)
        assert exc_info.value.status_code == 409
        assert "Try again later" in exc_info.value.message

    def test_deterministic_with_same_seed(self):
        """Test equal seeds reproduce the same sequence of pairs."""
        pool = _pool(6)
        s1, s2 = _sampler(seed=42), _sampler(seed=42)
        first = [(p.a.id, p.b.id, p.lane) for p in (s1.sample(pool) for _ in range(50))]
        second = [(p.a.id, p.b.id, p.lane) for p in (s2.sample(pool) for _ in range(50))]
        assert first == second

    def test_injected_generator_is_used(self):
        """Test an injected generator takes precedence over the config seed."""
        pool = _pool(6)
        s1 = MatchupSampler(SamplingConfig(seed=1), rng=random.Random(99))
        s2 = MatchupSampler(SamplingConfig(seed=2), rng=random.Random(99))
        assert [_pair_ids(s1, pool) for _ in range(20)] == [_pair_ids(s2, pool) for _ in range(20)]

    def test_all_lanes_are_used(self):
        """Test default weights reach every lane."""
        sampler = _sampler()
        lanes = {sampler.sample(_pool(5)).lane for _ in range(300)}
        assert lanes == {"explore", "exploit", "random"}

    def test_zero_weight_lane_is_never_used(self):
        """Test a lane with weight 0 is never chosen."""
        sampler = _sampler(lane_weights={"explore": 1.0, "exploit": 0.0, "random": 1.0})
        lanes = {sampler.sample(_pool(5)).lane for _ in range(200)}
        assert "exploit" not in lanes


class TestExploitLane:
    """Tests for nearest-neighbour sampling."""

    def test_pairs_nearest_neighbours(self):
        """Test a window of one always pairs adjacent rank scores."""
        sampler = _sampler(lane_weights={"exploit": 1.0}, exploit_window=1)
        for _ in range(100):
            pair = sampler.sample(_pool(8))
            assert pair.lane == "exploit"
            assert abs(pair.a.conservative_rating - pair.b.conservative_rating) == pytest.approx(10)

    def test_reason_is_recorded(self):
        """Test the exploit lane explains its choice."""
        pair = _sampler(lane_weights={"exploit": 1.0}).sample(_pool(4))
        assert pair.reason.startswith("nearest neighbour")


class TestExploreLane:
    """Tests for uncertainty-driven sampling."""

    def test_focus_is_most_uncertain(self):
        """Test the focus candidate comes from the most uncertain pool."""
        pool = _pool(6) + [PoolEntry(id="new", conservative_rating=100.0, deviation=350.0)]
        sampler = _sampler(lane_weights={"explore": 1.0}, explore_pool_size=1)
        for _ in range(50):
            pair = sampler.sample(pool)
            assert pair.lane == "explore"
            assert "new" in (pair.a.id, pair.b.id)

    def test_opponent_is_mid_field(self):
        """Test the opponent is the candidate closest to the median rank score."""
        pool = _pool(5) + [PoolEntry(id="new", conservative_rating=100.0, deviation=350.0)]
        sampler = _sampler(lane_weights={"explore": 1.0}, explore_pool_size=1)
        pair = sampler.sample(pool)
        opponent = pair.b if pair.a.id == "new" else pair.a
        # Opponents c0..c4 score 800..840; the median is c2
        assert opponent.id == "c2"
        assert "uncertain focus" in pair.reason


def _pair_ids(sampler: MatchupSampler, pool: list[PoolEntry]) -> tuple[str, str]:
    pair = sampler.sample(pool)
    return pair.a.id, pair.b.id
