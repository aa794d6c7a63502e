"""Tests for onboarding, rating reset and history replay."""

import pytest

from arena_rating.core.config import CandidateSpec, RatingConfig
from arena_rating.services.maintenance import MaintenanceService
from arena_rating.services.vote import VoteService


@pytest.fixture
def maintenance(arena_config, store):
    return MaintenanceService(arena_config, store)


async def _play(arena_config, store, candidates):
    """Votes whose replay result does not depend on their relative order."""
    votes = VoteService(arena_config, store)
    first = await store.matchups.create_matchup(candidates["alpha"].id, candidates["beta"].id)
    second = await store.matchups.create_matchup(candidates["gamma"].id, candidates["delta"].id)
    await votes.submit_vote(first.id, "A", "s1")
    await votes.submit_vote(first.id, "A", "s2")
    await votes.submit_vote(second.id, "BOTH_BAD", "s1")


class TestOnboarding:
    """Tests for candidate onboarding."""

    async def test_creates_with_defaults(self, maintenance, store):
        """Test new candidates start at the configured initial state."""
        results = await maintenance.onboard_candidates()
        assert len(results) == 5
        assert all(created for _, created in results)

        alpha = await store.candidates.get_by_key("alpha")
        assert alpha.rating == 1500.0
        assert alpha.rating_deviation == 350.0
        assert alpha.conservative_rating == pytest.approx(800.0)

    async def test_creates_with_configured_initial_state(self, arena_config, store):
        """Test configured initial values override the column defaults."""
        config = arena_config.model_copy(
            update={"rating": RatingConfig(initial_rating=1600.0, initial_deviation=200.0)}
        )
        await MaintenanceService(config, store).onboard_candidates()

        alpha = await store.candidates.get_by_key("alpha")
        assert alpha.rating == 1600.0
        assert alpha.rating_deviation == 200.0
        assert alpha.conservative_rating == pytest.approx(1200.0)
        assert alpha.shown_count == 0

    async def test_idempotent_and_keeps_ratings(self, arena_config, maintenance, store, candidates):
        """Test onboarding again updates metadata but not rating state."""
        await _play(arena_config, store, candidates)
        renamed = [CandidateSpec(key="alpha", display_name="Alpha Prime")]

        results = await maintenance.onboard_candidates(renamed)

        assert [created for _, created in results] == [False]
        alpha = await store.candidates.get_by_key("alpha")
        assert alpha.display_name == "Alpha Prime"
        assert alpha.wins == 2
        assert alpha.rating > 1500.0

    async def test_disable_and_reenable(self, store, candidates):
        """Test candidates are disabled rather than deleted."""
        await store.candidates.set_enabled("beta", False)
        enabled = await store.candidates.list_candidates(enabled_only=True)
        assert "beta" not in {c.key for c in enabled}
        assert len(await store.candidates.list_candidates()) == 5

        assert await store.candidates.set_enabled("unknown", False) is None


class TestResetRatings:
    """Tests for rating reset."""

    async def test_reset_deletes_history(self, arena_config, maintenance, store, candidates):
        """Test a full reset clears votes, matchups and counters."""
        await _play(arena_config, store, candidates)

        result = await maintenance.reset_ratings()

        assert result == {"candidates": 5, "votes": 3, "matchups": 2}
        assert await store.votes.count_votes() == 0
        alpha = await store.candidates.get_by_key("alpha")
        assert (alpha.rating, alpha.wins, alpha.losses) == (1500.0, 0, 0)
        assert alpha.shown_count == 0

    async def test_reset_keeps_history(self, arena_config, maintenance, store, candidates):
        """Test history survives when asked to keep it."""
        await _play(arena_config, store, candidates)

        result = await maintenance.reset_ratings(keep_history=True)

        assert result["votes"] == 0
        assert await store.votes.count_votes() == 3
        gamma = await store.candidates.get_by_key("gamma")
        assert gamma.both_bad == 0


class TestRecompute:
    """Tests for replaying the vote history."""

    async def test_dry_run_matches_live_state(self, arena_config, maintenance, store, candidates):
        """Test replaying the history reproduces the stored ratings."""
        await _play(arena_config, store, candidates)

        report = await maintenance.recompute_from_history()

        assert report.votes_replayed == 3
        assert not report.applied
        for diff in report.diffs:
            assert diff.rating_after == pytest.approx(diff.rating_before)
            assert diff.deviation_after == pytest.approx(diff.deviation_before)

    async def test_apply_restores_reset_ratings(
        self, arena_config, maintenance, store, candidates
    ):
        """Test applying a replay rebuilds ratings after a reset that kept history."""
        await _play(arena_config, store, candidates)
        before = {c.key: c for c in await store.candidates.list_candidates()}
        await maintenance.reset_ratings(keep_history=True)

        report = await maintenance.recompute_from_history(apply=True)

        assert report.applied
        assert report.diffs[0].score_delta != 0
        after = {c.key: c for c in await store.candidates.list_candidates()}
        for key, candidate in before.items():
            assert after[key].rating == pytest.approx(candidate.rating)
            assert after[key].conservative_rating == pytest.approx(candidate.conservative_rating)
            assert after[key].wins == candidate.wins
            assert after[key].both_bad == candidate.both_bad

    async def test_diffs_sorted_by_score_change(
        self, arena_config, maintenance, store, candidates
    ):
        """Test the largest rank score changes are listed first."""
        await _play(arena_config, store, candidates)
        await maintenance.reset_ratings(keep_history=True)

        report = await maintenance.recompute_from_history()

        deltas = [abs(d.score_delta) for d in report.diffs]
        assert deltas == sorted(deltas, reverse=True)
