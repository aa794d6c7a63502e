"""Tests for the leaderboard, rank snapshots and exports."""

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest

from arena_rating.models import Candidate, Matchup, Vote
from arena_rating.services.leaderboard import (
    RECENT_FORM_WINDOW,
    LeaderboardService,
    build_detail,
    floor_to_hour,
    render_opponents,
    render_table,
    vote_score,
)
from arena_rating.services.vote import VoteService


@pytest.fixture
def leaderboard(arena_config, store):
    return LeaderboardService(arena_config, store)


async def _vote(arena_config, store, winner, loser, session="s1"):
    matchup = await store.matchups.create_matchup(winner.id, loser.id)
    await VoteService(arena_config, store).submit_vote(matchup.id, "A", session)


class TestFloorToHour:
    """Tests for snapshot hour flooring."""

    def test_floors_aware_timestamp(self):
        """Test minutes and below are dropped in UTC."""
        at = datetime(2026, 3, 1, 14, 59, 59, 999, tzinfo=UTC)
        assert floor_to_hour(at) == datetime(2026, 3, 1, 14, tzinfo=UTC)

    def test_converts_to_utc(self):
        """Test offsets are normalized to UTC first."""
        at = datetime(2026, 3, 1, 14, 30, tzinfo=timezone(timedelta(hours=5)))
        assert floor_to_hour(at) == datetime(2026, 3, 1, 9, tzinfo=UTC)

    def test_naive_taken_as_utc(self):
        """Test naive timestamps are treated as UTC."""
        assert floor_to_hour(datetime(2026, 3, 1, 9, 5)) == datetime(2026, 3, 1, 9, tzinfo=UTC)


class TestLeaderboard:
    """Tests for leaderboard ordering and entries."""

    async def test_excludes_baselines_and_disabled(self, leaderboard, store, candidates):
        """Test only enabled, non-baseline candidates are ranked."""
        await store.candidates.set_enabled("delta", False)
        entries = await leaderboard.get_leaderboard()
        assert [e.key for e in entries] == ["alpha", "beta", "gamma"]

    async def test_ties_ordered_by_display_name(self, leaderboard, candidates):
        """Test equal rank scores fall back to display name."""
        entries = await leaderboard.get_leaderboard()
        assert [e.display_name for e in entries] == ["Alpha", "Beta", "Delta", "Gamma"]
        assert [e.rank for e in entries] == [1, 2, 3, 4]

    async def test_fresh_entries(self, leaderboard, candidates):
        """Test a fresh candidate has zero confidence and is provisional."""
        entry = (await leaderboard.get_leaderboard())[0]
        assert entry.rank_score == pytest.approx(800.0)
        assert entry.confidence == 0
        assert entry.stability == "Provisional"
        assert entry.rank_delta_24h is None

    async def test_winner_moves_up(self, arena_config, leaderboard, store, candidates):
        """Test a vote reorders the leaderboard by rank score."""
        await _vote(arena_config, store, candidates["gamma"], candidates["alpha"])
        entries = await leaderboard.get_leaderboard()
        assert [e.key for e in entries] == ["gamma", "alpha", "beta", "delta"]
        assert entries[0].wins == 1
        assert entries[1].losses == 1
        assert entries[0].confidence > 0


class TestSnapshots:
    """Tests for hourly rank snapshots and rank movement."""

    async def test_capture_floors_and_counts(self, leaderboard, candidates):
        """Test a capture stores one row per ranked candidate."""
        at = datetime(2026, 5, 4, 10, 42, tzinfo=UTC)
        captured_at, count = await leaderboard.capture_snapshot(at)
        assert captured_at == datetime(2026, 5, 4, 10, tzinfo=UTC)
        assert count == 4

    async def test_capture_twice_in_an_hour_overwrites(self, leaderboard, store, candidates):
        """Test a second capture in the same hour replaces the first."""
        await leaderboard.capture_snapshot(datetime(2026, 5, 4, 10, 5, tzinfo=UTC))
        await store.candidates.set_enabled("alpha", False)
        await leaderboard.capture_snapshot(datetime(2026, 5, 4, 10, 55, tzinfo=UTC))

        captured = await store.snapshots.latest_capture_at_or_before(
            datetime(2026, 5, 4, 11, tzinfo=UTC)
        )
        ranks = await store.snapshots.get_ranks(captured)
        assert ranks[candidates["beta"].id] == 1
        assert candidates["alpha"].id not in ranks

    async def test_rank_delta_against_day_old_snapshot(
        self, arena_config, leaderboard, store, candidates
    ):
        """Test rank movement is measured against a snapshot at least 24h old."""
        now = datetime.now(UTC)
        await leaderboard.capture_snapshot(now - timedelta(hours=25))
        await _vote(arena_config, store, candidates["gamma"], candidates["alpha"])

        entries = {e.key: e for e in await leaderboard.get_leaderboard(now)}
        assert entries["gamma"].rank_delta_24h == 3
        assert entries["alpha"].rank_delta_24h == -1
        assert entries["delta"].rank_delta_24h == -1

    async def test_recent_snapshot_is_ignored(self, arena_config, leaderboard, store, candidates):
        """Test snapshots newer than 24 hours do not feed the delta."""
        now = datetime.now(UTC)
        await leaderboard.capture_snapshot(now - timedelta(hours=2))
        entries = await leaderboard.get_leaderboard(now)
        assert all(e.rank_delta_24h is None for e in entries)


class TestReports:
    """Tests for plain-text and file exports."""

    async def test_render_table(self, arena_config, leaderboard, store, candidates):
        """Test the table lists candidates and the movement column."""
        await _vote(arena_config, store, candidates["beta"], candidates["alpha"])
        table = render_table(await leaderboard.get_leaderboard())
        assert "Beta" in table
        assert "1-0-0" in table
        assert table.splitlines()[0].startswith("|")

    async def test_export_writes_files(self, leaderboard, tmp_path, candidates):
        """Test Markdown, CSV and JSON files are written."""
        paths = await leaderboard.export(tmp_path / "out")
        assert [p.name for p in paths] == ["leaderboard.md", "leaderboard.csv", "leaderboard.json"]

        data = json.loads(paths[2].read_text(encoding="utf-8"))
        assert [row["key"] for row in data] == ["alpha", "beta", "delta", "gamma"]
        csv_lines = paths[1].read_text(encoding="utf-8").splitlines()
        assert csv_lines[0].startswith("rank,key,display_name")
        assert len(csv_lines) == 5
        assert "| 1 | Alpha |" in paths[0].read_text(encoding="utf-8")

    async def test_export_defaults_to_config_dir(self, arena_config, leaderboard, candidates):
        """Test the configured export directory is used by default."""
        paths = await leaderboard.export()
        assert all(str(p).startswith(arena_config.export_dir) for p in paths)


class TestCandidateDetail:
    """Tests for per-candidate detail statistics."""

    async def _play(self, arena_config, store, candidates):
        votes = VoteService(arena_config, store)
        alpha = candidates["alpha"]
        first = await store.matchups.create_matchup(alpha.id, candidates["beta"].id)
        await votes.submit_vote(first.id, "A", "s1")
        await votes.submit_vote(first.id, "A", "s2")
        second = await store.matchups.create_matchup(candidates["gamma"].id, alpha.id)
        await votes.submit_vote(second.id, "TIE", "s1")
        third = await store.matchups.create_matchup(alpha.id, candidates["delta"].id)
        await votes.submit_vote(third.id, "BOTH_BAD", "s1")

    async def test_summary(self, arena_config, leaderboard, store, candidates):
        """Test counters, win rate and quality floor of a played candidate."""
        await self._play(arena_config, store, candidates)

        detail = await leaderboard.get_candidate_detail("alpha")

        assert (detail.wins, detail.losses, detail.draws, detail.both_bad) == (2, 1, 1, 1)
        assert detail.shown_count == 3
        assert detail.total_votes == 4
        assert detail.decisive_votes == 3
        assert detail.win_rate == pytest.approx(2 / 3)
        assert detail.quality_floor_score == pytest.approx(0.75)
        assert detail.recent_form == pytest.approx(2.5 / 3)
        assert detail.recent_delta is None

    async def test_opponent_breakdown(self, arena_config, leaderboard, store, candidates):
        """Test head-to-head records are scored from the candidate's side."""
        await self._play(arena_config, store, candidates)

        detail = await leaderboard.get_candidate_detail("alpha")

        by_key = {r.key: r for r in detail.opponents}
        assert [r.key for r in detail.opponents] == ["beta", "gamma", "delta"]
        assert (by_key["beta"].votes, by_key["beta"].wins) == (2, 2)
        assert by_key["beta"].average_score == pytest.approx(1.0)
        assert (by_key["gamma"].draws, by_key["gamma"].average_score) == (1, 0.5)
        assert (by_key["delta"].votes, by_key["delta"].both_bad) == (0, 1)
        assert "Beta" in render_opponents(detail)

    async def test_losing_side(self, arena_config, leaderboard, store, candidates):
        """Test the beaten candidate sees losses against the winner."""
        await self._play(arena_config, store, candidates)

        detail = await leaderboard.get_candidate_detail("beta")

        assert [(r.key, r.losses, r.average_score) for r in detail.opponents] == [
            ("alpha", 2, 0.0)
        ]
        assert detail.win_rate == pytest.approx(0.0)

    async def test_fresh_candidate(self, leaderboard, candidates):
        """Test a candidate without votes has empty statistics."""
        detail = await leaderboard.get_candidate_detail("gamma")
        assert detail.opponents == []
        assert detail.win_rate is None
        assert detail.recent_form is None
        assert detail.quality_floor_score is None

    async def test_unranked_candidates_have_no_detail(self, leaderboard, store, candidates):
        """Test unknown, baseline and disabled candidates return None."""
        await store.candidates.set_enabled("delta", False)
        assert await leaderboard.get_candidate_detail("missing") is None
        assert await leaderboard.get_candidate_detail("floor") is None
        assert await leaderboard.get_candidate_detail("delta") is None


class TestBuildDetail:
    """Tests for detail statistics computed from history."""

    @pytest.mark.parametrize(
        ("choice", "on_side_a", "expected"),
        [("A", True, 1.0), ("A", False, 0.0), ("B", False, 1.0), ("TIE", True, 0.5)],
    )
    def test_vote_score(self, choice, on_side_a, expected):
        """Test scores are taken from the candidate's side of the matchup."""
        assert vote_score(choice, on_side_a) == expected

    def test_both_bad_has_no_score(self):
        """Test both-bad votes carry no head-to-head score."""
        assert vote_score("BOTH_BAD", True) is None

    def test_recent_form_delta(self):
        """Test recent form is compared with the window before it."""
        me = Candidate(id="me", key="me", display_name="Me", wins=30, losses=5)
        other = Candidate(id="other", key="other", display_name="Other")
        matchup = Matchup(id="m", candidate_a_id="me", candidate_b_id="other")
        newest_first = ["A"] * RECENT_FORM_WINDOW + ["B"] * 5
        history = [
            (Vote(matchup_id="m", session_id=f"s{i}", choice=choice), matchup)
            for i, choice in enumerate(newest_first)
        ]

        detail = build_detail(me, history, {"other": other})

        assert detail.recent_form == pytest.approx(1.0)
        assert detail.recent_delta == pytest.approx(1.0)
        assert detail.opponents[0].votes == 35
