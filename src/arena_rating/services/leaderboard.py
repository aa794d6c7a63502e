"""Leaderboard building, rank snapshots, and leaderboard reports."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from statistics import fmean

import structlog
from pydantic import BaseModel, Field
from tabulate import tabulate

from arena_rating.core.config import ArenaConfig
from arena_rating.models import Candidate, Matchup, RankSnapshot, Vote
from arena_rating.ranking import confidence_from_deviation, stability_tier
from arena_rating.ranking.conservative import StabilityTier, summarize_votes
from arena_rating.services.storage import ArenaStore, ReportGenerator

logger = structlog.get_logger()

RANK_DELTA_WINDOW = timedelta(hours=24)
RECENT_FORM_WINDOW = 30


class LeaderboardEntry(BaseModel):
    """One ranked candidate as shown on the leaderboard.

    Attributes:
        rank_delta_24h: Positions gained since the latest snapshot at least
            24 hours old (positive means moved up), None without one.
    """

    rank: int
    candidate_id: str
    key: str
    display_name: str
    rank_score: float
    rating: float
    rating_deviation: float
    confidence: int
    stability: StabilityTier
    wins: int
    losses: int
    draws: int
    both_bad: int
    total_votes: int
    shown_count: int = 0
    rank_delta_24h: int | None = None


def floor_to_hour(at: datetime) -> datetime:
    """Floor a timestamp to the start of its UTC hour. Naive values are taken as UTC."""
    at = at.replace(tzinfo=UTC) if at.tzinfo is None else at.astimezone(UTC)
    return at.replace(minute=0, second=0, microsecond=0)


def build_entries(
    candidates: list[Candidate], prior_ranks: dict[str, int] | None = None
) -> list[LeaderboardEntry]:
    """Convert candidates, already in leaderboard order, to ranked entries.

    Args:
        candidates: Candidates sorted by conservative rating desc, then name.
        prior_ranks: Earlier rank per candidate id, for the rank delta.

    Returns:
        Entries ranked from 1.
    """
    prior_ranks = prior_ranks or {}
    entries = []
    for rank, c in enumerate(candidates, 1):
        prior = prior_ranks.get(c.id)
        entries.append(
            LeaderboardEntry(
                rank=rank,
                candidate_id=c.id,
                key=c.key,
                display_name=c.display_name,
                rank_score=c.conservative_rating,
                rating=c.rating,
                rating_deviation=c.rating_deviation,
                confidence=confidence_from_deviation(c.rating_deviation),
                stability=stability_tier(c.decisive_votes, c.rating_deviation),
                wins=c.wins,
                losses=c.losses,
                draws=c.draws,
                both_bad=c.both_bad,
                total_votes=c.total_votes,
                shown_count=c.shown_count,
                rank_delta_24h=None if prior is None else prior - rank,
            )
        )
    return entries


def render_table(entries: list[LeaderboardEntry]) -> str:
    """Render entries as a plain-text table."""
    headers = ["#", "Candidate", "Score", "Rating", "RD", "Conf", "Tier", "W-L-D", "Bad", "24h"]
    rows = [
        [
            e.rank,
            e.display_name,
            f"{e.rank_score:.1f}",
            f"{e.rating:.1f}",
            f"{e.rating_deviation:.1f}",
            f"{e.confidence}%",
            e.stability,
            f"{e.wins}-{e.losses - e.both_bad}-{e.draws}",
            e.both_bad,
            "" if e.rank_delta_24h is None else f"{e.rank_delta_24h:+d}",
        ]
        for e in entries
    ]
    return tabulate(rows, headers=headers, tablefmt="github")


class OpponentRecord(BaseModel):
    """Head-to-head results against one opponent.

    ``votes`` and ``average_score`` cover A, B and TIE votes only; both-bad
    votes are counted separately.
    """

    key: str
    display_name: str
    votes: int
    average_score: float
    wins: int
    losses: int
    draws: int
    both_bad: int


class CandidateDetail(BaseModel):
    """Rating state, vote statistics and opponent breakdown of one candidate.

    Attributes:
        win_rate: Wins over decisive votes, None before any.
        recent_form: Mean score of the latest scored votes, None without any.
        recent_delta: Recent form minus the form of the window before it.
        quality_floor_score: Share of votes not judged both-bad.
    """

    key: str
    display_name: str
    rating: float
    rating_deviation: float
    rank_score: float
    confidence: int
    stability: StabilityTier
    shown_count: int
    wins: int
    losses: int
    draws: int
    both_bad: int
    total_votes: int
    decisive_votes: int
    win_rate: float | None = None
    recent_form: float | None = None
    recent_delta: float | None = None
    quality_floor_score: float | None = None
    opponents: list[OpponentRecord] = Field(default_factory=list)


def vote_score(choice: str, on_side_a: bool) -> float | None:
    """Score of a vote from one side's view: 1 win, 0 loss, 0.5 tie, None both-bad."""
    if choice == "TIE":
        return 0.5
    if choice == "A":
        return 1.0 if on_side_a else 0.0
    if choice == "B":
        return 0.0 if on_side_a else 1.0
    return None


@dataclass
class _Tally:
    scores: list[float] = field(default_factory=list)
    both_bad: int = 0

    def add(self, score: float | None) -> None:
        if score is None:
            self.both_bad += 1
        else:
            self.scores.append(score)


def build_detail(
    candidate: Candidate,
    history: Sequence[tuple[Vote, Matchup]],
    opponents: dict[str, Candidate],
) -> CandidateDetail:
    """Compute detail statistics from a candidate's vote history.

    Args:
        candidate: The candidate described.
        history: Votes on the candidate's matchups, newest first.
        opponents: Opponent candidates keyed by id.

    Returns:
        Detail with opponents ordered by votes, then average score.
    """
    tallies: dict[str, _Tally] = {}
    scores: list[float] = []
    for vote, matchup in history:
        on_side_a = matchup.candidate_a_id == candidate.id
        opponent_id = matchup.candidate_b_id if on_side_a else matchup.candidate_a_id
        score = vote_score(vote.choice, on_side_a)
        tallies.setdefault(opponent_id, _Tally()).add(score)
        if score is not None:
            scores.append(score)

    records = [
        OpponentRecord(
            key=opponents[opponent_id].key,
            display_name=opponents[opponent_id].display_name,
            votes=len(t.scores),
            average_score=fmean(t.scores) if t.scores else 0.0,
            wins=t.scores.count(1.0),
            losses=t.scores.count(0.0),
            draws=t.scores.count(0.5),
            both_bad=t.both_bad,
        )
        for opponent_id, t in tallies.items()
    ]
    records.sort(key=lambda r: (-r.votes, -r.average_score, r.key))

    recent = scores[:RECENT_FORM_WINDOW]
    prior = scores[RECENT_FORM_WINDOW : RECENT_FORM_WINDOW * 2]
    recent_form = fmean(recent) if recent else None
    prior_form = fmean(prior) if prior else None

    summary = summarize_votes(candidate.wins, candidate.losses, candidate.draws, candidate.both_bad)
    return CandidateDetail(
        key=candidate.key,
        display_name=candidate.display_name,
        rating=candidate.rating,
        rating_deviation=candidate.rating_deviation,
        rank_score=candidate.conservative_rating,
        confidence=confidence_from_deviation(candidate.rating_deviation),
        stability=stability_tier(summary.decisive_votes, candidate.rating_deviation),
        shown_count=candidate.shown_count,
        wins=candidate.wins,
        losses=candidate.losses,
        draws=candidate.draws,
        both_bad=candidate.both_bad,
        total_votes=summary.total_votes,
        decisive_votes=summary.decisive_votes,
        win_rate=candidate.wins / summary.decisive_votes if summary.decisive_votes else None,
        recent_form=recent_form,
        recent_delta=(
            recent_form - prior_form if recent_form is not None and prior_form is not None else None
        ),
        quality_floor_score=(
            max(0.0, 1 - candidate.both_bad / summary.total_votes) if summary.total_votes else None
        ),
        opponents=records,
    )


def render_opponents(detail: CandidateDetail) -> str:
    """Render the head-to-head breakdown as a plain-text table."""
    headers = ["Opponent", "Votes", "Avg", "W-L-D", "Bad"]
    rows = [
        [
            r.display_name,
            r.votes,
            f"{r.average_score:.2f}",
            f"{r.wins}-{r.losses}-{r.draws}",
            r.both_bad,
        ]
        for r in detail.opponents
    ]
    return tabulate(rows, headers=headers, tablefmt="github")


class LeaderboardService:
    """Read the ranked leaderboard and keep hourly rank snapshots."""

    def __init__(self, config: ArenaConfig, store: ArenaStore) -> None:
        self.config = config
        self.store = store

    async def get_leaderboard(self, now: datetime | None = None) -> list[LeaderboardEntry]:
        """Current leaderboard with rank movement over the last 24 hours."""
        now = now or datetime.now(UTC)
        candidates = await self.store.candidates.get_leaderboard()

        prior_ranks: dict[str, int] = {}
        prior_at = await self.store.snapshots.latest_capture_at_or_before(now - RANK_DELTA_WINDOW)
        if prior_at is not None:
            prior_ranks = await self.store.snapshots.get_ranks(prior_at)

        return build_entries(candidates, prior_ranks)

    async def get_candidate_detail(self, key: str) -> CandidateDetail | None:
        """Detail statistics of a ranked candidate.

        Args:
            key: Candidate identity key.

        Returns:
            The detail, or None when the key is unknown or the candidate is
            disabled or a baseline.
        """
        candidate = await self.store.candidates.get_by_key(key)
        if candidate is None or not candidate.enabled or candidate.is_baseline:
            return None

        history = await self.store.votes.get_candidate_history(candidate.id)
        opponent_ids = {
            m.candidate_b_id if m.candidate_a_id == candidate.id else m.candidate_a_id
            for _, m in history
        }
        opponents = await self.store.candidates.get_candidates(sorted(opponent_ids))
        return build_detail(candidate, history, opponents)

    async def capture_snapshot(self, at: datetime | None = None) -> tuple[datetime, int]:
        """Store the current ranks under the hour containing ``at``.

        Capturing twice in the same hour overwrites the earlier rows.

        Returns:
            Tuple of (capture hour, number of candidates captured).
        """
        captured_at = floor_to_hour(at or datetime.now(UTC))
        candidates = await self.store.candidates.get_leaderboard()
        rows = [
            RankSnapshot(
                captured_at=captured_at,
                candidate_id=e.candidate_id,
                rank=e.rank,
                rank_score=e.rank_score,
                confidence=e.confidence,
            )
            for e in build_entries(candidates)
        ]
        count = await self.store.snapshots.upsert_snapshots(captured_at, rows)
        logger.info("snapshot_captured", captured_at=captured_at.isoformat(), candidates=count)
        return captured_at, count

    async def export(self, output_dir: Path | None = None) -> list[Path]:
        """Write the leaderboard as Markdown, CSV and JSON files."""
        entries = await self.get_leaderboard()
        generator = ReportGenerator(output_dir or Path(self.config.export_dir))
        return await generator.save_leaderboard(entries)
