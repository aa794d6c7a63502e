"""Maintenance operations: history replay, rating reset, and onboarding."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from arena_rating.core.config import ArenaConfig, CandidateSpec
from arena_rating.models import Candidate
from arena_rating.ranking import apply_configured_outcome, outcome_from_choice
from arena_rating.services.storage import ArenaStore
from arena_rating.services.storage.candidate_repository import reset_candidate
from arena_rating.services.storage.vote_repository import apply_change

logger = structlog.get_logger()


@dataclass(frozen=True)
class RatingDiff:
    """Stored versus replayed rating state of one candidate."""

    candidate_id: str
    key: str
    rating_before: float
    rating_after: float
    deviation_before: float
    deviation_after: float
    score_before: float
    score_after: float

    @property
    def score_delta(self) -> float:
        return self.score_after - self.score_before


@dataclass
class RecomputeReport:
    """Result of replaying the vote history.

    Attributes:
        votes_replayed: Votes fed through the updaters.
        votes_skipped: Votes whose matchup references an unknown candidate.
        diffs: Per-candidate differences, largest rank score change first.
        applied: Whether the replayed state was written back.
    """

    votes_replayed: int = 0
    votes_skipped: int = 0
    diffs: list[RatingDiff] = field(default_factory=list)
    applied: bool = False


def _fresh_copy(candidate: Candidate, config: ArenaConfig) -> Candidate:
    replayed = Candidate(
        id=candidate.id,
        key=candidate.key,
        display_name=candidate.display_name,
        enabled=candidate.enabled,
        is_baseline=candidate.is_baseline,
    )
    reset_candidate(replayed, config.rating)
    return replayed


class MaintenanceService:
    """Operator commands that rebuild or reset rating state."""

    def __init__(self, config: ArenaConfig, store: ArenaStore) -> None:
        self.config = config
        self.store = store

    async def recompute_from_history(self, apply: bool = False) -> RecomputeReport:
        """Replay every vote from default state with the live updaters.

        Votes are replayed in (created_at, id) order. Run with ``apply=True``
        only while no votes are being accepted: votes committed between the
        history read and the write-back are not part of the replay.

        Args:
            apply: Overwrite stored rating state and counters with the replay.

        Returns:
            Report of replayed votes and per-candidate differences.
        """
        stored = {c.id: c for c in await self.store.candidates.list_candidates()}
        replayed = {cid: _fresh_copy(c, self.config) for cid, c in stored.items()}
        history = await self.store.votes.get_history()

        report = RecomputeReport()
        for vote, matchup in history:
            a = replayed.get(matchup.candidate_a_id)
            b = replayed.get(matchup.candidate_b_id)
            if a is None or b is None:
                logger.warning("recompute_vote_skipped", vote_id=vote.id, matchup_id=matchup.id)
                report.votes_skipped += 1
                continue
            outcome = outcome_from_choice(vote.choice)
            change_a, change_b = apply_configured_outcome(
                self.config.rating, a.state, b.state, outcome
            )
            apply_change(a, change_a)
            apply_change(b, change_b)
            report.votes_replayed += 1

        report.diffs = sorted(
            (
                RatingDiff(
                    candidate_id=cid,
                    key=stored[cid].key,
                    rating_before=stored[cid].rating,
                    rating_after=r.rating,
                    deviation_before=stored[cid].rating_deviation,
                    deviation_after=r.rating_deviation,
                    score_before=stored[cid].conservative_rating,
                    score_after=r.conservative_rating,
                )
                for cid, r in replayed.items()
            ),
            key=lambda d: (-abs(d.score_delta), d.key),
        )

        if apply:
            await self.store.candidates.replace_rating_state(replayed)
            report.applied = True

        logger.info(
            "recompute_complete",
            votes_replayed=report.votes_replayed,
            votes_skipped=report.votes_skipped,
            applied=report.applied,
        )
        return report

    async def reset_ratings(self, keep_history: bool = False) -> dict[str, int]:
        """Reset all candidates to onboarding state, deleting history unless kept."""
        return await self.store.candidates.reset_ratings(self.config.rating, keep_history)

    async def onboard_candidates(
        self, specs: Sequence[CandidateSpec] | None = None
    ) -> list[tuple[Candidate, bool]]:
        """Create or refresh candidates, defaulting to those in the configuration."""
        return await self.store.candidates.onboard(
            self.config.candidates if specs is None else specs, self.config.rating
        )
