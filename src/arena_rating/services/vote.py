"""Vote transaction coordinator and its request/response boundary."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from arena_rating.core.config import ArenaConfig
from arena_rating.core.errors import (
    ArenaError,
    MatchupNotFoundError,
    VoteValidationError,
)
from arena_rating.core.types import VoteChoice
from arena_rating.ranking import (
    Outcome,
    RatingChange,
    RatingState,
    apply_configured_outcome,
    outcome_from_choice,
)
from arena_rating.services.storage import ArenaStore, CommittedVote
from arena_rating.services.storage.vote_repository import ComputeChanges

logger = structlog.get_logger()


class VoteRequest(BaseModel):
    """Raw vote payload as received from a caller."""

    matchup_id: str = Field(min_length=1)
    choice: VoteChoice


class VoteResponse(BaseModel):
    """Outcome of a vote request. Never carries rating values."""

    status_code: int
    ok: bool
    vote_id: str | None = None
    matchup_id: str | None = None
    error: str | None = None


class VoteService:
    """Validate votes and commit them together with their rating changes.

    A vote moves RECEIVED -> VALIDATED -> COMMITTED, or is REJECTED with an
    ``ArenaError`` before anything is written. Nothing is retried: every
    rating mutation belongs to exactly one vote event.
    """

    def __init__(self, config: ArenaConfig, store: ArenaStore) -> None:
        self.config = config
        self.store = store

    def _compute(self, outcome: Outcome) -> ComputeChanges:
        def compute(a: RatingState, b: RatingState) -> tuple[RatingChange, RatingChange]:
            return apply_configured_outcome(self.config.rating, a, b, outcome)

        return compute

    async def submit_vote(self, matchup_id: str, choice: str, session_id: str) -> CommittedVote:
        """Record one vote and apply its rating update atomically.

        Args:
            matchup_id: Matchup being voted on.
            choice: One of "A", "B", "TIE", "BOTH_BAD".
            session_id: Caller identity attached by the boundary layer.

        Returns:
            The committed vote and the rating changes applied with it.

        Raises:
            InvalidChoiceError: Unrecognized choice.
            MatchupNotFoundError: Unknown matchup, or one whose candidates are gone.
            DuplicateVoteError: This session already voted on the matchup.
            StoreError: Storage failure; no mutation occurred.
        """
        try:
            if not session_id or not session_id.strip():
                msg = "Session id is required"
                raise VoteValidationError(msg)
            outcome = outcome_from_choice(choice)

            matchup = await self.store.matchups.get_matchup(matchup_id)
            if matchup is None:
                raise MatchupNotFoundError(matchup_id)
            candidates = await self.store.candidates.get_candidates(
                [matchup.candidate_a_id, matchup.candidate_b_id]
            )
            if matchup.candidate_a_id not in candidates or matchup.candidate_b_id not in candidates:
                raise MatchupNotFoundError(matchup_id)

            committed = await self.store.votes.commit_vote(
                matchup, session_id, choice, self._compute(outcome)
            )
        except ArenaError as e:
            logger.info(
                "vote_rejected",
                matchup_id=matchup_id,
                session_id=session_id,
                reason=type(e).__name__,
                status_code=e.status_code,
            )
            raise

        logger.info(
            "vote_committed",
            vote_id=committed.vote_id,
            matchup_id=matchup_id,
            session_id=session_id,
            outcome=outcome.value,
        )
        return committed

    async def handle(self, payload: dict[str, Any] | None, session_id: str) -> VoteResponse:
        """Request/response boundary for vote submission.

        Args:
            payload: Raw request body with ``matchup_id`` and ``choice``.
            session_id: Session identity resolved by the boundary layer.

        Returns:
            A response with status 200 on success, or the rejection status
            (400, 404, 409, 500) and a caller-safe error message.
        """
        try:
            request = VoteRequest.model_validate(payload or {})
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            return VoteResponse(
                status_code=VoteValidationError.status_code,
                ok=False,
                error=f"Invalid request: {', '.join(fields) or 'body'}",
            )

        try:
            committed = await self.submit_vote(request.matchup_id, request.choice, session_id)
        except ArenaError as e:
            return VoteResponse(
                status_code=e.status_code,
                ok=False,
                matchup_id=request.matchup_id,
                error=e.message,
            )

        return VoteResponse(
            status_code=200,
            ok=True,
            vote_id=committed.vote_id,
            matchup_id=committed.matchup_id,
        )
