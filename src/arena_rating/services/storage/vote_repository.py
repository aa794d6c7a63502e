"""Transactional vote recording and vote history queries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, func, select

from arena_rating.core.errors import DuplicateVoteError, StoreError
from arena_rating.models import Candidate, Matchup, Vote

from .repository import AsyncRepository, store_operation

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from arena_rating.ranking import RatingChange, RatingState

logger = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"
VOTE_UNIQUE_CONSTRAINT = "uq_vote_matchup_session"

ComputeChanges = Callable[["RatingState", "RatingState"], tuple["RatingChange", "RatingChange"]]


@dataclass(frozen=True)
class CommittedVote:
    """A vote and the rating changes committed with it."""

    vote_id: str
    matchup_id: str
    session_id: str
    choice: str
    changes: dict[str, RatingChange]


def _is_duplicate_vote(error: IntegrityError) -> bool:
    """Tell a (matchup, session) uniqueness violation from other integrity errors."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig).lower()
    if VOTE_UNIQUE_CONSTRAINT in message:
        return True
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return "vote" in message
    return "unique" in message and "vote.matchup_id" in message


def apply_change(candidate: Candidate, change: RatingChange) -> None:
    """Write new rating fields and add counter increments to a candidate row."""
    for field, value in change.as_fields().items():
        setattr(candidate, field, value)
    for field, increment in change.as_increments().items():
        setattr(candidate, field, getattr(candidate, field) + increment)
    candidate.updated_at = datetime.now(UTC)


class VoteRepository(AsyncRepository):
    """Unit of work for votes: insert the vote and update both candidates atomically."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    @staticmethod
    def _lock_candidates(session: Session, candidate_ids: list[str]) -> dict[str, Candidate]:
        """Load candidate rows with a write lock, in id order to avoid deadlocks."""
        statement = (
            select(Candidate)
            .where(col(Candidate.id).in_(sorted(candidate_ids)))
            .order_by(col(Candidate.id))
            .with_for_update()
        )
        return {c.id: c for c in session.exec(statement).all()}

    async def commit_vote(
        self,
        matchup: Matchup,
        session_id: str,
        choice: str,
        compute: ComputeChanges,
    ) -> CommittedVote:
        """Record a vote and apply its rating changes in one transaction.

        The vote row is flushed first so a duplicate (matchup, session) aborts
        before any candidate row is read. Rating changes are computed from the
        candidate rows as they stand under the lock.

        Args:
            matchup: The matchup being voted on.
            session_id: Caller identity attached by the boundary layer.
            choice: Raw choice ("A", "B", "TIE", "BOTH_BAD").
            compute: Pure function mapping (state_a, state_b) to their changes.

        Returns:
            The committed vote with the applied changes.

        Raises:
            DuplicateVoteError: The session already voted on this matchup.
            StoreError: Any other storage failure. Nothing was committed.
        """
        a_id, b_id = matchup.candidate_a_id, matchup.candidate_b_id

        def _commit(session: Session) -> CommittedVote:
            vote = Vote(matchup_id=matchup.id, session_id=session_id, choice=choice)
            session.add(vote)
            session.flush()

            locked = self._lock_candidates(session, [a_id, b_id])
            if a_id not in locked or b_id not in locked:
                msg = f"Matchup {matchup.id} references a missing candidate"
                raise LookupError(msg)

            # History order must follow commit order for votes sharing a candidate.
            vote.created_at = datetime.now(UTC)
            session.add(vote)

            candidate_a, candidate_b = locked[a_id], locked[b_id]
            change_a, change_b = compute(candidate_a.state, candidate_b.state)
            apply_change(candidate_a, change_a)
            apply_change(candidate_b, change_b)
            session.add(candidate_a)
            session.add(candidate_b)

            stored_matchup = session.get(Matchup, matchup.id)
            if stored_matchup is not None and stored_matchup.status != "resolved":
                stored_matchup.status = "resolved"
                session.add(stored_matchup)

            return CommittedVote(
                vote_id=vote.id,
                matchup_id=matchup.id,
                session_id=session_id,
                choice=choice,
                changes={a_id: change_a, b_id: change_b},
            )

        try:
            return await self._run_transaction(_commit)
        except IntegrityError as e:
            if _is_duplicate_vote(e):
                raise DuplicateVoteError(matchup.id, session_id) from e
            logger.error("vote_commit_failed", matchup_id=matchup.id, error=str(e.orig))
            raise StoreError("vote commit") from e
        except (SQLAlchemyError, LookupError) as e:
            logger.error("vote_commit_failed", matchup_id=matchup.id, error=str(e))
            raise StoreError("vote commit") from e

    @store_operation("vote history read")
    async def get_history(self) -> list[tuple[Vote, Matchup]]:
        """Every vote with its matchup, in (created_at, id) order."""

        def _get(session: Session) -> list[tuple[Vote, Matchup]]:
            statement = (
                select(Vote, Matchup)
                .join(Matchup, col(Vote.matchup_id) == col(Matchup.id))
                .order_by(col(Vote.created_at), col(Vote.id))
            )
            return [(vote, matchup) for vote, matchup in session.exec(statement).all()]

        return await self._run_session(_get)

    @store_operation("vote count")
    async def count_votes(self, session_id: str | None = None) -> int:
        """Count recorded votes, optionally for one session."""

        def _count(session: Session) -> int:
            statement = select(func.count()).select_from(Vote)
            if session_id is not None:
                statement = statement.where(Vote.session_id == session_id)
            return int(session.exec(statement).one())

        return await self._run_session(_count)

    @store_operation("candidate history read")
    async def get_candidate_history(self, candidate_id: str) -> list[tuple[Vote, Matchup]]:
        """Votes on matchups the candidate appeared in, newest first."""

        def _get(session: Session) -> list[tuple[Vote, Matchup]]:
            statement = (
                select(Vote, Matchup)
                .join(Matchup, col(Vote.matchup_id) == col(Matchup.id))
                .where(
                    (col(Matchup.candidate_a_id) == candidate_id)
                    | (col(Matchup.candidate_b_id) == candidate_id)
                )
                .order_by(col(Vote.created_at).desc(), col(Vote.id).desc())
            )
            return [(vote, matchup) for vote, matchup in session.exec(statement).all()]

        return await self._run_session(_get)
