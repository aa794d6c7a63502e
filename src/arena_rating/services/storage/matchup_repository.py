"""Database persistence for matchup records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlmodel import Session, col, select

from arena_rating.models import Candidate, Matchup, Vote

from .repository import AsyncRepository, store_operation

if TYPE_CHECKING:
    from sqlalchemy import Engine


class MatchupRepository(AsyncRepository):
    """Persist and query matchup records."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    @store_operation("matchup create")
    async def create_matchup(
        self,
        candidate_a_id: str,
        candidate_b_id: str,
        lane: str | None = None,
        reason: str | None = None,
    ) -> Matchup:
        """Persist a new open matchup and count the exposure of both candidates."""
        if candidate_a_id == candidate_b_id:
            msg = "A matchup needs two distinct candidates"
            raise ValueError(msg)

        def _create(session: Session) -> Matchup:
            matchup = Matchup(
                candidate_a_id=candidate_a_id,
                candidate_b_id=candidate_b_id,
                sampling_lane=lane,
                sampling_reason=reason,
            )
            session.add(matchup)
            session.flush()
            session.exec(  # type: ignore[call-overload]
                update(Candidate)
                .where(col(Candidate.id).in_([candidate_a_id, candidate_b_id]))
                .values(shown_count=Candidate.shown_count + 1)
            )
            return matchup

        return await self._run_transaction(_create)

    @store_operation("matchup read")
    async def get_matchup(self, matchup_id: str) -> Matchup | None:
        """Get a matchup by id, or None when it does not exist."""

        def _get(session: Session) -> Matchup | None:
            return session.get(Matchup, matchup_id)

        return await self._run_session(_get)

    @store_operation("matchup votes read")
    async def get_votes(self, matchup_id: str) -> list[Vote]:
        """All votes recorded against a matchup, oldest first."""

        def _get(session: Session) -> list[Vote]:
            statement = (
                select(Vote).where(Vote.matchup_id == matchup_id).order_by(Vote.created_at, Vote.id)
            )
            return list(session.exec(statement).all())

        return await self._run_session(_get)
