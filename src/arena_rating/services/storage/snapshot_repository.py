"""Database persistence for leaderboard rank snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlmodel import Session, col, func, select

from arena_rating.models import RankSnapshot

from .repository import AsyncRepository, store_operation

if TYPE_CHECKING:
    from sqlalchemy import Engine


class SnapshotRepository(AsyncRepository):
    """Persist and query hourly rank snapshots."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    @store_operation("snapshot write")
    async def upsert_snapshots(
        self, captured_at: datetime, entries: list[RankSnapshot]
    ) -> int:
        """Replace the snapshot rows for one capture time.

        Rows for candidates no longer ranked at that time are removed.
        """
        ranked = {entry.candidate_id for entry in entries}

        def _upsert(session: Session) -> int:
            existing = {
                s.candidate_id: s
                for s in session.exec(
                    select(RankSnapshot).where(RankSnapshot.captured_at == captured_at)
                ).all()
            }
            for candidate_id, stale in existing.items():
                if candidate_id not in ranked:
                    session.delete(stale)
            for entry in entries:
                row = existing.get(entry.candidate_id)
                if row is None:
                    row = RankSnapshot(
                        captured_at=captured_at,
                        candidate_id=entry.candidate_id,
                        rank=entry.rank,
                        rank_score=entry.rank_score,
                        confidence=entry.confidence,
                    )
                else:
                    row.rank = entry.rank
                    row.rank_score = entry.rank_score
                    row.confidence = entry.confidence
                session.add(row)
            return len(entries)

        return await self._run_transaction(_upsert)

    @store_operation("snapshot read")
    async def latest_capture_at_or_before(self, cutoff: datetime) -> datetime | None:
        """Most recent capture time that is not later than cutoff."""

        def _get(session: Session) -> datetime | None:
            statement = select(func.max(RankSnapshot.captured_at)).where(
                col(RankSnapshot.captured_at) <= cutoff
            )
            return session.exec(statement).one()

        return await self._run_session(_get)

    @store_operation("snapshot read")
    async def get_ranks(self, captured_at: datetime) -> dict[str, int]:
        """Rank of each candidate at a capture time, keyed by candidate id."""

        def _get(session: Session) -> dict[str, int]:
            statement = select(RankSnapshot).where(RankSnapshot.captured_at == captured_at)
            return {s.candidate_id: s.rank for s in session.exec(statement).all()}

        return await self._run_session(_get)
