import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class RankSnapshot(SQLModel, table=True):
    """Leaderboard position of a candidate captured at an hourly mark."""

    __table_args__ = (
        UniqueConstraint("captured_at", "candidate_id", name="uq_snapshot_captured_candidate"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    captured_at: datetime = Field(index=True)
    candidate_id: str = Field(foreign_key="candidate.id", index=True)
    rank: int
    rank_score: float
    confidence: int
