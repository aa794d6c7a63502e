import uuid
from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Matchup(SQLModel, table=True):
    """An ordered pair of candidates presented for a comparison decision."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    candidate_a_id: str = Field(foreign_key="candidate.id", index=True)
    candidate_b_id: str = Field(foreign_key="candidate.id", index=True)
    sampling_lane: str | None = Field(default=None, index=True)
    sampling_reason: str | None = None
    status: str = "open"  # "open" until the first vote, then "resolved"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
