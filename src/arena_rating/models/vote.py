import uuid
from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Vote(SQLModel, table=True):
    """A single recorded decision on a matchup. Immutable once written."""

    __table_args__ = (
        UniqueConstraint("matchup_id", "session_id", name="uq_vote_matchup_session"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    matchup_id: str = Field(foreign_key="matchup.id", index=True)
    session_id: str = Field(index=True)
    choice: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
