"""Candidate rating state model."""

import uuid
from datetime import UTC, datetime

from sqlmodel import Field, SQLModel

from arena_rating.ranking.conservative import conservative_rating, summarize_votes
from arena_rating.ranking.elo import INITIAL_RATING
from arena_rating.ranking.glicko import INITIAL_RD, INITIAL_VOLATILITY, RatingState


class Candidate(SQLModel, table=True):
    """A rateable entity compared in head-to-head matchups.

    Rating fields are only written by the vote transaction and the
    maintenance commands; ``conservative_rating`` is stored redundantly so
    leaderboard ordering is a plain indexed read.

    Column defaults are the built-in initial values. Configured initial
    values (``RatingConfig``) are applied by ``reset_candidate``, which
    onboarding calls for every new candidate; create rows through
    ``CandidateRepository.onboard`` rather than constructing them directly.
    ``shown_count`` counts the matchups the candidate was presented in.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    key: str = Field(unique=True, index=True)
    display_name: str
    enabled: bool = Field(default=True, index=True)
    is_baseline: bool = False
    rating: float = INITIAL_RATING
    rating_deviation: float = INITIAL_RD
    volatility: float = INITIAL_VOLATILITY
    conservative_rating: float = Field(
        default=conservative_rating(INITIAL_RATING, INITIAL_RD), index=True
    )
    wins: int = 0
    losses: int = 0
    draws: int = 0
    both_bad: int = 0
    shown_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def state(self) -> RatingState:
        """Snapshot of rating, deviation and volatility."""
        return RatingState(
            rating=self.rating,
            deviation=self.rating_deviation,
            volatility=self.volatility,
        )

    @property
    def total_votes(self) -> int:
        """Number of votes this candidate took part in."""
        return summarize_votes(self.wins, self.losses, self.draws, self.both_bad).total_votes

    @property
    def decisive_votes(self) -> int:
        """Votes that expressed a preference between the two candidates."""
        return summarize_votes(self.wins, self.losses, self.draws, self.both_bad).decisive_votes
