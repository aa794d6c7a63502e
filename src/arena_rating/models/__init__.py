"""SQLModel tables backing the rating store."""

from arena_rating.models.candidate import Candidate
from arena_rating.models.matchup import Matchup
from arena_rating.models.snapshot import RankSnapshot
from arena_rating.models.vote import Vote

__all__ = ["Candidate", "Matchup", "RankSnapshot", "Vote"]
