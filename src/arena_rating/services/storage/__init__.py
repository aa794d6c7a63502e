from .candidate_repository import CandidateRepository
from .engine import create_store_engine, init_schema
from .matchup_repository import MatchupRepository
from .report_generator import ReportGenerator
from .snapshot_repository import SnapshotRepository
from .store import ArenaStore
from .vote_repository import CommittedVote, VoteRepository

__all__ = [
    "ArenaStore",
    "CandidateRepository",
    "CommittedVote",
    "MatchupRepository",
    "ReportGenerator",
    "SnapshotRepository",
    "VoteRepository",
    "create_store_engine",
    "init_schema",
]
