"""Unified rating store: one engine shared by every repository."""

from __future__ import annotations

import gc
from typing import TYPE_CHECKING

import structlog

from arena_rating.core.config import ArenaConfig

from .candidate_repository import CandidateRepository
from .engine import create_store_engine, init_schema
from .matchup_repository import MatchupRepository
from .snapshot_repository import SnapshotRepository
from .vote_repository import VoteRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


class ArenaStore:
    """Persistence layer for arena data.

    Handles:
    - Candidate records and their rating state
    - Matchups and the votes recorded against them
    - Hourly rank snapshots
    """

    def __init__(self, config: ArenaConfig, create_schema: bool = True, echo: bool = False) -> None:
        """Initialize the store.

        Args:
            config: Arena configuration.
            create_schema: Create missing tables on startup.
            echo: Log emitted SQL.
        """
        self.config = config
        self.database_url = config.get_database_url()
        engine = create_store_engine(self.database_url, echo=echo)
        if create_schema:
            init_schema(engine)

        self.candidates = CandidateRepository(engine)
        self.matchups = MatchupRepository(engine)
        self.votes = VoteRepository(engine)
        self.snapshots = SnapshotRepository(engine)
        self._engine: Engine | None = engine
        logger.info("store_init", dialect=engine.dialect.name)

    @property
    def engine(self) -> Engine:
        """Engine shared by the repositories."""
        if self._engine is None:
            msg = "Store is closed"
            raise RuntimeError(msg)
        return self._engine

    async def close(self) -> None:
        """Dispose of the database engine."""
        self.close_sync()

    def close_sync(self) -> None:
        """Synchronously dispose of the database engine."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

        gc.collect()
