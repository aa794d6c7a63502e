"""Matchup service: sample a pair and persist it as an open matchup."""

from __future__ import annotations

import random

import structlog

from arena_rating.core.config import ArenaConfig
from arena_rating.models import Matchup
from arena_rating.services.storage import ArenaStore

from .sampler import MatchupSampler, PoolEntry, SampledPair

logger = structlog.get_logger()


class MatchupService:
    """Orchestrates candidate reads, sampling, and matchup persistence."""

    def __init__(
        self,
        config: ArenaConfig,
        store: ArenaStore,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize matchup service.

        Args:
            config: Arena configuration.
            store: Storage layer for candidates and matchups.
            rng: Random generator for the sampler; seeded from config when omitted.
        """
        self.config = config
        self.store = store
        self.sampler = MatchupSampler(config.sampling, rng=rng)

    async def create_matchup(self, include_baseline: bool = False) -> tuple[Matchup, SampledPair]:
        """Sample two enabled candidates and persist an open matchup.

        Args:
            include_baseline: Allow a baseline candidate on one side.

        Returns:
            Tuple of (persisted matchup, sampled pair).

        Raises:
            InsufficientCandidatesError: Fewer than two eligible candidates.
            StoreError: Reading candidates or persisting the matchup failed.
        """
        candidates = await self.store.candidates.list_candidates(enabled_only=True)
        pool = [PoolEntry.from_candidate(c) for c in candidates]

        pair = self.sampler.sample(pool, include_baseline=include_baseline)
        matchup = await self.store.matchups.create_matchup(
            pair.a.id, pair.b.id, lane=pair.lane, reason=pair.reason
        )
        logger.info(
            "matchup_created",
            matchup_id=matchup.id,
            lane=pair.lane,
            candidate_a=pair.a.id,
            candidate_b=pair.b.id,
        )
        return matchup, pair
