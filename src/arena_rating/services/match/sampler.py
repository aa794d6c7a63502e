"""Lane-based matchup sampling for the arena."""

from __future__ import annotations

import random
import statistics
from dataclasses import dataclass
from typing import TYPE_CHECKING

from arena_rating.core.errors import InsufficientCandidatesError
from arena_rating.core.types import LANES, Lane

if TYPE_CHECKING:
    from collections.abc import Sequence

    from arena_rating.core.config import SamplingConfig
    from arena_rating.models import Candidate


@dataclass(frozen=True)
class PoolEntry:
    """A candidate as the sampler sees it.

    Attributes:
        id: Candidate id.
        conservative_rating: Rank score used for proximity.
        deviation: Rating deviation; higher means less certain.
        total_votes: Votes the candidate took part in.
        is_baseline: Reference candidate that may fill at most one side.
    """

    id: str
    conservative_rating: float
    deviation: float
    total_votes: int = 0
    is_baseline: bool = False

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> PoolEntry:
        return cls(
            id=candidate.id,
            conservative_rating=candidate.conservative_rating,
            deviation=candidate.rating_deviation,
            total_votes=candidate.total_votes,
            is_baseline=candidate.is_baseline,
        )


@dataclass(frozen=True)
class SampledPair:
    """Two distinct candidates and the lane that picked them."""

    a: PoolEntry
    b: PoolEntry
    lane: Lane
    reason: str


class MatchupSampler:
    """Pick candidate pairs from three lanes.

    - explore: an uncertain candidate (high deviation, few votes) against
      the opponent closest to the median rank score.
    - exploit: a random anchor against one of its nearest neighbours by
      rank score, where comparisons are most informative about ordering.
    - random: two uniformly chosen candidates.
    """

    def __init__(self, config: SamplingConfig, rng: random.Random | None = None) -> None:
        """Initialize sampler.

        Args:
            config: Sampling configuration (lane weights, pool sizes, seed).
            rng: Random generator. Defaults to one seeded from config.seed.
        """
        self.config = config
        self.rng = rng or random.Random(config.seed)  # noqa: S311
        self._lanes: list[Lane] = [lane for lane in LANES if config.lane_weights.get(lane, 0) > 0]
        self._weights = [config.lane_weights[lane] for lane in self._lanes]

    def sample(self, pool: Sequence[PoolEntry], include_baseline: bool = False) -> SampledPair:
        """Sample one matchup from the pool.

        Args:
            pool: Enabled candidates.
            include_baseline: Allow one side of the pair to be a baseline.

        Returns:
            A pair of distinct candidates, never two baselines.

        Raises:
            InsufficientCandidatesError: Fewer than two candidates can be paired.
        """
        eligible = _eligible(pool, include_baseline)
        lane = self.rng.choices(self._lanes, weights=self._weights, k=1)[0]

        if lane == "explore":
            first, second, reason = self._explore(eligible)
        elif lane == "exploit":
            first, second, reason = self._exploit(eligible)
        else:
            first, second, reason = self._random(eligible)

        if self.rng.random() < 0.5:  # noqa: PLR2004
            first, second = second, first
        return SampledPair(a=first, b=second, lane=lane, reason=reason)

    def _explore(self, eligible: list[PoolEntry]) -> tuple[PoolEntry, PoolEntry, str]:
        by_uncertainty = sorted(eligible, key=lambda c: (-c.deviation, c.total_votes, c.id))
        focus_pool = by_uncertainty[: self.config.explore_pool_size]
        focus = self.rng.choices(focus_pool, weights=[max(c.deviation, 1.0) for c in focus_pool])[0]

        opponents = _opponents(focus, eligible)
        median = statistics.median(c.conservative_rating for c in opponents)
        best = min(abs(c.conservative_rating - median) for c in opponents)
        closest = [c for c in opponents if abs(c.conservative_rating - median) == best]
        opponent = self.rng.choice(sorted(closest, key=lambda c: c.id))

        reason = (
            f"uncertain focus (rd={focus.deviation:.0f}, votes={focus.total_votes}) "
            f"vs mid-field opponent (median={median:.0f})"
        )
        return focus, opponent, reason

    def _exploit(self, eligible: list[PoolEntry]) -> tuple[PoolEntry, PoolEntry, str]:
        anchor = self.rng.choice(eligible)
        opponents = sorted(
            _opponents(anchor, eligible),
            key=lambda c: (abs(c.conservative_rating - anchor.conservative_rating), c.id),
        )
        window = opponents[: self.config.exploit_window]
        opponent = self.rng.choice(window)

        gap = abs(opponent.conservative_rating - anchor.conservative_rating)
        reason = f"nearest neighbour (window={len(window)}, gap={gap:.0f})"
        return anchor, opponent, reason

    def _random(self, eligible: list[PoolEntry]) -> tuple[PoolEntry, PoolEntry, str]:
        first = self.rng.choice(eligible)
        second = self.rng.choice(_opponents(first, eligible))
        return first, second, "uniform"


def _eligible(pool: Sequence[PoolEntry], include_baseline: bool) -> list[PoolEntry]:
    """Deduplicate the pool and check at least one valid pair exists."""
    unique = list({c.id: c for c in pool}.values())
    regular = [c for c in unique if not c.is_baseline]
    baselines = [c for c in unique if c.is_baseline] if include_baseline else []

    pairable = len(regular) + (1 if baselines else 0)
    min_pair_size = 2
    if pairable < min_pair_size:
        raise InsufficientCandidatesError(pairable)
    return sorted(regular + baselines, key=lambda c: c.id)


def _opponents(first: PoolEntry, eligible: list[PoolEntry]) -> list[PoolEntry]:
    """Valid opponents for first: anyone else, and no baseline against a baseline."""
    return [
        c
        for c in eligible
        if c.id != first.id and not (first.is_baseline and c.is_baseline)
    ]
