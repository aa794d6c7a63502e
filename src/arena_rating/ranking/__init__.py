"""Ranking module for the arena.

Pure rating math: Elo pairwise and baseline updaters, the Glicko-2
uncertainty step, and the conservative ranking score.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arena_rating.ranking.conservative import (
    CONSERVATIVE_SIGMAS,
    VoteSummary,
    confidence_from_deviation,
    conservative_rating,
    stability_tier,
    summarize_votes,
)
from arena_rating.ranking.elo import (
    BASELINE_RATING,
    BASELINE_SCORE,
    ELO_K,
    INITIAL_RATING,
    expected_score,
    update_elo_pair,
    update_elo_vs_baseline,
)
from arena_rating.ranking.glicko import (
    INITIAL_RD,
    INITIAL_VOLATILITY,
    RatingState,
    glicko_step,
)
from arena_rating.ranking.outcome import Outcome, outcome_from_choice
from arena_rating.ranking.updates import RatingChange, apply_outcome

if TYPE_CHECKING:
    from arena_rating.core.config import RatingConfig


def apply_configured_outcome(
    config: RatingConfig, a: RatingState, b: RatingState, outcome: Outcome
) -> tuple[RatingChange, RatingChange]:
    """Apply an outcome with the K-factor and baseline from config.

    Args:
        config: Rating configuration.
        a: Pre-vote state of candidate A.
        b: Pre-vote state of candidate B.
        outcome: Vote outcome.

    Returns:
        Tuple of (change_a, change_b).
    """
    return apply_outcome(
        a,
        b,
        outcome,
        k_factor=config.k_factor,
        baseline_rating=config.baseline_rating,
    )


__all__ = [
    "BASELINE_RATING",
    "BASELINE_SCORE",
    "CONSERVATIVE_SIGMAS",
    "ELO_K",
    "INITIAL_RATING",
    "INITIAL_RD",
    "INITIAL_VOLATILITY",
    "Outcome",
    "RatingChange",
    "RatingState",
    "VoteSummary",
    "apply_configured_outcome",
    "apply_outcome",
    "confidence_from_deviation",
    "conservative_rating",
    "expected_score",
    "glicko_step",
    "outcome_from_choice",
    "stability_tier",
    "summarize_votes",
    "update_elo_pair",
    "update_elo_vs_baseline",
]
