"""Dispatch a vote outcome to the pairwise or baseline updater."""

from __future__ import annotations

from dataclasses import dataclass

from arena_rating.ranking.conservative import conservative_rating
from arena_rating.ranking.elo import (
    BASELINE_RATING,
    BASELINE_SCORE,
    ELO_K,
    update_elo_pair,
    update_elo_vs_baseline,
)
from arena_rating.ranking.glicko import (
    INITIAL_VOLATILITY,
    RD_FLOOR,
    RatingState,
    update_uncertainty,
)
from arena_rating.ranking.outcome import Outcome


@dataclass(frozen=True)
class RatingChange:
    """New rating fields and counter increments for one candidate.

    Attributes:
        rating: New rating.
        deviation: New rating deviation.
        volatility: New volatility.
        conservative_rating: Rank score derived from rating and deviation.
        wins: Win counter increment.
        losses: Loss counter increment.
        draws: Draw counter increment.
        both_bad: Both-bad counter increment.
    """

    rating: float
    deviation: float
    volatility: float
    conservative_rating: float
    wins: int = 0
    losses: int = 0
    draws: int = 0
    both_bad: int = 0

    def as_fields(self) -> dict[str, float]:
        """Rating columns to persist, keyed by Candidate attribute name."""
        return {
            "rating": self.rating,
            "rating_deviation": self.deviation,
            "volatility": self.volatility,
            "conservative_rating": self.conservative_rating,
        }

    def as_increments(self) -> dict[str, int]:
        """Counter increments keyed by Candidate attribute name."""
        return {
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "both_bad": self.both_bad,
        }


def baseline_state(baseline_rating: float = BASELINE_RATING) -> RatingState:
    """Reference opponent used for both-bad outcomes."""
    return RatingState(
        rating=baseline_rating, deviation=RD_FLOOR, volatility=INITIAL_VOLATILITY
    )


def _change(
    rating: float,
    deviation: float,
    volatility: float,
    **increments: int,
) -> RatingChange:
    return RatingChange(
        rating=rating,
        deviation=deviation,
        volatility=volatility,
        conservative_rating=conservative_rating(rating, deviation),
        **increments,
    )


def _pairwise_changes(
    a: RatingState, b: RatingState, outcome: Outcome, k_factor: float
) -> tuple[RatingChange, RatingChange]:
    new_a, new_b = update_elo_pair(a.rating, b.rating, outcome, k_factor=k_factor)

    if outcome is Outcome.A_WIN:
        score_a, counters_a, counters_b = 1.0, {"wins": 1}, {"losses": 1}
    elif outcome is Outcome.B_WIN:
        score_a, counters_a, counters_b = 0.0, {"losses": 1}, {"wins": 1}
    else:
        score_a, counters_a, counters_b = 0.5, {"draws": 1}, {"draws": 1}

    rd_a, vol_a = update_uncertainty(a, b, score_a)
    rd_b, vol_b = update_uncertainty(b, a, 1.0 - score_a)

    return (
        _change(new_a, rd_a, vol_a, **counters_a),
        _change(new_b, rd_b, vol_b, **counters_b),
    )


def _baseline_change(
    state: RatingState, k_factor: float, baseline_rating: float
) -> RatingChange:
    new_rating = update_elo_vs_baseline(
        state.rating,
        score=BASELINE_SCORE,
        k_factor=k_factor,
        baseline_rating=baseline_rating,
    )
    deviation, volatility = update_uncertainty(
        state, baseline_state(baseline_rating), BASELINE_SCORE
    )
    return _change(new_rating, deviation, volatility, losses=1, both_bad=1)


def apply_outcome(
    a: RatingState,
    b: RatingState,
    outcome: Outcome,
    k_factor: float = ELO_K,
    baseline_rating: float = BASELINE_RATING,
) -> tuple[RatingChange, RatingChange]:
    """Compute the rating changes of both candidates for one vote.

    Pairwise outcomes update A and B against each other. BOTH_BAD updates
    each candidate independently against the baseline, so neither change
    depends on the other candidate's rating.

    Args:
        a: Pre-vote state of candidate A.
        b: Pre-vote state of candidate B.
        outcome: Vote outcome.
        k_factor: Elo K-factor.
        baseline_rating: Rating of the baseline threshold.

    Returns:
        Tuple of (change_a, change_b).
    """
    if outcome is Outcome.BOTH_BAD:
        return (
            _baseline_change(a, k_factor, baseline_rating),
            _baseline_change(b, k_factor, baseline_rating),
        )
    return _pairwise_changes(a, b, Outcome(outcome), k_factor)
