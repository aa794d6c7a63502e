"""Elo rating calculations for the arena."""

from __future__ import annotations

from arena_rating.ranking.outcome import Outcome

ELO_K = 32.0
INITIAL_RATING = 1500.0
BASELINE_RATING = 1500.0
BASELINE_SCORE = 0.0

# Actual scores (A, B) for each pairwise outcome
_PAIR_SCORES: dict[Outcome, tuple[float, float]] = {
    Outcome.A_WIN: (1.0, 0.0),
    Outcome.B_WIN: (0.0, 1.0),
    Outcome.DRAW: (0.5, 0.5),
}


def expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected score for player A against player B.

    Uses the standard Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of player A.
        rating_b: Rating of player B.

    Returns:
        Probability that A wins (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def update_elo_pair(
    rating_a: float,
    rating_b: float,
    outcome: Outcome | str,
    k_factor: float = ELO_K,
) -> tuple[float, float]:
    """Update Elo ratings of both sides of a matchup.

    Both new ratings are computed from the same pre-update snapshot, so the
    order in which callers persist them does not matter.

    Args:
        rating_a: Current rating of candidate A.
        rating_b: Current rating of candidate B.
        outcome: A_WIN, B_WIN or DRAW.
        k_factor: K-factor for updates.

    Returns:
        Tuple of (new_rating_a, new_rating_b).

    Raises:
        ValueError: If outcome is not a pairwise outcome.
    """
    try:
        actual_a, actual_b = _PAIR_SCORES[Outcome(outcome)]
    except (KeyError, ValueError) as e:
        msg = f"Unsupported pairwise outcome: {outcome!r}"
        raise ValueError(msg) from e

    expected_a = expected_score(rating_a, rating_b)
    expected_b = expected_score(rating_b, rating_a)

    new_rating_a = rating_a + k_factor * (actual_a - expected_a)
    new_rating_b = rating_b + k_factor * (actual_b - expected_b)

    return new_rating_a, new_rating_b


def update_elo_vs_baseline(
    rating: float,
    score: float = BASELINE_SCORE,
    k_factor: float = ELO_K,
    baseline_rating: float = BASELINE_RATING,
) -> float:
    """Update a single rating against the fixed baseline threshold.

    Args:
        rating: Current rating of the candidate.
        score: Actual score against the baseline (0 means it failed the bar).
        k_factor: K-factor for updates.
        baseline_rating: Rating of the implicit baseline opponent.

    Returns:
        New rating.
    """
    expected = expected_score(rating, baseline_rating)
    return rating + k_factor * (score - expected)
