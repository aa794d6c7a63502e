"""Conservative ranking score and leaderboard confidence helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from arena_rating.ranking.glicko import RD_CEILING, RD_FLOOR, clamp_deviation

CONSERVATIVE_SIGMAS = 2.0

PROVISIONAL_DECISIVE_FLOOR = 80
PROVISIONAL_RD_FLOOR = 90.0
STABLE_DECISIVE_FLOOR = 200
STABLE_RD_FLOOR = 60.0

StabilityTier = Literal["Provisional", "Established", "Stable"]


def conservative_rating(rating: float, deviation: float) -> float:
    """Conservative skill estimate (rating - 2 * deviation).

    Subtracting a multiple of the deviation keeps a candidate with a short
    lucky streak below well-established candidates until its deviation
    narrows.

    Args:
        rating: Current rating.
        deviation: Current rating deviation.

    Returns:
        Score used for leaderboard ordering.
    """
    return rating - CONSERVATIVE_SIGMAS * deviation


def confidence_from_deviation(deviation: float) -> int:
    """Map a deviation onto a 0-100 confidence percentage.

    RD_FLOOR maps to 100 and RD_CEILING to 0.
    """
    clamped = clamp_deviation(deviation)
    fraction = (clamped - RD_FLOOR) / (RD_CEILING - RD_FLOOR)
    return round((1.0 - fraction) * 100)


def stability_tier(decisive_votes: int, deviation: float) -> StabilityTier:
    """Classify how settled a candidate's rating is."""
    if decisive_votes >= STABLE_DECISIVE_FLOOR and deviation <= STABLE_RD_FLOOR:
        return "Stable"
    if decisive_votes >= PROVISIONAL_DECISIVE_FLOOR and deviation <= PROVISIONAL_RD_FLOOR:
        return "Established"
    return "Provisional"


@dataclass(frozen=True)
class VoteSummary:
    """Aggregate vote counts for a candidate.

    Attributes:
        decisive_losses: Losses to the other candidate (excludes both-bad).
        decisive_votes: Wins, decisive losses and draws.
        total_votes: Every vote the candidate took part in.
    """

    decisive_losses: int
    decisive_votes: int
    total_votes: int


def summarize_votes(wins: int, losses: int, draws: int, both_bad: int) -> VoteSummary:
    """Summarize counters where losses include both-bad outcomes."""
    decisive_losses = max(0, losses - both_bad)
    decisive_votes = wins + decisive_losses + draws
    return VoteSummary(
        decisive_losses=decisive_losses,
        decisive_votes=decisive_votes,
        total_votes=decisive_votes + both_bad,
    )
