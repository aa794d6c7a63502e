"""Glicko-2 deviation and volatility step.

Implements the single-game Glicko-2 update from Glickman's
"Example of the Glicko-2 system". The arena takes rating values from the Elo
updaters and uses this step for the uncertainty (rating deviation) and
volatility that accompany them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from arena_rating.ranking.elo import INITIAL_RATING

INITIAL_RD = 350.0
INITIAL_VOLATILITY = 0.06
RD_FLOOR = 30.0
RD_CEILING = 350.0

GLICKO_SCALE = 173.7178
VOLATILITY_TAU = 0.5
SOLVER_EPSILON = 0.000001
_MIN_PROBABILITY = 0.000001
_MIN_VOLATILITY = 0.000001


@dataclass(frozen=True)
class RatingState:
    """Rating, deviation and volatility of a candidate at a point in time."""

    rating: float = INITIAL_RATING
    deviation: float = INITIAL_RD
    volatility: float = INITIAL_VOLATILITY


def clamp_deviation(value: float) -> float:
    """Clamp a rating deviation into [RD_FLOOR, RD_CEILING]."""
    return max(RD_FLOOR, min(RD_CEILING, value))


def _clamp_probability(value: float) -> float:
    return max(_MIN_PROBABILITY, min(1.0 - _MIN_PROBABILITY, value))


def _to_glicko_scale(state: RatingState) -> tuple[float, float, float]:
    mu = (state.rating - INITIAL_RATING) / GLICKO_SCALE
    phi = clamp_deviation(state.deviation) / GLICKO_SCALE
    sigma = max(_MIN_VOLATILITY, state.volatility)
    return mu, phi, sigma


def _from_glicko_scale(mu: float, phi: float, sigma: float) -> RatingState:
    return RatingState(
        rating=INITIAL_RATING + mu * GLICKO_SCALE,
        deviation=clamp_deviation(phi * GLICKO_SCALE),
        volatility=max(_MIN_VOLATILITY, sigma),
    )


def _g(phi: float) -> float:
    return 1.0 / math.sqrt(1.0 + 3.0 * phi * phi / (math.pi * math.pi))


def _expected(mu: float, mu_opponent: float, phi_opponent: float) -> float:
    return _clamp_probability(1.0 / (1.0 + math.exp(-_g(phi_opponent) * (mu - mu_opponent))))


def _solve_volatility(phi: float, sigma: float, delta: float, variance: float) -> float:
    """Find the new volatility with the Illinois variant of regula falsi."""
    a = math.log(sigma * sigma)
    tau_sq = VOLATILITY_TAU * VOLATILITY_TAU

    def f(x: float) -> float:
        ex = math.exp(x)
        top = ex * (delta * delta - phi * phi - variance - ex)
        bottom = 2.0 * (phi * phi + variance + ex) ** 2
        return top / bottom - (x - a) / tau_sq

    lower = a
    if delta * delta > phi * phi + variance:
        upper = math.log(delta * delta - phi * phi - variance)
    else:
        k = 1
        while f(a - k * VOLATILITY_TAU) < 0:
            k += 1
        upper = a - k * VOLATILITY_TAU

    f_lower = f(lower)
    f_upper = f(upper)
    while abs(upper - lower) > SOLVER_EPSILON:
        candidate = lower + (lower - upper) * f_lower / (f_upper - f_lower)
        f_candidate = f(candidate)
        if f_candidate * f_upper < 0:
            lower, f_lower = upper, f_upper
        else:
            f_lower /= 2.0
        upper, f_upper = candidate, f_candidate

    return math.exp(lower / 2.0)


def glicko_step(player: RatingState, opponent: RatingState, score: float) -> RatingState:
    """Apply one Glicko-2 rating period containing a single game.

    Args:
        player: Pre-game state of the player being updated.
        opponent: Pre-game state of the opponent.
        score: Player's actual score (1 win, 0.5 draw, 0 loss).

    Returns:
        Post-game Glicko-2 state of the player.
    """
    mu, phi, sigma = _to_glicko_scale(player)
    mu_o, phi_o, _ = _to_glicko_scale(opponent)

    g_phi = _g(phi_o)
    expected = _expected(mu, mu_o, phi_o)
    variance = 1.0 / (g_phi * g_phi * expected * (1.0 - expected))
    delta = variance * g_phi * (score - expected)

    sigma_prime = _solve_volatility(phi, sigma, delta, variance)
    phi_star = math.sqrt(phi * phi + sigma_prime * sigma_prime)
    phi_prime = 1.0 / math.sqrt(1.0 / (phi_star * phi_star) + 1.0 / variance)
    mu_prime = mu + phi_prime * phi_prime * g_phi * (score - expected)

    return _from_glicko_scale(mu_prime, phi_prime, sigma_prime)


def update_uncertainty(
    player: RatingState, opponent: RatingState, score: float
) -> tuple[float, float]:
    """Return the (deviation, volatility) of player after one game."""
    updated = glicko_step(player, opponent, score)
    return updated.deviation, updated.volatility
