"""Arena Rating.

Rating and matchmaking core for a head-to-head comparison arena: pairwise
Elo updates with Glicko-2 style uncertainty, conservative ranking, lane-based
matchup sampling, and transactional vote recording.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
