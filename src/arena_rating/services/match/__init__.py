from .sampler import MatchupSampler, PoolEntry, SampledPair
from .service import MatchupService

__all__ = [
    "MatchupSampler",
    "MatchupService",
    "PoolEntry",
    "SampledPair",
]
