"""Configuration schemas and loading for the arena."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from arena_rating.core.errors import MissingFieldError
from arena_rating.core.types import LANES, Lane
from arena_rating.ranking.elo import BASELINE_RATING, ELO_K, INITIAL_RATING
from arena_rating.ranking.glicko import INITIAL_RD, INITIAL_VOLATILITY

DATABASE_URL_ENV = "ARENA_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///./arena.db"
DEFAULT_LANE_WEIGHTS: dict[Lane, float] = {"explore": 0.4, "exploit": 0.4, "random": 0.2}


class RatingConfig(BaseModel):
    """Rating algorithm configuration.

    Attributes:
        k_factor: Elo K-factor for pairwise and baseline updates.
        initial_rating: Rating assigned at onboarding.
        initial_deviation: Rating deviation assigned at onboarding.
        initial_volatility: Volatility assigned at onboarding.
        baseline_rating: Rating of the implicit opponent used for both-bad votes.
    """

    k_factor: float = Field(default=ELO_K, gt=0)
    initial_rating: float = INITIAL_RATING
    initial_deviation: float = Field(default=INITIAL_RD, ge=0)
    initial_volatility: float = Field(default=INITIAL_VOLATILITY, gt=0)
    baseline_rating: float = BASELINE_RATING


class SamplingConfig(BaseModel):
    """Matchup sampling configuration.

    Attributes:
        lane_weights: Probability weight of each sampling lane. Weights are
            normalized, so only their ratios matter.
        seed: Seed for the sampler's random generator. None draws from OS entropy.
        explore_pool_size: How many of the most uncertain candidates the
            explore lane draws its focus candidate from.
        exploit_window: How many nearest neighbours by conservative rating the
            exploit lane considers as opponents.
    """

    lane_weights: dict[Lane, float] = Field(default_factory=lambda: dict(DEFAULT_LANE_WEIGHTS))
    seed: int | None = None
    explore_pool_size: int = Field(default=5, ge=1)
    exploit_window: int = Field(default=3, ge=1)

    @field_validator("lane_weights")
    @classmethod
    def validate_lane_weights(cls, v: dict[Lane, float]) -> dict[Lane, float]:
        """Ensure weights are non-negative and at least one lane is reachable."""
        for lane, weight in v.items():
            if weight < 0:
                msg = f"Lane weight for '{lane}' cannot be negative"
                raise ValueError(msg)
        if sum(v.values()) <= 0:
            msg = f"At least one lane weight must be positive (lanes: {', '.join(LANES)})"
            raise ValueError(msg)
        return v


class CandidateSpec(BaseModel):
    """A candidate to onboard into the arena."""

    key: str
    display_name: str | None = None
    enabled: bool = True
    is_baseline: bool = False

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        if not v or not v.strip():
            msg = "Candidate keys cannot be empty"
            raise ValueError(msg)
        return v.strip()

    @property
    def name(self) -> str:
        """Display name, falling back to the key."""
        return self.display_name or self.key


class ArenaConfig(BaseModel):
    """Complete arena configuration."""

    database_url: str | None = None
    export_dir: str = "./exports"
    rating: RatingConfig = Field(default_factory=RatingConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    candidates: list[CandidateSpec] = Field(default_factory=list)

    @field_validator("candidates")
    @classmethod
    def validate_unique_keys(cls, v: list[CandidateSpec]) -> list[CandidateSpec]:
        """Ensure every candidate key appears once."""
        seen: set[str] = set()
        for spec in v:
            if spec.key in seen:
                msg = f"Duplicate candidate key: {spec.key}"
                raise ValueError(msg)
            seen.add(spec.key)
        return v

    def get_database_url(self) -> str:
        """Get database URL from environment, config, or the default."""
        url = os.environ.get(DATABASE_URL_ENV) or self.database_url or DEFAULT_DATABASE_URL
        if not url.strip():
            raise MissingFieldError("database_url", "arena configuration")
        return url


def load_config(path: str | Path) -> ArenaConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated ArenaConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    return ArenaConfig.model_validate(data)
