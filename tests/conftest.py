"""Shared fixtures: a file-backed SQLite store with onboarded candidates."""

import pytest

from arena_rating.core.config import ArenaConfig, CandidateSpec, SamplingConfig
from arena_rating.services.storage import ArenaStore


@pytest.fixture
def arena_config(tmp_path, monkeypatch):
    """Create an arena configuration backed by a temp SQLite file."""
    monkeypatch.delenv("ARENA_DATABASE_URL", raising=False)
    return ArenaConfig(
        database_url=f"sqlite:///{tmp_path / 'arena.db'}",
        export_dir=str(tmp_path / "exports"),
        sampling=SamplingConfig(seed=7),
        candidates=[
            CandidateSpec(key="alpha", display_name="Alpha"),
            CandidateSpec(key="beta", display_name="Beta"),
            CandidateSpec(key="gamma", display_name="Gamma"),
            CandidateSpec(key="delta", display_name="Delta"),
            CandidateSpec(key="floor", display_name="Floor", is_baseline=True),
        ],
    )


@pytest.fixture
async def store(arena_config):
    """Open the store and dispose of it after the test."""
    store = ArenaStore(arena_config)
    yield store
    await store.close()


@pytest.fixture
async def candidates(store, arena_config):
    """Onboard the configured candidates, keyed by candidate key."""
    results = await store.candidates.onboard(arena_config.candidates, arena_config.rating)
    return {c.key: c for c, _ in results}
