"""Database persistence for candidate records."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete
from sqlmodel import Session, col, select

from arena_rating.models import Candidate, Matchup, Vote
from arena_rating.ranking.conservative import conservative_rating

from .repository import AsyncRepository, store_operation

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from arena_rating.core.config import CandidateSpec, RatingConfig

logger = structlog.get_logger()


def reset_candidate(candidate: Candidate, config: RatingConfig) -> None:
    """Put a candidate back to its onboarding rating state and zero all counters."""
    candidate.rating = config.initial_rating
    candidate.rating_deviation = config.initial_deviation
    candidate.volatility = config.initial_volatility
    candidate.conservative_rating = conservative_rating(
        config.initial_rating, config.initial_deviation
    )
    candidate.wins = 0
    candidate.losses = 0
    candidate.draws = 0
    candidate.both_bad = 0
    candidate.shown_count = 0
    candidate.updated_at = datetime.now(UTC)


class CandidateRepository(AsyncRepository):
    """Persist and query candidate records."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    @store_operation("candidate onboard")
    async def onboard(
        self, specs: Sequence[CandidateSpec], config: RatingConfig
    ) -> list[tuple[Candidate, bool]]:
        """Create missing candidates and refresh metadata of existing ones.

        Rating state of existing candidates is left untouched.

        Returns:
            List of (candidate, created) tuples in input order.
        """

        def _onboard(session: Session) -> list[tuple[Candidate, bool]]:
            results: list[tuple[Candidate, bool]] = []
            for spec in specs:
                existing = session.exec(select(Candidate).where(Candidate.key == spec.key)).first()
                if existing:
                    existing.display_name = spec.name
                    existing.enabled = spec.enabled
                    existing.is_baseline = spec.is_baseline
                    existing.updated_at = datetime.now(UTC)
                    session.add(existing)
                    results.append((existing, False))
                    continue

                candidate = Candidate(
                    key=spec.key,
                    display_name=spec.name,
                    enabled=spec.enabled,
                    is_baseline=spec.is_baseline,
                )
                reset_candidate(candidate, config)
                session.add(candidate)
                results.append((candidate, True))
            session.flush()
            return results

        results = await self._run_transaction(_onboard)
        logger.info(
            "candidates_onboarded",
            created=sum(1 for _, created in results if created),
            updated=sum(1 for _, created in results if not created),
        )
        return results

    @store_operation("candidate update")
    async def set_enabled(self, key: str, enabled: bool) -> Candidate | None:
        """Enable or disable a candidate by key. Candidates are never deleted."""

        def _set(session: Session) -> Candidate | None:
            candidate = session.exec(select(Candidate).where(Candidate.key == key)).first()
            if candidate is None:
                return None
            candidate.enabled = enabled
            candidate.updated_at = datetime.now(UTC)
            session.add(candidate)
            return candidate

        return await self._run_transaction(_set)

    @store_operation("candidate read")
    async def get_candidates(self, candidate_ids: Sequence[str]) -> dict[str, Candidate]:
        """Read a snapshot of the given candidates keyed by id."""

        def _get(session: Session) -> dict[str, Candidate]:
            statement = select(Candidate).where(col(Candidate.id).in_(list(candidate_ids)))
            return {c.id: c for c in session.exec(statement).all()}

        return await self._run_session(_get)

    @store_operation("candidate read")
    async def get_by_key(self, key: str) -> Candidate | None:
        """Look up a candidate by its identity key."""

        def _get(session: Session) -> Candidate | None:
            return session.exec(select(Candidate).where(Candidate.key == key)).first()

        return await self._run_session(_get)

    @store_operation("candidate list")
    async def list_candidates(
        self, enabled_only: bool = False, include_baseline: bool = True
    ) -> list[Candidate]:
        """List candidates ordered by key."""

        def _list(session: Session) -> list[Candidate]:
            statement = select(Candidate)
            if enabled_only:
                statement = statement.where(col(Candidate.enabled).is_(True))
            if not include_baseline:
                statement = statement.where(col(Candidate.is_baseline).is_(False))
            return list(session.exec(statement.order_by(col(Candidate.key))).all())

        return await self._run_session(_list)

    @store_operation("leaderboard read")
    async def get_leaderboard(self) -> list[Candidate]:
        """Enabled, non-baseline candidates sorted by conservative rating."""

        def _get(session: Session) -> list[Candidate]:
            statement = (
                select(Candidate)
                .where(col(Candidate.enabled).is_(True), col(Candidate.is_baseline).is_(False))
                .order_by(col(Candidate.conservative_rating).desc(), col(Candidate.display_name))
            )
            return list(session.exec(statement).all())

        return await self._run_session(_get)

    @store_operation("rating state write")
    async def replace_rating_state(self, states: dict[str, Candidate]) -> int:
        """Overwrite rating fields and counters from recomputed values.

        Args:
            states: Detached Candidate objects keyed by id carrying the new
                rating, deviation, volatility, conservative rating and counters.

        Returns:
            Number of candidates updated.
        """
        fields = (
            "rating",
            "rating_deviation",
            "volatility",
            "conservative_rating",
            "wins",
            "losses",
            "draws",
            "both_bad",
        )

        def _replace(session: Session) -> int:
            statement = select(Candidate).where(col(Candidate.id).in_(list(states)))
            updated = 0
            for candidate in session.exec(statement.with_for_update()).all():
                source = states[candidate.id]
                for field in fields:
                    setattr(candidate, field, getattr(source, field))
                candidate.updated_at = datetime.now(UTC)
                session.add(candidate)
                updated += 1
            return updated

        return await self._run_transaction(_replace)

    @store_operation("rating reset")
    async def reset_ratings(
        self, config: RatingConfig, keep_history: bool = False
    ) -> dict[str, int]:
        """Reset every candidate to its onboarding state.

        Args:
            config: Rating configuration with the initial values.
            keep_history: Keep votes and matchups instead of deleting them.

        Returns:
            Dict with 'candidates', 'votes' and 'matchups' counts affected.
        """

        def _reset(session: Session) -> dict[str, int]:
            deleted_votes = deleted_matchups = 0
            if not keep_history:
                deleted_votes = session.exec(delete(Vote)).rowcount  # type: ignore[call-overload]
                deleted_matchups = session.exec(  # type: ignore[call-overload]
                    delete(Matchup)
                ).rowcount

            candidates = session.exec(select(Candidate).with_for_update()).all()
            for candidate in candidates:
                reset_candidate(candidate, config)
                session.add(candidate)
            return {
                "candidates": len(candidates),
                "votes": deleted_votes,
                "matchups": deleted_matchups,
            }

        result = await self._run_transaction(_reset)
        logger.info("ratings_reset", keep_history=keep_history, **result)
        return result
