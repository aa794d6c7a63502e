"""Shared async repository helpers for SQLModel session work."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from arena_rating.core.errors import StoreError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def store_operation(
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Report driver failures of a repository method as ``StoreError``.

    Args:
        operation: Name shown in the error message and the failure log.
    """

    def decorator(method: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await method(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error("store_operation_failed", operation=operation, error=str(e))
                raise StoreError(operation) from e

        return wrapper

    return decorator


class AsyncRepository:
    """Wrap sync SQLModel session work for async callers."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run a sync read inside a Session on a worker thread."""

        def _run() -> T:
            with Session(self._engine) as session:
                return fn(session)

        return await asyncio.to_thread(_run)

    async def _run_transaction(self, fn: Callable[[Session], T]) -> T:
        """Run sync work in one transaction on a worker thread.

        Commits when fn returns and rolls back when it raises. Loaded objects
        stay readable after commit.
        """

        def _run() -> T:
            with Session(self._engine, expire_on_commit=False) as session, session.begin():
                return fn(session)

        return await asyncio.to_thread(_run)
