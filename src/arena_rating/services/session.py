"""Caller session identity for the vote boundary."""

from __future__ import annotations

import uuid

import structlog

logger = structlog.get_logger()


def resolve_session_id(existing: str | None) -> tuple[str, bool]:
    """Return the caller's session id, issuing a new one when absent.

    Args:
        existing: Session id presented by the caller, if any.

    Returns:
        Tuple of (session_id, issued) where issued is True for a fresh id.
    """
    if existing and existing.strip():
        return existing.strip(), False

    session_id = str(uuid.uuid4())
    logger.debug("session_issued", session_id=session_id)
    return session_id, True
