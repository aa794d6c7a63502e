"""Custom exceptions for configuration and arena operations."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class MissingFieldError(ConfigurationError):
    """Error when a required configuration field is missing."""

    def __init__(self, field: str, source: str) -> None:
        super().__init__(
            f"Missing required field '{field}' in {source}",
            "Add the field to your configuration or set ARENA_DATABASE_URL.",
        )


class ArenaError(Exception):
    """Base exception for rejected arena operations.

    Attributes:
        message: Human-readable rejection reason, safe to show to callers.
        status_code: Request/response status the boundary reports.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class VoteValidationError(ArenaError):
    """Vote rejected before any mutation because its input is malformed."""

    status_code = 400


class InvalidChoiceError(VoteValidationError):
    """Vote choice is not one of A, B, TIE, BOTH_BAD."""

    def __init__(self, choice: object) -> None:
        self.choice = choice
        super().__init__(f"Invalid choice: {choice!r}")


class MatchupNotFoundError(VoteValidationError):
    """Vote references a matchup that does not exist."""

    status_code = 404

    def __init__(self, matchup_id: str) -> None:
        self.matchup_id = matchup_id
        super().__init__("Matchup not found")


class DuplicateVoteError(ArenaError):
    """The session already voted on this matchup."""

    status_code = 409

    def __init__(self, matchup_id: str, session_id: str) -> None:
        self.matchup_id = matchup_id
        self.session_id = session_id
        super().__init__("Vote already recorded for this matchup")


class InsufficientCandidatesError(ArenaError):
    """Fewer than two eligible candidates exist for a matchup."""

    status_code = 409

    def __init__(self, eligible: int) -> None:
        self.eligible = eligible
        super().__init__(
            f"Not enough eligible candidates to build a matchup ({eligible} available). "
            "Try again later."
        )


class StoreError(ArenaError):
    """The rating store failed; nothing was committed."""

    status_code = 500

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Storage failure during {operation}")
