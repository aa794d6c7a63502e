"""Vote outcomes and their mapping from participant choices."""

from __future__ import annotations

from enum import StrEnum

from arena_rating.core.errors import InvalidChoiceError


class Outcome(StrEnum):
    """Categorical result of a vote."""

    A_WIN = "A_WIN"
    B_WIN = "B_WIN"
    DRAW = "DRAW"
    BOTH_BAD = "BOTH_BAD"


CHOICE_OUTCOMES: dict[str, Outcome] = {
    "A": Outcome.A_WIN,
    "B": Outcome.B_WIN,
    "TIE": Outcome.DRAW,
    "BOTH_BAD": Outcome.BOTH_BAD,
}


def outcome_from_choice(choice: str) -> Outcome:
    """Map a vote choice ("A", "B", "TIE", "BOTH_BAD") to its outcome.

    Raises:
        InvalidChoiceError: If the choice is not recognized.
    """
    try:
        return CHOICE_OUTCOMES[choice]
    except (KeyError, TypeError) as e:
        raise InvalidChoiceError(choice) from e
