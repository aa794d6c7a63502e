"""Shared literal types for votes and sampling lanes."""

from __future__ import annotations

from typing import Literal, get_args

VoteChoice = Literal["A", "B", "TIE", "BOTH_BAD"]
Lane = Literal["explore", "exploit", "random"]

VOTE_CHOICES: tuple[str, ...] = get_args(VoteChoice)
LANES: tuple[str, ...] = get_args(Lane)
