"""
Base protocol and types for study item handlers.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from rich.console import Console

if TYPE_CHECKING:
    from .content import StudyItemPlay


@dataclass
class AnswerResult:
    """Result of checking an answer."""
    correct: bool
    feedback: str
    user_answer: str
    correct_answer: str
    partial_score: float = 1.0  # 0.0-1.0 for partial credit
    explanation: str | None = None
    dont_know: bool = False  # True if learner selected "I don't know"


@dataclass
class ItemVisit:
    """
    Transient state for one stay on an item.

    Created when the player lands on an item and thrown away when it
    navigates away, so flip, selection and shuffle never leak between visits.
    `order` holds the shuffled presentation order as content identities
    (option ids, right-column indices or sequence indices).
    """
    item_id: str
    order: list[int] = field(default_factory=list)
    flipped: bool = False
    selection: Any = None
    answered: bool = False
    result: AnswerResult | None = None
    hints_used: int = 0


# Constants for special inputs
DONT_KNOW_INPUTS = {"?", "idk", "dk", "don't know", "dont know"}
HINT_INPUTS = {"h", "hint"}


def is_dont_know(user_input: str) -> bool:
    """Check if input indicates 'I don't know'."""
    return user_input.strip().lower() in DONT_KNOW_INPUTS


def is_hint(user_input: str) -> bool:
    return user_input.strip().lower() in HINT_INPUTS


def is_skip(user_input: str) -> bool:
    """Empty input leaves the item unanswered."""
    return not user_input.strip()


def parse_positions(user_input: str, limit: int) -> list[int] | None:
    """
    Parse 1-based display positions like "1 3" or "2,4".

    Returns 0-based positions, or None if any token is not a valid position.
    """
    tokens = user_input.replace(",", " ").split()
    if not tokens:
        return None
    positions = []
    for token in tokens:
        if not token.isdigit():
            return None
        pos = int(token) - 1
        if not 0 <= pos < limit:
            return None
        positions.append(pos)
    return positions


def shuffled(values: list[int], rng: random.Random) -> list[int]:
    """Return a shuffled copy; the source list is left untouched."""
    order = list(values)
    rng.shuffle(order)
    return order


class ItemHandler(Protocol):
    """Protocol for study item handlers."""

    def validate(self, item: StudyItemPlay) -> bool:
        """Check if item content is playable. Returns True if valid."""
        ...

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        """Build the shuffled presentation order for a new visit."""
        ...

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        """Display the item to the learner."""
        ...

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Get learner's answer. Returns the answer keyed by content identities."""
        ...

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Grade the answer and return result."""
        ...

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """Get progressive hint for attempt N. Returns None if no hint available."""
        ...
