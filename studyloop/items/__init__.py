"""
Study item handlers for studyloop sessions.

Each item type (flashcard, quiz question, matching pairs, etc.) has its own module with:
- validate(): Check the content is playable
- present(): Display the item to the learner
- get_input(): Get the learner's answer
- check(): Grade the answer
- hint(): Provide progressive hints
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import ItemHandler


class ItemType(str, Enum):
    """Study item variants served by the backend."""
    FLASHCARD = "flashcard"
    QUIZ_QUESTION = "quiz_question"
    CHECKBOX_QUESTION = "checkbox_question"
    WRITTEN_ANSWER = "written_answer"
    MATCHING_PAIRS = "matching_pairs"
    ORDER_SEQUENCE = "order_sequence"
    NOTE = "note"


# Items that have nothing to grade; visiting them counts as correct.
SELF_GRADED_TYPES = frozenset({ItemType.FLASHCARD, ItemType.NOTE})


# Handler registry - populated by @register decorator
HANDLERS: dict[ItemType, "ItemHandler"] = {}


def register(item_type: ItemType):
    """Decorator to register an item handler."""
    def decorator(cls):
        HANDLERS[item_type] = cls()
        return cls
    return decorator


def get_handler(item_type: str | ItemType) -> "ItemHandler | None":
    """Get the handler for an item type."""
    if isinstance(item_type, str) and not isinstance(item_type, ItemType):
        try:
            item_type = ItemType(item_type.lower())
        except ValueError:
            return None
    return HANDLERS.get(item_type)


# Import handlers to trigger registration
from . import flashcard
from . import quiz_question
from . import checkbox_question
from . import written_answer
from . import matching_pairs
from . import order_sequence
from . import note

__all__ = [
    "ItemType",
    "HANDLERS",
    "SELF_GRADED_TYPES",
    "get_handler",
    "register",
]
