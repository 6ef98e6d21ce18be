"""
Note item handler.

Reading material inside a set. There is nothing to answer: acknowledging the
note records it as studied.
"""

import random

from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown
from rich.prompt import Prompt

from studyloop.delivery.visuals import item_panel
from . import ItemType, register
from .base import AnswerResult, ItemVisit
from .content import NoteContent, StudyItemPlay


@register(ItemType.NOTE)
class NoteHandler:
    """Handler for study notes."""

    def validate(self, item: StudyItemPlay) -> bool:
        return isinstance(item.content, NoteContent) and bool(item.content.title.strip())

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        return []

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        content: NoteContent = item.content
        console.print(item_panel("note", Markdown(f"# {content.title}\n\n{content.markdown}")))
        if content.attachment_url:
            console.print(f"[dim]Attachment: {escape(content.attachment_url)}[/dim]")

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        Prompt.ask("\nPress Enter when you're done reading", default="", show_default=False)
        return {"read": True}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        return AnswerResult(
            correct=True,
            feedback="Noted.",
            user_answer="read",
            correct_answer="",
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        return None
