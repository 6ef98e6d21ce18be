"""
Flashcard item handler.

Simple front/back recall cards. Learner sees the front, presses enter to flip,
then self-evaluates whether they recalled correctly.
"""

import random

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

from studyloop.delivery.visuals import get_prompt, item_panel
from . import ItemType, register
from .base import AnswerResult, ItemVisit, is_dont_know, is_skip
from .content import FlashcardContent, StudyItemPlay


@register(ItemType.FLASHCARD)
class FlashcardHandler:
    """Handler for flashcard items."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        return isinstance(content, FlashcardContent) and bool(
            content.front.strip() and content.back.strip()
        )

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        return []

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        """Display the visible face of the card."""
        content: FlashcardContent = item.content
        if visit.flipped:
            body = Text(content.back, style="bold")
            if content.explanation:
                body.append(f"\n\n{content.explanation}", style="italic")
            console.print(item_panel("flashcard", body, subtitle="back"))
        else:
            console.print(item_panel("flashcard", Text(content.front, style="bold"), subtitle="front"))

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Wait for flip, show back, get self-evaluation. '?' = I don't know."""
        if not visit.flipped:
            Prompt.ask("\nPress Enter to flip", default="", show_default=False)
            visit.flipped = True
            self.present(item, visit, console)

        console.print("[dim]y=yes, n=no, ?=I didn't know this, Enter=skip[/dim]")
        while True:
            response = Prompt.ask(
                get_prompt("flashcard", "Did you recall correctly? [y/n/?]"),
                default="",
                show_default=False,
            ).strip().lower()

            if is_skip(response):
                return {"skipped": True}
            if is_dont_know(response):
                return {"recalled": False, "dont_know": True}
            if response in ("y", "yes"):
                return {"recalled": True, "dont_know": False}
            if response in ("n", "no"):
                return {"recalled": False, "dont_know": False}
            console.print("[yellow]Please enter y, n, or ?[/yellow]")

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Check self-reported recall."""
        content: FlashcardContent = item.content
        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=content.back,
                explanation=content.explanation,
                dont_know=True,
            )

        is_correct = bool(answer.get("recalled", False))
        return AnswerResult(
            correct=is_correct,
            feedback="Good recall!" if is_correct else "Keep practicing",
            user_answer="yes" if is_correct else "no",
            correct_answer=content.back,
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """No hints for flashcards - it's pure recall."""
        return None
