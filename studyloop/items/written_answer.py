"""
Written answer item handler.

Free-text answer matched against a list of accepted answers.
Matching ignores case, surrounding whitespace and repeated inner whitespace.
"""

import random

from rich.console import Console
from rich.prompt import Prompt

from studyloop.delivery.visuals import get_prompt, item_panel, render_hint_panel
from . import ItemType, register
from .base import AnswerResult, ItemVisit, is_dont_know, is_hint, is_skip
from .content import StudyItemPlay, WrittenAnswerContent


def normalize_answer(text: str) -> str:
    """Case-fold and collapse whitespace."""
    return " ".join(text.split()).casefold()


@register(ItemType.WRITTEN_ANSWER)
class WrittenAnswerHandler:
    """Handler for free-text answers."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        return (
            isinstance(content, WrittenAnswerContent)
            and bool(content.question.strip())
            and any(a.strip() for a in content.accepted_answers)
        )

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        return []

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        console.print(item_panel("written_answer", item.content.question))

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Get the learner's answer. 'h'=hint, '?'=I don't know."""
        console.print("[dim]Type your answer. 'h'=hint, '?'=I don't know, Enter=skip[/dim]")

        while True:
            user_input = Prompt.ask(get_prompt("written_answer"), default="", show_default=False)

            if is_skip(user_input):
                return {"skipped": True}
            if is_dont_know(user_input):
                return {"dont_know": True}
            if is_hint(user_input):
                visit.hints_used += 1
                hint = self.hint(item, visit.hints_used)
                render_hint_panel(console, hint or "No more hints available")
                continue

            visit.selection = user_input
            return {"text": user_input}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        content: WrittenAnswerContent = item.content
        accepted = [a for a in content.accepted_answers if a.strip()]
        primary = accepted[0] if accepted else ""

        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=primary,
                explanation=content.explanation,
                dont_know=True,
            )

        user_answer = str(answer.get("text", "")).strip()
        normalized = normalize_answer(user_answer)
        is_correct = any(normalized == normalize_answer(a) for a in accepted)

        return AnswerResult(
            correct=is_correct,
            feedback="Correct!" if is_correct else f"Expected: {primary}",
            user_answer=user_answer,
            correct_answer=primary,
            partial_score=1.0 if is_correct else 0.0,
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """Progressive hints built from the first accepted answer."""
        accepted = [a.strip() for a in item.content.accepted_answers if a.strip()]
        if not accepted:
            return None
        answer = accepted[0]

        if attempt == 1:
            return f"Starts with: {answer[0]}..."
        elif attempt == 2:
            return f"The answer has {len(answer)} characters"
        elif attempt == 3 and len(answer) > 2:
            return f"Starts with '{answer[0]}', ends with '{answer[-1]}'"

        return None
