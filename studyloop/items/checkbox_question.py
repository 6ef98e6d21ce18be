"""
Checkbox question item handler.

Multi-select variant of the quiz question: the learner must pick every
correct option and nothing else. Partial credit is the overlap between the
chosen and correct sets.
"""

import random

from rich.console import Console
from rich.prompt import Prompt

from studyloop.delivery.visuals import get_prompt, item_panel, render_hint_panel
from . import ItemType, register
from .base import (
    AnswerResult,
    ItemVisit,
    is_dont_know,
    is_hint,
    is_skip,
    parse_positions,
    shuffled,
)
from .content import CheckboxQuestionContent, StudyItemPlay
from .quiz_question import option_texts, options_table


@register(ItemType.CHECKBOX_QUESTION)
class CheckboxQuestionHandler:
    """Handler for multi-select questions."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        if not isinstance(content, CheckboxQuestionContent):
            return False
        ids = [o.id for o in content.options]
        correct = set(content.correct_option_ids)
        return (
            len(ids) >= 2
            and len(set(ids)) == len(ids)
            and bool(correct)
            and correct <= set(ids)
        )

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        return shuffled([o.id for o in item.content.options], rng)

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        content: CheckboxQuestionContent = item.content
        console.print(item_panel("checkbox_question", content.question))
        console.print(options_table(content.options, visit.order))

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Get the learner's choices as a list of option ids."""
        count = len(visit.order)
        console.print("[dim]Enter all correct choices (e.g., 1 3). 'h'=hint, '?'=I don't know, Enter=skip[/dim]")

        while True:
            choice = Prompt.ask(
                get_prompt("checkbox_question", f"[1-{count}]"), default="", show_default=False
            )

            if is_skip(choice):
                return {"skipped": True}
            if is_dont_know(choice):
                return {"dont_know": True}
            if is_hint(choice):
                visit.hints_used += 1
                hint = self.hint(item, visit.hints_used)
                render_hint_panel(console, hint or "No more hints available")
                continue

            positions = parse_positions(choice, count)
            if positions is None:
                console.print(f"[yellow]Enter numbers from 1 to {count}, separated by spaces[/yellow]")
                continue

            option_ids = sorted({visit.order[p] for p in positions})
            visit.selection = option_ids
            return {"option_ids": option_ids}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Correct only when the chosen set equals the correct set."""
        content: CheckboxQuestionContent = item.content
        correct_ids = set(content.correct_option_ids)
        correct_text = option_texts(content.options, sorted(correct_ids))

        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=correct_text,
                explanation=content.explanation,
                dont_know=True,
            )

        chosen = set(answer.get("option_ids", []))
        is_correct = chosen == correct_ids
        union = chosen | correct_ids
        partial_score = len(chosen & correct_ids) / len(union) if union else 0.0

        if is_correct:
            feedback = "Correct!"
        else:
            missed = len(correct_ids - chosen)
            extra = len(chosen - correct_ids)
            feedback = f"Incorrect. {missed} missed, {extra} wrong."

        return AnswerResult(
            correct=is_correct,
            feedback=feedback,
            user_answer=option_texts(content.options, sorted(chosen)),
            correct_answer=correct_text,
            partial_score=partial_score,
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """First tell how many to pick, then rule out wrong options one at a time."""
        content: CheckboxQuestionContent = item.content
        if attempt == 1:
            count = len(set(content.correct_option_ids))
            return f"There {'is' if count == 1 else 'are'} {count} correct option{'s' if count != 1 else ''}"

        wrong = [o.text for o in content.options if o.id not in set(content.correct_option_ids)]
        index = attempt - 2
        if index < len(wrong):
            return f"'{wrong[index]}' is NOT correct"
        return None
