"""
Quiz question item handler.

- Presents a question with 2-6 options in shuffled order.
- Learner selects exactly one option.
- Grading compares option ids, so the shuffle never changes the result.
"""

import random

from rich import box
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

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
from .content import ChoiceOption, QuizQuestionContent, StudyItemPlay


def options_table(options: list[ChoiceOption], order: list[int]) -> Table:
    """Numbered option table in presentation order."""
    by_id = {o.id: o for o in options}
    table = Table(box=box.MINIMAL, show_header=False)
    table.add_column("Index", style="cyan", justify="right", width=4)
    table.add_column("Option", style="white")
    for i, option_id in enumerate(order):
        table.add_row(Text(f"[{i + 1}]"), Text(by_id[option_id].text))
    return table


def option_texts(options: list[ChoiceOption], ids) -> str:
    by_id = {o.id: o.text for o in options}
    return ", ".join(by_id[i] for i in ids if i in by_id)


@register(ItemType.QUIZ_QUESTION)
class QuizQuestionHandler:
    """Handler for single-answer quiz questions."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        if not isinstance(content, QuizQuestionContent):
            return False
        ids = [o.id for o in content.options]
        return (
            len(ids) >= 2
            and len(set(ids)) == len(ids)
            and content.correct_option_id in ids
        )

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        """Shuffle option ids for this visit."""
        return shuffled([o.id for o in item.content.options], rng)

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        content: QuizQuestionContent = item.content
        console.print(item_panel("quiz_question", content.question))
        console.print(options_table(content.options, visit.order))

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Get the learner's choice as an option id."""
        count = len(visit.order)
        console.print("[dim]Enter choice (e.g., 1). 'h'=hint, '?'=I don't know, Enter=skip[/dim]")

        while True:
            choice = Prompt.ask(
                get_prompt("quiz_question", f"[1-{count}]"), default="", show_default=False
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
            if positions is None or len(positions) != 1:
                console.print(f"[yellow]Enter a single number from 1 to {count}[/yellow]")
                continue

            option_id = visit.order[positions[0]]
            visit.selection = option_id
            return {"option_id": option_id}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Check if the chosen option is the correct one."""
        content: QuizQuestionContent = item.content
        correct_text = option_texts(content.options, [content.correct_option_id])

        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=correct_text,
                explanation=content.explanation,
                dont_know=True,
            )

        option_id = answer.get("option_id")
        is_correct = option_id == content.correct_option_id
        return AnswerResult(
            correct=is_correct,
            feedback="Correct!" if is_correct else "Incorrect.",
            user_answer=option_texts(content.options, [option_id]),
            correct_answer=correct_text,
            partial_score=1.0 if is_correct else 0.0,
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """Rule out one wrong option per attempt, keeping at least two in play."""
        content: QuizQuestionContent = item.content
        wrong = [o.text for o in content.options if o.id != content.correct_option_id]
        if attempt > len(wrong) - 1:
            return None
        return f"'{wrong[attempt - 1]}' is NOT the answer"
