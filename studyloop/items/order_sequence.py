"""
Order sequence item handler.

The content lists items in their correct order; the player shows them
shuffled and the learner enters the display numbers in the order they
believe is right. Supports partial credit based on position matching.
"""

import random

from rich.console import Console
from rich.markup import escape
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
from .content import OrderSequenceContent, StudyItemPlay


@register(ItemType.ORDER_SEQUENCE)
class OrderSequenceHandler:
    """Handler for order-dependent sequences."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        return isinstance(content, OrderSequenceContent) and len(content.items) >= 2

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        """Shuffle sequence indices for this visit."""
        return shuffled(list(range(len(item.content.items))), rng)

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        content: OrderSequenceContent = item.content
        count = len(content.items)
        console.print(item_panel(
            "order_sequence",
            content.question or "Put these in the correct order:",
            subtitle=f"{count} items, order matters",
        ))
        for i, index in enumerate(visit.order, 1):
            console.print(f"  \\[{i}] {escape(content.items[index].text)}")

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Read display numbers in order and translate them to sequence indices."""
        count = len(visit.order)
        console.print(f"\n[dim]Enter all {count} numbers in order (e.g., 3 1 2). 'h'=hint, '?'=I don't know, Enter=skip[/dim]")

        while True:
            user_input = Prompt.ask(
                get_prompt("order_sequence", f"[{count} items]"), default="", show_default=False
            )

            if is_skip(user_input):
                return {"skipped": True}
            if is_dont_know(user_input):
                return {"dont_know": True}
            if is_hint(user_input):
                visit.hints_used += 1
                hint = self.hint(item, visit.hints_used)
                render_hint_panel(console, hint or "No more hints available")
                continue

            positions = parse_positions(user_input, count)
            if positions is None or len(positions) != count or len(set(positions)) != count:
                console.print(f"[yellow]Use each number from 1 to {count} exactly once[/yellow]")
                continue

            order = [visit.order[p] for p in positions]
            visit.selection = order
            return {"order": order}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Check if the submitted order matches the content order."""
        content: OrderSequenceContent = item.content
        texts = [i.text for i in content.items]
        correct_answer = " → ".join(texts)

        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=correct_answer,
                explanation=content.explanation,
                dont_know=True,
            )

        order: list[int] = list(answer.get("order", []))
        result = self._grade(order, len(texts))

        if result["is_correct"]:
            feedback = "Correct! Perfect sequence."
        else:
            feedback = f"{len(result['correct_positions'])}/{len(texts)} positions correct."
            wrong_positions = result["wrong_positions"]
            if wrong_positions:
                first_wrong = wrong_positions[0]
                feedback += f" Position {first_wrong + 1} should be '{texts[first_wrong]}'"

        return AnswerResult(
            correct=result["is_correct"],
            feedback=feedback,
            user_answer=" → ".join(texts[i] for i in order if 0 <= i < len(texts)),
            correct_answer=correct_answer,
            partial_score=result["partial_score"],
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """Progressive hints: first item, then last item."""
        texts = [i.text for i in item.content.items]
        if attempt == 1:
            return f"First item: {texts[0]}"
        elif attempt == 2 and len(texts) > 2:
            return f"Last item: {texts[-1]}"
        return None

    def _grade(self, order: list[int], length: int) -> dict:
        """Sequence match grading (order matters)."""
        correct_positions = []
        wrong_positions = []

        for position in range(length):
            if position < len(order) and order[position] == position:
                correct_positions.append(position)
            else:
                wrong_positions.append(position)

        partial_score = len(correct_positions) / length if length else 0.0
        is_correct = len(order) == length and not wrong_positions

        return {
            "is_correct": is_correct,
            "partial_score": partial_score,
            "correct_positions": correct_positions,
            "wrong_positions": wrong_positions,
        }
