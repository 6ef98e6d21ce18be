"""
Matching pairs item handler.

Learner matches left entries to right entries. The right column is shuffled
per visit, learner provides pairs like "1A 2B 3C".
"""

import random
import re

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from studyloop.delivery.visuals import get_prompt, item_panel, render_hint_panel
from . import ItemType, register
from .base import AnswerResult, ItemVisit, is_dont_know, is_hint, is_skip, shuffled
from .content import MatchingPairsContent, StudyItemPlay

MATCH_TOKEN = re.compile(r"^(\d+)([A-Z]+)$")


def _letter(index: int) -> str:
    """Column label for a right entry: A..Z, then AA, AB and so on."""
    label = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def _letter_index(label: str) -> int:
    index = 0
    for char in label:
        index = index * 26 + ord(char) - ord("A") + 1
    return index - 1


@register(ItemType.MATCHING_PAIRS)
class MatchingPairsHandler:
    """Handler for matching pairs items."""

    def validate(self, item: StudyItemPlay) -> bool:
        content = item.content
        if not isinstance(content, MatchingPairsContent):
            return False
        return len(content.pairs) >= 2

    def arrange(self, item: StudyItemPlay, rng: random.Random) -> list[int]:
        """Shuffle the right column for this visit."""
        return shuffled(list(range(len(item.content.pairs))), rng)

    def present(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> None:
        content: MatchingPairsContent = item.content
        console.print(item_panel("matching_pairs", content.question or "Match the following:"))

        console.print("\n[bold cyan]LEFT:[/bold cyan]")
        for i, pair in enumerate(content.pairs, 1):
            console.print(f"  \\[{i}] {escape(pair.left)}")

        console.print("\n[bold cyan]RIGHT:[/bold cyan]")
        for i, right_index in enumerate(visit.order):
            console.print(f"  ({_letter(i)}) {escape(content.pairs[right_index].right)}")

    def get_input(self, item: StudyItemPlay, visit: ItemVisit, console: Console) -> dict:
        """Read pairs and translate letters back to right-entry indices."""
        count = len(visit.order)
        console.print("\n[dim]Match left to right (e.g., 1A 2B 3C). 'h'=hint, '?'=I don't know, Enter=skip[/dim]")

        while True:
            user_input = Prompt.ask(get_prompt("matching_pairs"), default="", show_default=False).strip()

            if is_skip(user_input):
                return {"skipped": True}
            if is_dont_know(user_input):
                return {"dont_know": True}
            if is_hint(user_input):
                visit.hints_used += 1
                hint = self.hint(item, visit.hints_used)
                render_hint_panel(console, hint or "No more hints available")
                continue

            matches: dict[int, int] = {}
            for token in user_input.upper().replace(",", " ").split():
                found = MATCH_TOKEN.match(token)
                if not found:
                    continue
                left = int(found.group(1)) - 1
                letter = _letter_index(found.group(2))
                if 0 <= left < count and 0 <= letter < count:
                    matches[left] = visit.order[letter]

            if not matches:
                console.print("[yellow]No valid pairs found. Use the form 1A 2B[/yellow]")
                continue

            visit.selection = matches
            return {"matches": matches}

    def check(self, item: StudyItemPlay, answer: dict) -> AnswerResult:
        """Count pairs whose left entry points at its own right entry."""
        content: MatchingPairsContent = item.content
        pairs = content.pairs
        correct_answer = "\n".join(
            f"{i + 1}. {p.left} -> {p.right}" for i, p in enumerate(pairs)
        )

        if answer.get("dont_know"):
            return AnswerResult(
                correct=False,
                feedback="Let's learn this one!",
                user_answer="I don't know",
                correct_answer=correct_answer,
                explanation=content.explanation,
                dont_know=True,
            )

        matches: dict[int, int] = answer.get("matches", {})
        correct_count = sum(1 for i in range(len(pairs)) if matches.get(i) == i)
        is_correct = correct_count == len(pairs)
        partial_score = correct_count / len(pairs) if pairs else 0.0

        user_answer = ", ".join(
            f"{pairs[left].left} -> {pairs[right].right}"
            for left, right in sorted(matches.items())
            if 0 <= left < len(pairs) and 0 <= right < len(pairs)
        )

        return AnswerResult(
            correct=is_correct,
            feedback=f"{correct_count}/{len(pairs)} correct",
            user_answer=user_answer,
            correct_answer=correct_answer,
            partial_score=partial_score,
            explanation=content.explanation,
        )

    def hint(self, item: StudyItemPlay, attempt: int) -> str | None:
        """Reveal one pair per attempt, never the last one."""
        pairs = item.content.pairs
        if attempt >= len(pairs):
            return None
        pair = pairs[attempt - 1]
        return f"'{pair.left}' matches '{pair.right[:20]}{'...' if len(pair.right) > 20 else ''}'"
