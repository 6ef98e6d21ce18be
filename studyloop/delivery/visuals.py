"""
studyloop visual components.

Themed rich panels, prompts and tables shared by the item handlers,
the session runner and the CLI commands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from studyloop.api.schemas import FinishStudySessionResponse, StudySetPlay
    from studyloop.items.content import StudyItemPlay

# =============================================================================
# COLOR THEME
# =============================================================================

THEME = {
    "primary": "#3B82F6",  # Blue - main accent
    "quiz": "#F97316",  # Orange - quiz questions
    "note": "#10B981",  # Emerald - notes
    "success": "#22C55E",  # Green - correct answers
    "warning": "#EAB308",  # Amber - hints/retries
    "error": "#EF4444",  # Red - incorrect
    "dim": "#9CA3AF",  # Gray - secondary text
}

STYLES = {
    "primary": Style(color=THEME["primary"], bold=True),
    "success": Style(color=THEME["success"], bold=True),
    "warning": Style(color=THEME["warning"], bold=True),
    "error": Style(color=THEME["error"], bold=True),
    "dim": Style(color=THEME["dim"]),
}

# Title and border color per item type
ITEM_TITLES = {
    "flashcard": ("FLASHCARD", THEME["primary"]),
    "quiz_question": ("QUICK QUIZ", THEME["quiz"]),
    "checkbox_question": ("SELECT ALL THAT APPLY", THEME["quiz"]),
    "written_answer": ("WRITTEN ANSWER", THEME["quiz"]),
    "matching_pairs": ("MATCH PAIRS", THEME["quiz"]),
    "order_sequence": ("PUT IN ORDER", THEME["quiz"]),
    "note": ("STUDY NOTE", THEME["note"]),
}


# =============================================================================
# PROMPTS
# =============================================================================

PROMPTS = {
    "quiz_question": ">_ SELECT OPTION",
    "checkbox_question": ">_ SELECT OPTIONS",
    "written_answer": ">_ ANSWER",
    "matching_pairs": ">_ MATCH",
    "order_sequence": ">_ ORDER",
    "flashcard": ">_ RECALL",
    "navigate": ">_ NEXT",
    "default": ">_ INPUT",
}


def get_prompt(item_type: str, suffix: str = "") -> str:
    """
    Get the styled prompt for a given item type.

    Args:
        item_type: Type of item (or "navigate")
        suffix: Optional suffix like "[1-4]" or "(y/n)"

    Returns:
        Formatted prompt string
    """
    base = PROMPTS.get(item_type.lower(), PROMPTS["default"])
    if suffix:
        return f"[cyan]{base}[/cyan] {suffix}"
    return f"[cyan]{base}[/cyan]"


def item_panel(item_type: str, body: Any, subtitle: str | None = None) -> Panel:
    """Frame an item prompt with its type title. Plain strings are shown verbatim."""
    if isinstance(body, str):
        body = Text(body)
    title, color = ITEM_TITLES.get(item_type, (item_type.upper(), THEME["primary"]))
    return Panel(
        body,
        title=f"[bold]{title}[/bold]",
        subtitle=subtitle,
        border_style=Style(color=color),
        box=box.HEAVY,
        padding=(1, 2),
    )


# =============================================================================
# SPINNER FOR LOADING STATES
# =============================================================================


class Spinner:
    """
    Simple spinner for loading states using Rich's console.status().

    Usage:
        with Spinner(console, "Preparing your study session..."):
            await service.get_set_for_play(set_id)
    """

    def __init__(self, console: Console, message: str = "Loading..."):
        self.console = console
        self.message = message
        self._status = None

    def __enter__(self):
        self._status = self.console.status(f"[cyan]{self.message}[/cyan]", spinner="dots")
        self._status.__enter__()
        return self

    def __exit__(self, *args):
        if self._status:
            self._status.__exit__(*args)


# =============================================================================
# SESSION PANELS
# =============================================================================


def render_set_header(console: Console, study_set: StudySetPlay) -> None:
    """Render the set title bar shown above the first item."""
    emoji = study_set.emoji or "📚"
    text = Text()
    text.append(f"{emoji}  {study_set.title}\n", style="bold")
    text.append(study_set.subject or "Study Set", style=STYLES["dim"])
    if study_set.total_ratings:
        text.append(
            f"  ·  ★ {study_set.average_rating:.1f} ({study_set.total_ratings})",
            style=STYLES["dim"],
        )
    console.print(Panel(text, border_style=Style(color=THEME["primary"]), box=box.ROUNDED))


def render_progress_bar(
    console: Console,
    item: StudyItemPlay,
    current: int,
    total: int,
) -> None:
    """
    Render the per-item status line.

    Args:
        console: Rich Console instance
        item: The current item
        current: 0-based index of the current item
        total: Number of items in the session
    """
    heart = "♥" if item.is_liked else "♡"
    line = Text()
    line.append(f"{heart} {item.like_count}   ", style=Style(color=THEME["error"]))
    line.append(f"💬 {item.comment_count}   ", style=STYLES["dim"])
    line.append(f"Level {item.study_data.box_level}   ", style=STYLES["primary"])
    line.append(f"{current + 1} / {total}", style="bold")
    console.print(line)


def result_panel(correct: bool, answer: str, explanation: str | None = None) -> Panel:
    """Build the panel shown after an answer is graded."""
    text = Text()
    if correct:
        text.append("✓ Correct\n", style=STYLES["success"])
    else:
        text.append("✗ Incorrect\n", style=STYLES["error"])
        if answer:
            text.append("\nAnswer: ", style=STYLES["dim"])
            text.append(answer)
    if explanation:
        text.append("\n\nExplanation\n", style="bold")
        text.append(explanation, style=Style(italic=True))
    border = THEME["success"] if correct else THEME["error"]
    return Panel(text, border_style=Style(color=border), box=box.ROUNDED, padding=(0, 1))


def render_result_panel(
    console: Console,
    correct: bool,
    answer: str,
    explanation: str | None = None,
) -> None:
    console.print(result_panel(correct, answer, explanation))


def render_hint_panel(console: Console, hint: str) -> None:
    """Render a hint in the warning color."""
    console.print(Panel(
        Text(hint, style=Style(color=THEME["warning"], italic=True)),
        title="Hint",
        border_style=Style(color=THEME["warning"]),
        box=box.ROUNDED,
        padding=(0, 1),
    ))


def render_session_summary(
    console: Console,
    cards: int,
    correct: int,
    response: FinishStudySessionResponse | None = None,
) -> None:
    """
    Render the end-of-session summary.

    Args:
        console: Rich Console instance
        cards: Number of items with a recorded result
        correct: Number of those recorded as correct
        response: Server aggregation result, when the session was reported
    """
    text = Text()
    text.append("\nWell Done!\n", style=STYLES["primary"])
    text.append("You've completed this study session.\n\n", style=STYLES["dim"])
    text.append(f"Cards: {cards}\n", style="bold")
    text.append(f"Correct: {correct}\n", style=STYLES["success"])

    if response is not None:
        text.append(f"\nXP earned: +{response.xp_earned}", style=STYLES["warning"])
        text.append(f"  (total {response.total_xp})\n")
        streak_note = " ↑" if response.streak_increased else ""
        text.append(f"Streak: {response.new_streak} days{streak_note}\n")
        text.append(f"Accuracy: {response.accuracy:.0f}%\n")

    accuracy = correct / cards * 100 if cards else 0
    border = THEME["success"] if accuracy >= 70 else THEME["warning"]
    console.print(Panel(
        text,
        title="[bold]Session Summary[/bold]",
        border_style=Style(color=border),
        box=box.HEAVY,
        padding=(1, 2),
    ))


# =============================================================================
# LISTINGS
# =============================================================================


def sets_table(title: str, rows: list[dict[str, Any]]) -> Table:
    """
    Build a table of study sets.

    Rows are plain dicts with id, title, subject, rating and cards keys so
    search results, library items and trending sets share one layout.
    """
    table = Table(title=Text(title), box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Subject", style="cyan")
    table.add_column("Rating", justify="right")
    table.add_column("Cards", justify="right")
    for row in rows:
        rating = row.get("rating")
        table.add_row(
            Text(str(row.get("id", ""))),
            Text(row.get("title") or ""),
            Text(row.get("subject") or "-"),
            f"{rating:.1f}" if rating is not None else "-",
            str(row.get("cards", "-")),
        )
    return table
