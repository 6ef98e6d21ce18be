"""
Toast notifications.

Short status messages ("Study session saved!", "Failed to save progress")
printed on the console, mirrored to the log, and kept in a bounded history
so callers and tests can inspect what the learner was told.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from loguru import logger
from rich.console import Console
from rich.markup import escape

ToastKind = Literal["success", "error", "info"]

TOAST_STYLES: dict[str, tuple[str, str]] = {
    "success": ("✓", "green"),
    "error": ("✗", "red"),
    "info": ("•", "cyan"),
}


@dataclass
class Toast:
    message: str
    kind: ToastKind = "info"
    created_at: datetime = field(default_factory=datetime.now)


class ToastCenter:
    """Shows toasts and remembers the most recent ones."""

    def __init__(self, console: Console | None = None, history_size: int = 20):
        self.console = console
        self.history: deque[Toast] = deque(maxlen=history_size)

    def show(self, message: str, kind: ToastKind = "info") -> Toast:
        toast = Toast(message=message, kind=kind)
        self.history.append(toast)

        if kind == "error":
            logger.warning(f"toast: {message}")
        else:
            logger.debug(f"toast[{kind}]: {message}")

        if self.console is not None:
            icon, color = TOAST_STYLES.get(kind, TOAST_STYLES["info"])
            self.console.print(f"[bold {color}]{icon}[/bold {color}] {escape(message)}")
        return toast

    # Callable so it can be handed around as a plain notify(message, kind) hook
    __call__ = show

    @property
    def last(self) -> Toast | None:
        return self.history[-1] if self.history else None
