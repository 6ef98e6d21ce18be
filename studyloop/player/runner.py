"""
Interactive terminal runner for a study session.

Drives a ``StudySession`` from the keyboard: each item is presented by its
handler, the answer is graded, and the learner chooses where to go next.
"""

from __future__ import annotations

import random

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.text import Text

from studyloop.api.rpc_client import RpcError
from studyloop.api.schemas import SetForPlay
from studyloop.api.study_service import StudyService
from studyloop.delivery.toast import ToastCenter
from studyloop.delivery.visuals import (
    Spinner,
    get_prompt,
    render_progress_bar,
    render_result_panel,
    render_session_summary,
    render_set_header,
)
from studyloop.items import ItemType, get_handler
from .session import ACTIVE_STATES, PlayerState, SessionError, StudySession

QUIT = "quit"


class SessionRunner:
    """Plays one set in the terminal."""

    def __init__(
        self,
        console: Console,
        toasts: ToastCenter,
        service: StudyService | None = None,
        rng: random.Random | None = None,
    ):
        self.console = console
        self.toasts = toasts
        self.service = service
        self.rng = rng

    async def play(self, set_id: str | None = None, data: SetForPlay | None = None) -> StudySession:
        """
        Load a set (remotely unless ``data`` is given) and play it to the end.

        Returns the session so callers can inspect results and state.
        """
        session = StudySession(
            finisher=self.service.finish_study_session if self.service else None,
            notify=self.toasts,
            rng=self.rng,
        )

        if data is None:
            if self.service is None or set_id is None:
                raise SessionError("a set id and a backend are needed to load a set")
            try:
                with Spinner(self.console, "Preparing your study session..."):
                    data = await self.service.get_set_for_play(set_id)
            except RpcError as e:
                logger.error(f"Failed to load set {set_id}: {e.message}")
                self.console.print(f"[red]Failed to load items: {escape(e.message)}[/red]")
                session.close()
                return session

        try:
            session.load(data)
        except SessionError as e:
            self.console.print(f"[yellow]{escape(str(e))}[/yellow]")
            session.close()
            return session

        render_set_header(self.console, data.set)

        try:
            while session.state in ACTIVE_STATES:
                if await self._step(session) == QUIT:
                    session.close()
                    self.console.print("[yellow]Session closed without saving.[/yellow]")
        except (KeyboardInterrupt, EOFError):
            session.close()
            self.console.print("\n[yellow]Session closed without saving.[/yellow]")

        if session.state == PlayerState.FINISHED:
            summary = session.summary()
            render_session_summary(self.console, summary.cards, summary.correct, session.response)
        return session

    async def _step(self, session: StudySession) -> str | None:
        item = session.current_item
        handler = get_handler(item.type)

        self.console.print()
        render_progress_bar(self.console, item, session.current_index, len(session.items))

        if session.state == PlayerState.PRESENTING:
            handler.present(item, session.visit, self.console)
            answer = handler.get_input(item, session.visit, self.console)
            result = session.answer(answer)
            if result is not None and item.type != ItemType.NOTE:
                self.console.print(Text(result.feedback, style="dim"))
                render_result_panel(
                    self.console, result.correct, result.correct_answer, result.explanation
                )
        elif session.visit.result is not None:
            # Back on an item after a failed save
            result = session.visit.result
            render_result_panel(self.console, result.correct, result.correct_answer, result.explanation)

        return await self._navigate(session)

    async def _navigate(self, session: StudySession) -> str | None:
        label = "finish" if session.is_last else "next"
        while True:
            choice = Prompt.ask(
                get_prompt("navigate", f"[dim]Enter={label}, p=previous, c=clone, q=quit[/dim]"),
                default="",
                show_default=False,
            ).strip().lower()

            if choice == "":
                if session.is_last:
                    with Spinner(self.console, "Saving your progress..."):
                        await session.next()
                else:
                    await session.next()
                return None
            if choice == "p":
                if session.is_first:
                    self.console.print("[yellow]Already at the first item[/yellow]")
                    continue
                session.prev()
                return None
            if choice == "c":
                await self.clone_current_set(session)
                continue
            if choice == "q":
                return QUIT
            self.console.print("[yellow]Press Enter, p, c or q[/yellow]")

    async def clone_current_set(self, session: StudySession) -> None:
        """Copy the set being studied into the learner's library."""
        if self.service is None:
            self.toasts("Cloning needs a backend connection", "error")
            return
        study_set = session.data.set
        try:
            await self.service.clone_set(study_set.id)
        except RpcError as e:
            logger.error(f"Failed to clone set {study_set.id}: {e.message}")
            self.toasts(e.message or "Failed to clone study set", "error")
            return
        self.toasts(f'Successfully cloned "{study_set.title}"!', "success")
