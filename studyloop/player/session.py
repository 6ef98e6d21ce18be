"""
Study session player.

A linear state machine over the items of one set:

    LOADING -> PRESENTING(i) -> ANSWERED(i) -> PRESENTING(i+1) | FINISHING -> FINISHED

plus CLOSED when the learner walks away. Grading is delegated to the item
handlers; the only remote call is the single aggregation report made when
the session finishes.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from studyloop.api.schemas import (
    FinishStudySessionParams,
    FinishStudySessionResponse,
    SetForPlay,
    StudySessionResult,
)
from studyloop.items import SELF_GRADED_TYPES, ItemType, get_handler
from studyloop.items.base import AnswerResult, ItemVisit
from studyloop.items.content import StudyItemPlay

Finisher = Callable[[FinishStudySessionParams], Awaitable[FinishStudySessionResponse]]
Notify = Callable[[str, str], Any]


class PlayerState(str, Enum):
    LOADING = "loading"
    PRESENTING = "presenting"
    ANSWERED = "answered"
    FINISHING = "finishing"
    FINISHED = "finished"
    CLOSED = "closed"


ACTIVE_STATES = frozenset({PlayerState.PRESENTING, PlayerState.ANSWERED})


class SessionError(Exception):
    """The session cannot be played."""


class InvalidTransition(SessionError):
    """An operation was requested in a state that does not allow it."""

    def __init__(self, operation: str, state: PlayerState, reason: str | None = None):
        super().__init__(reason or f"cannot {operation} while {state.value}")
        self.operation = operation
        self.state = state


@dataclass
class SessionSummary:
    cards: int
    correct: int

    @property
    def accuracy(self) -> float:
        return self.correct / self.cards * 100 if self.cards else 0.0


class StudySession:
    """
    Plays one study set.

    Results are kept as ``{item_id: is_correct}`` and reported once through
    ``finisher``. Without a finisher (offline play) finishing only closes out
    the local results.
    """

    def __init__(
        self,
        finisher: Finisher | None = None,
        notify: Notify | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.finisher = finisher
        self.notify = notify
        self.rng = rng or random.Random()
        self.clock = clock

        self.state = PlayerState.LOADING
        self.data: SetForPlay | None = None
        self.current_index = 0
        self.results: dict[str, bool] = {}
        self.visit: ItemVisit | None = None
        self.response: FinishStudySessionResponse | None = None
        self.last_error: Exception | None = None
        self._started_at: float | None = None

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def items(self) -> list[StudyItemPlay]:
        return self.data.items if self.data else []

    @property
    def current_item(self) -> StudyItemPlay | None:
        if self.state not in ACTIVE_STATES and self.state != PlayerState.FINISHING:
            return None
        return self.items[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == len(self.items) - 1

    def summary(self) -> SessionSummary:
        return SessionSummary(
            cards=len(self.results),
            correct=sum(1 for ok in self.results.values() if ok),
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def load(self, data: SetForPlay) -> None:
        """Start a fresh pass over the set."""
        if self.state not in (PlayerState.LOADING, PlayerState.FINISHED):
            raise InvalidTransition("load", self.state)
        if not data.items:
            raise SessionError(f"set {data.set.id} has no playable items")

        self.data = data
        self.results = {}
        self.response = None
        self.last_error = None
        self._started_at = self.clock()
        self._enter(0)
        logger.debug(f"Session started on set {data.set.id} ({len(data.items)} items)")

    def flip(self) -> bool:
        """Toggle the flashcard face. Returns True when the back is showing."""
        self._require_active("flip")
        if self.items[self.current_index].type != ItemType.FLASHCARD:
            raise InvalidTransition("flip", self.state, "only flashcards can be flipped")
        self.visit.flipped = not self.visit.flipped
        return self.visit.flipped

    def answer(self, answer: dict) -> AnswerResult | None:
        """
        Grade the current item and record its correctness.

        A skipped answer records nothing and leaves the item presenting.
        """
        if self.state == PlayerState.ANSWERED:
            raise InvalidTransition("answer", self.state)
        self._require_active("answer")
        if answer.get("skipped"):
            return None

        item = self.items[self.current_index]
        result = get_handler(item.type).check(item, answer)
        self.results[item.id] = result.correct
        self.visit.selection = answer
        self.visit.answered = True
        self.visit.result = result
        self.state = PlayerState.ANSWERED
        return result

    async def next(self) -> PlayerState:
        """Advance, or finish when already on the last item."""
        self._require_active("advance")
        if not self.is_last:
            self._record_self_graded()
            self._enter(self.current_index + 1)
        else:
            await self.finish()
        return self.state

    def prev(self) -> PlayerState:
        """Step back one item. Recorded results stay as they are."""
        self._require_active("go back")
        if not self.is_first:
            self._record_self_graded()
            self._enter(self.current_index - 1)
        return self.state

    async def finish(self) -> PlayerState:
        """
        Report the session.

        Re-entrant calls are no-ops. On failure the learner is told, the
        session returns to the item it was on and nothing is retried.
        """
        if self.state in (PlayerState.FINISHING, PlayerState.FINISHED):
            return self.state
        self._require_active("finish")

        resume_state = self.state
        self.state = PlayerState.FINISHING
        self._record_self_graded()

        if not self.results or self.finisher is None:
            self.state = PlayerState.FINISHED
            return self.state

        params = self.build_finish_params()
        try:
            self.response = await self.finisher(params)
        except Exception as e:
            logger.error(f"Failed to finish study session: {e}")
            self.last_error = e
            self.state = resume_state
            self._notify("Failed to save progress", "error")
            return self.state
        except BaseException:
            # Interrupted mid-save: the report may not have landed
            self.state = resume_state
            raise

        self.last_error = None
        self.state = PlayerState.FINISHED
        self._notify("Study session saved!", "success")
        return self.state

    def close(self) -> None:
        """Abandon the session without reporting."""
        if self.state == PlayerState.FINISHING:
            raise InvalidTransition("close", self.state)
        self.state = PlayerState.CLOSED
        self.visit = None

    def build_finish_params(self) -> FinishStudySessionParams:
        elapsed = self.clock() - (self._started_at if self._started_at is not None else self.clock())
        return FinishStudySessionParams(
            set_id=self.data.set.id,
            duration_seconds=max(math.floor(elapsed), 1),
            results=[
                StudySessionResult(item_id=item_id, is_correct=ok)
                for item_id, ok in self.results.items()
            ],
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _enter(self, index: int) -> None:
        """Land on an item with fresh transient state and a fresh shuffle."""
        item = self.items[index]
        self.current_index = index
        self.visit = ItemVisit(
            item_id=item.id,
            order=get_handler(item.type).arrange(item, self.rng),
        )
        self.state = PlayerState.PRESENTING

    def _record_self_graded(self) -> None:
        """Flashcards and notes left without a grade count as studied."""
        item = self.items[self.current_index]
        if item.type in SELF_GRADED_TYPES and item.id not in self.results:
            self.results[item.id] = True

    def _require_active(self, operation: str) -> None:
        if self.state not in ACTIVE_STATES:
            raise InvalidTransition(operation, self.state)

    def _notify(self, message: str, kind: str) -> None:
        if self.notify is not None:
            self.notify(message, kind)
