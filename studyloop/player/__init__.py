"""
Study session player.

Modules:
- session: the session state machine
- runner: keyboard-driven terminal loop over a session
"""
from .session import (
    InvalidTransition,
    PlayerState,
    SessionError,
    SessionSummary,
    StudySession,
)

__all__ = [
    "InvalidTransition",
    "PlayerState",
    "SessionError",
    "SessionSummary",
    "StudySession",
]
