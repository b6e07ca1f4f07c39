"""
Session Module - Keeps a client-held game in sync with the authority.

A game is held by a GameEngine:
- SessionStore reloads and owns the snapshot
- PollScheduler decides when to reload
- PreviewCoordinator debounces previews of the move being composed
- SubmissionGate sends one write at a time

Engines are EPHEMERAL: nothing survives the process beyond what the
authority returns on the next load.
"""

from .store import SessionStore
from .scheduler import PollScheduler, SchedulerState
from .preview import PreviewCoordinator
from .submission import SubmissionGate
from .engine import GameEngine, Lifecycle
from .manager import EngineManager

__all__ = [
    "SessionStore",
    "PollScheduler",
    "SchedulerState",
    "PreviewCoordinator",
    "SubmissionGate",
    "GameEngine",
    "Lifecycle",
    "EngineManager",
]
