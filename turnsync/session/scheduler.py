"""
Poll Scheduler - Decides when to reload a game.

States:
    IDLE              Nothing loaded yet (or closed)
    WAITING_OPPONENT  Active game, opponent holds the turn -> poll
    WAITING_SETUP     Our setup is in, opponent's is not -> poll
    ACTIVE_MY_TURN    We hold the turn -> no polling
    COMPLETED         Terminal -> no polling

Polling starts on every transition into a waiting state and stops on
every transition out of one. A visibility regain always fires exactly
one refresh, whatever the state.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING
import asyncio
import logging

from ..engine_core.state import GameSession, Phase
from ..errors import TurnSyncError

if TYPE_CHECKING:
    from .store import SessionStore

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    WAITING_OPPONENT = "waiting_opponent"
    WAITING_SETUP = "waiting_setup"
    ACTIVE_MY_TURN = "active_my_turn"
    COMPLETED = "completed"


POLLING_STATES = frozenset({SchedulerState.WAITING_OPPONENT, SchedulerState.WAITING_SETUP})


def classify(session: GameSession | None) -> SchedulerState:
    """Scheduler state for a snapshot."""
    if session is None:
        return SchedulerState.IDLE
    if session.is_completed:
        return SchedulerState.COMPLETED
    if session.is_my_turn:
        return SchedulerState.ACTIVE_MY_TURN
    if session.phase == Phase.SETUP:
        return SchedulerState.WAITING_SETUP
    return SchedulerState.WAITING_OPPONENT


class PollScheduler:
    """Periodic and event-driven refreshes for one SessionStore."""

    def __init__(self, store: SessionStore, interval: float):
        self.store = store
        self.interval = interval
        self._state = SchedulerState.IDLE
        self._poll_task: asyncio.Task | None = None
        self._oneshots: set[asyncio.Task] = set()
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def update(self, session: GameSession | None):
        """Re-evaluate after a refresh. Subscribed to the store."""
        if self._closed:
            return
        previous, self._state = self._state, classify(session)
        if previous != self._state:
            logger.debug("Scheduler %s -> %s", previous.value, self._state.value)

        if self._state in POLLING_STATES:
            if not self.is_polling:
                self._start_polling()
        else:
            self._stop_polling()

    def on_visibility_regained(self) -> asyncio.Task | None:
        """Fire one refresh now. Restarts the periodic timer if polling."""
        if self._closed:
            return None
        if self.is_polling:
            self._stop_polling()
            self._start_polling()
        task = asyncio.create_task(self._refresh_once("visibility"))
        self._oneshots.add(task)
        task.add_done_callback(self._oneshots.discard)
        return task

    async def close(self):
        """Cancel every timer. The scheduler stays inert afterwards."""
        self._closed = True
        self._state = SchedulerState.IDLE
        tasks = [t for t in (self._poll_task, *self._oneshots) if t is not None]
        self._poll_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._oneshots.clear()

    # =========================================================================
    # Internals
    # =========================================================================

    def _start_polling(self):
        logger.debug("Polling every %.1fs", self.interval)
        self._poll_task = asyncio.create_task(self._poll_loop())

    def _stop_polling(self):
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _poll_loop(self):
        while True:
            await asyncio.sleep(self.interval)
            await self._refresh_once("poll")

    async def _refresh_once(self, reason: str):
        try:
            await self.store.refresh()
        except TurnSyncError as e:
            logger.warning("Refresh (%s) of game %s failed: %s", reason, self.store.game_id, e)
