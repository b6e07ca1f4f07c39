"""
Submission Gate - Sends at most one write per game at a time.

commit():
1. Fail fast with AlreadySubmittingError if a write is outstanding
2. Re-run the local check (turn gate + adapter legality)
3. Derive the payload from the move as it is right now
4. Lock (gate and builder), send, refresh, unlock

The lock is taken before the first await, so two commits started back to
back produce exactly one request. Every outcome ends with a refresh, and
a move the authority rejected is put back in the builder when it still
applies to the new snapshot.

Auxiliary actions (pass, exchange, resign) go through the same lock.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Awaitable, Callable
import logging

from ..engine_core.action import CommitPayload, ProvisionalMove
from ..engine_core.state import GameSession
from ..errors import (
    AlreadySubmittingError,
    InvalidMoveError,
    NotYourTurnError,
    TurnSyncError,
)

if TYPE_CHECKING:
    from ..api.client import MoveAuthorityClient
    from ..engine_core.builder import ProvisionalMoveBuilder
    from ..engine_core.validator import LocalValidator
    from ..games.base import GameAdapter
    from .store import SessionStore

logger = logging.getLogger(__name__)


class SubmissionGate:
    """Commit and auxiliary writes for one game, one at a time."""

    def __init__(
        self,
        adapter: GameAdapter,
        client: MoveAuthorityClient,
        store: SessionStore,
        builder: ProvisionalMoveBuilder,
        validator: LocalValidator,
    ):
        self.adapter = adapter
        self.client = client
        self.store = store
        self.builder = builder
        self.validator = validator
        self._locked = False
        self._closed = False

        # Response of the last successful write (shot result, revealed pair...)
        self.last_result: Any = None

    @property
    def locked(self) -> bool:
        return self._locked

    def close(self):
        """Detach from the session. A write still in flight finishes without a refresh."""
        self._closed = True

    # =========================================================================
    # Commit
    # =========================================================================

    async def commit(self) -> Any:
        """
        Submit the provisional move.

        Returns:
            The authority's response for the move

        Raises:
            AlreadySubmittingError: A write is already outstanding
            NotYourTurnError: The local seat does not hold the turn
            InvalidMoveError: Rejected locally or by the authority
            NetworkError: The authority could not be reached
        """
        self._check_unlocked()
        session = self.store.session
        move = self.builder.move

        try:
            self.validator.require(session, move)
        except NotYourTurnError:
            # Stale UI: bring the snapshot up to date before reporting
            await self._refresh()
            raise

        payload = self.adapter.to_commit_payload(session, move)
        return await self._write(
            payload.action,
            lambda: self._send(session, payload),
            rejected_move=move,
        )

    async def _send(self, session: GameSession, payload: CommitPayload) -> Any:
        route, game_id = self.adapter.route, self.store.game_id
        if payload.action == "reveal":
            body = payload.body
            return await self.client.reveal_pair(
                route, game_id, (body["row1"], body["col1"]), (body["row2"], body["col2"]),
            )
        if payload.action == "fire":
            return await self.client.fire_at(route, game_id, (payload.body["row"], payload.body["col"]))
        return await self.client.commit_move(route, game_id, payload)

    # =========================================================================
    # Auxiliary actions
    # =========================================================================

    async def pass_turn(self) -> Any:
        self._check_unlocked()
        await self._require_turn()
        return await self._write(
            "pass", lambda: self.client.pass_turn(self.adapter.route, self.store.game_id),
        )

    async def exchange(self, letters: list[str]) -> Any:
        self._check_unlocked()
        await self._require_turn()
        if not letters:
            raise InvalidMoveError("Pick at least one tile to exchange", reason="no tiles selected")
        return await self._write(
            "exchange",
            lambda: self.client.exchange_resources(self.adapter.route, self.store.game_id, letters),
        )

    async def resign(self) -> Any:
        """Resign. Allowed whoever holds the turn."""
        self._check_unlocked()
        session = self.store.session
        if session is None or session.is_completed:
            raise InvalidMoveError("Game is not in progress", reason="game not in progress")
        return await self._write(
            "resign", lambda: self.client.resign(self.adapter.route, self.store.game_id),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_unlocked(self):
        if self._locked:
            raise AlreadySubmittingError(
                "A move is already being submitted",
                context={"game_id": self.store.game_id},
            )

    async def _require_turn(self):
        gate = self.validator.turn_gate(self.store.session)
        if not gate:
            await self._refresh()
            raise NotYourTurnError(gate.reason)

    async def _write(
        self,
        label: str,
        call: Callable[[], Awaitable[Any]],
        rejected_move: ProvisionalMove | None = None,
    ) -> Any:
        self._check_unlocked()
        self._locked = True
        self.builder.lock()
        restore = False
        try:
            try:
                result = await call()
            except TurnSyncError as e:
                logger.warning("%s on game %s failed: %s", label, self.store.game_id, e)
                restore = isinstance(e, InvalidMoveError)
                await self._refresh()
                raise
            logger.info("%s on game %s accepted", label, self.store.game_id)
            self.last_result = result
            await self._refresh()
            return result
        finally:
            self._locked = False
            self.builder.unlock()
            if restore and rejected_move is not None and not self._closed:
                self.builder.restore(rejected_move)

    async def _refresh(self):
        if self._closed:
            logger.debug("Game %s closed, skipping refresh", self.store.game_id)
            return
        try:
            await self.store.refresh()
        except TurnSyncError as e:
            logger.warning("Refresh of game %s after write failed: %s", self.store.game_id, e)
