"""
Preview Coordinator - Debounced previews of the provisional move.

Flow for every move change:
1. Empty move -> clear the result, no request
2. Locally illegal -> invalid result, no request
3. Variant without remote preview -> local result from the legality check
4. Otherwise wait out the debounce window (last change wins), then ask
   the authority

A response is kept only if it was computed for the move that is current
when it arrives. Failures degrade to an "unknown" result that never
enables commit.
"""

from __future__ import annotations
from typing import TYPE_CHECKING
import asyncio
import logging

from ..engine_core.action import PreviewResult, ProvisionalMove
from ..errors import TurnSyncError

if TYPE_CHECKING:
    from ..api.client import MoveAuthorityClient
    from ..engine_core.validator import LocalValidator
    from ..games.base import GameAdapter
    from .store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.3


class PreviewCoordinator:
    """Owns the preview result and the debounce timer for one game."""

    def __init__(
        self,
        adapter: GameAdapter,
        client: MoveAuthorityClient,
        store: SessionStore,
        validator: LocalValidator,
        debounce: float = DEFAULT_DEBOUNCE,
    ):
        self.adapter = adapter
        self.client = client
        self.store = store
        self.validator = validator
        self.debounce = debounce
        self._result: PreviewResult | None = None
        self._current_key: str | None = None
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self.request_count = 0
        self._closed = False

    @property
    def result(self) -> PreviewResult | None:
        return self._result

    @property
    def pending(self) -> bool:
        timer_running = self._timer is not None and not self._timer.done()
        return timer_running or any(not t.done() for t in self._inflight)

    def current(self, move: ProvisionalMove) -> PreviewResult | None:
        """The result for move, or None if there is none or it is stale."""
        if self._result is not None and self._result.matches(move):
            return self._result
        return None

    def on_move_changed(self, move: ProvisionalMove):
        """Builder listener."""
        self._cancel_timer()
        self._result = None
        if self._closed:
            return

        if move.is_empty:
            self._current_key = None
            return

        key = move.shape_key
        self._current_key = key
        session = self.store.session

        legality = self.validator.check(session, move)
        if not legality:
            self._result = PreviewResult(shape_key=key, valid=False, error_reason=legality.reason)
            return

        if not self.adapter.supports_remote_preview:
            self._result = PreviewResult(shape_key=key, valid=True)
            return

        self._timer = asyncio.create_task(self._debounced(session, move))

    def cancel(self):
        """Drop the result and any pending request. Subscribed to the store."""
        self._cancel_timer()
        for task in self._inflight:
            task.cancel()
        self._result = None
        self._current_key = None

    async def wait(self):
        """Wait for the pending debounce and request, if any."""
        while self.pending:
            tasks = [t for t in (self._timer, *self._inflight) if t is not None and not t.done()]
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self):
        """Cancel everything and ignore later move changes."""
        self._closed = True
        tasks = [t for t in (self._timer, *self._inflight) if t is not None]
        self.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # Internals
    # =========================================================================

    def _cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()

    async def _debounced(self, session, move: ProvisionalMove):
        await asyncio.sleep(self.debounce)
        # Past the debounce window the request outlives later edits
        request = asyncio.create_task(self._request(session, move))
        self._inflight.add(request)
        request.add_done_callback(self._inflight.discard)

    async def _request(self, session, move: ProvisionalMove):
        key = move.shape_key
        payload = self.adapter.to_commit_payload(session, move)
        self.request_count += 1
        logger.debug("Preview request #%d for %s", self.request_count, key[:12])

        try:
            response = await self.client.preview_move(self.adapter.route, self.store.game_id, payload)
        except TurnSyncError as e:
            logger.warning("Preview failed for game %s: %s", self.store.game_id, e)
            result = PreviewResult.unknown(key, e.message)
        else:
            result = PreviewResult(
                shape_key=key,
                valid=response.valid,
                metric=response.score,
                detail=list(response.words),
                error_reason=response.error,
            )

        if key != self._current_key:
            logger.debug("Discarding stale preview for %s", key[:12])
            return
        self._result = result
