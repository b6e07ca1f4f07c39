"""
Game Engine - Everything the client runs for one game.

One engine per (variant, game id). It owns:
- SessionStore: the snapshot
- ProvisionalMoveBuilder + LocalValidator: move composition
- PreviewCoordinator: debounced previews
- PollScheduler: when to reload
- SubmissionGate: one write at a time

and every timer those create. close() cancels them all; nothing is
shared with other engines.

LIFECYCLE:
    setup(unready) -> setup(ready) -> active(waiting) <-> active(my turn)
                                                      -> completed
Variants without a setup step start in active.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING, Any, Hashable
import logging

from ..api.schemas import RevealPairResponse, RevealRecord
from ..config import EngineConfig
from ..engine_core.action import PreviewResult, ProvisionalMove, ResourceRef, Slot
from ..engine_core.builder import ProvisionalMoveBuilder
from ..engine_core.state import GameSession, Phase, Variant
from ..engine_core.validator import LocalValidator
from ..games import get_adapter
from ..games.base import GameAdapter
from ..games.placement import PlacementGridAdapter
from ..games.tilematching import TileMatchingAdapter
from ..errors import InvalidMoveError
from .preview import PreviewCoordinator
from .scheduler import PollScheduler
from .store import SessionStore
from .submission import SubmissionGate

if TYPE_CHECKING:
    from ..api.client import MoveAuthorityClient

logger = logging.getLogger(__name__)


class Lifecycle(Enum):
    """Where a game stands from the local seat's point of view."""
    SETUP_UNREADY = "setup_unready"
    SETUP_READY = "setup_ready"
    ACTIVE_WAITING = "active_waiting"
    ACTIVE_MY_TURN = "active_my_turn"
    COMPLETED = "completed"


def lifecycle_of(session: GameSession) -> Lifecycle:
    if session.is_completed:
        return Lifecycle.COMPLETED
    if session.phase == Phase.SETUP:
        return Lifecycle.SETUP_READY if session.ready else Lifecycle.SETUP_UNREADY
    if session.is_my_turn:
        return Lifecycle.ACTIVE_MY_TURN
    return Lifecycle.ACTIVE_WAITING


class GameEngine:
    """
    Per-game facade over store, builder, preview, scheduler and gate.

    Usage:
        async with GameEngine(client, Variant.PLACEMENT_GRID, "42") as engine:
            engine.place(ResourceRef("rack", 0), (7, 7))
            await engine.preview.wait()
            await engine.commit()
    """

    def __init__(
        self,
        client: MoveAuthorityClient,
        variant: Variant | str,
        game_id: str,
        config: EngineConfig | None = None,
        adapter: GameAdapter | None = None,
    ):
        self.config = config or EngineConfig()
        self.adapter = adapter or get_adapter(variant)
        self.client = client
        self.game_id = str(game_id)

        self.store = SessionStore(self.game_id, self.adapter, client, self.config.player_id)
        self.validator = LocalValidator(self.adapter)
        self.builder = ProvisionalMoveBuilder(self.adapter, self.store)
        self.preview = PreviewCoordinator(
            self.adapter, client, self.store, self.validator,
            debounce=self.config.preview_debounce,
        )
        self.scheduler = PollScheduler(
            self.store,
            interval=self.config.poll_interval or self.adapter.poll_interval,
        )
        self.gate = SubmissionGate(self.adapter, client, self.store, self.builder, self.validator)

        # Refresh fan-out, in this order
        self.store.subscribe(lambda session: self.builder.reset())
        self.store.subscribe(lambda session: self.preview.cancel())
        self.store.subscribe(self.scheduler.update)

        self.builder.subscribe(self.preview.on_move_changed)

        # Pairs game: id of the opponent move already replayed
        self._last_shown_move_id: int | None = None
        self._closed = False

    async def __aenter__(self) -> GameEngine:
        await self.open()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def open(self) -> GameSession:
        """Load the game. Starts polling if the opponent holds the turn."""
        logger.info("Opening %s game %s", self.adapter.route, self.game_id)
        return await self.store.refresh()

    async def close(self):
        """Cancel every timer owned by this engine and detach a write in flight."""
        if self._closed:
            return
        self._closed = True
        self.gate.close()
        await self.scheduler.close()
        await self.preview.close()
        logger.info("Closed %s game %s", self.adapter.route, self.game_id)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def session(self) -> GameSession | None:
        return self.store.session

    @property
    def move(self) -> ProvisionalMove:
        return self.builder.move

    @property
    def lifecycle(self) -> Lifecycle | None:
        session = self.store.session
        return lifecycle_of(session) if session is not None else None

    @property
    def preview_result(self) -> PreviewResult | None:
        """Preview for the current move; None while pending or stale."""
        return self.preview.current(self.builder.move)

    @property
    def can_commit(self) -> bool:
        session = self.store.session
        move = self.builder.move
        if self.gate.locked or not self.validator.check(session, move):
            return False
        if self.adapter.supports_remote_preview:
            result = self.preview.current(move)
            return result is not None and result.enables_commit(move)
        return True

    def slots(self) -> list[Slot]:
        session = self.store.session
        return self.adapter.describe_slots(session) if session is not None else []

    def available(self) -> list[ResourceRef]:
        return self.builder.available()

    def groups(self) -> list[frozenset[Hashable]]:
        return self.validator.groups(self.store.session, self.builder.move)

    def highlights(self) -> frozenset[Hashable]:
        return self.validator.highlights(self.store.session, self.builder.move)

    # =========================================================================
    # Edits
    # =========================================================================

    def select(self, resource: ResourceRef | None, choice: Any = None):
        self.builder.select(resource, choice)

    def toggle(self, position: Hashable, choice: Any = None) -> ProvisionalMove:
        return self.builder.toggle(position, choice)

    def place(self, resource: ResourceRef | None, position: Hashable, choice: Any = None) -> ProvisionalMove:
        return self.builder.place(resource, position, choice)

    def remove(self, position: Hashable) -> ProvisionalMove:
        return self.builder.remove(position)

    def clear(self):
        self.builder.clear()

    # =========================================================================
    # Writes
    # =========================================================================

    async def commit(self) -> Any:
        return await self.gate.commit()

    async def pass_turn(self) -> Any:
        return await self.gate.pass_turn()

    async def exchange(self, rack_indices: list[int]) -> Any:
        """Swap rack tiles with the bag (word game)."""
        if not isinstance(self.adapter, PlacementGridAdapter):
            raise InvalidMoveError(
                f"{self.adapter.route} has no tile exchange", reason="not supported",
            )
        session = self.store.session
        letters = self.adapter.exchange_letters(session, rack_indices) if session else []
        return await self.gate.exchange(letters)

    async def resign(self) -> Any:
        return await self.gate.resign()

    async def flip(self, cell: tuple[int, int]) -> RevealPairResponse | None:
        """
        Pairs game: turn a cell face-up, and send the pair on the second flip.

        Returns the revealed pair once sent, None after the first flip.
        """
        self.builder.toggle(cell)
        session = self.store.session
        if session is not None and self.adapter.is_ready(session, self.builder.move):
            return await self.gate.commit()
        return None

    @property
    def last_reveal(self) -> RevealPairResponse | None:
        result = self.gate.last_result
        return result if isinstance(result, RevealPairResponse) else None

    def take_opponent_move(self) -> RevealRecord | None:
        """
        Pairs game: the opponent's last pair, the first time it is asked for.

        The marker is kept in memory only; reopening the game replays it.
        """
        session = self.store.session
        if session is None or not isinstance(self.adapter, TileMatchingAdapter):
            return None
        move = self.adapter.opponent_move_to_show(session, self._last_shown_move_id)
        if move is not None:
            self._last_shown_move_id = move.id
        return move

    # =========================================================================
    # Events
    # =========================================================================

    def on_visibility_regained(self):
        """The app came back to the foreground."""
        return self.scheduler.on_visibility_regained()

    async def refresh(self) -> GameSession:
        return await self.store.refresh()
