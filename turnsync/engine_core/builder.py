"""
Provisional Move Builder - The player's uncommitted move.

The builder holds:
- the provisional move (ordered pending actions)
- the selection cursor (selected resource, pending choice)

It never decides legality itself. Placement goes through the adapter's
place_at so every variant keeps its own toggle rules. The builder only
enforces what is common to all variants:
- edits need a loaded session where the local seat holds the turn
- a consumed resource cannot be selected until it is freed
- no edits while a commit is outstanding
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Callable, Hashable

from ..errors import (
    AlreadySubmittingError,
    LocalMoveError,
    NotYourTurnError,
    ResourceUnavailableError,
)
from .action import ProvisionalMove, ResourceRef
from .state import GameSession

if TYPE_CHECKING:
    from ..games.base import GameAdapter
    from ..session.store import SessionStore

MoveListener = Callable[[ProvisionalMove], None]


class ProvisionalMoveBuilder:
    """
    Builds a provisional move against the store's current snapshot.

    Listeners are called with the new move after every change, in
    subscription order.
    """

    def __init__(self, adapter: GameAdapter, store: SessionStore):
        self.adapter = adapter
        self.store = store
        self._move = ProvisionalMove()
        self._selected: ResourceRef | None = None
        self._choice: Any = None
        self._locked = False
        self._reset_pending = False
        self._listeners: list[MoveListener] = []

    # =========================================================================
    # State
    # =========================================================================

    @property
    def move(self) -> ProvisionalMove:
        return self._move

    @property
    def selected(self) -> ResourceRef | None:
        return self._selected

    @property
    def choice(self) -> Any:
        return self._choice

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def cursor(self) -> tuple[ResourceRef | None, Hashable | None]:
        """(selected resource, next natural position)."""
        session = self.store.session
        if session is None:
            return self._selected, None
        return self._selected, self.adapter.next_position(session, self._move)

    def available(self) -> list[ResourceRef]:
        """Resources the player can still pick."""
        session = self.store.session
        if session is None:
            return []
        return self.adapter.available_resources(session, self._move)

    def is_ready(self) -> bool:
        session = self.store.session
        return session is not None and self.adapter.is_ready(session, self._move)

    def subscribe(self, listener: MoveListener):
        self._listeners.append(listener)

    # =========================================================================
    # Edits
    # =========================================================================

    def select(self, resource: ResourceRef | None, choice: Any = None):
        """
        Toggle the selected resource.

        Selecting the selected resource again clears the selection.

        Raises:
            ResourceUnavailableError: If the resource is consumed or unknown
        """
        session = self._editable_session()
        if resource is None or resource == self._selected:
            self._selected = None
            self._choice = None
            return

        if resource not in self.adapter.all_resources(session):
            raise ResourceUnavailableError(f"Resource {resource} is not available")
        if self.adapter.consumes(session, resource) and self._move.holds(resource):
            raise ResourceUnavailableError(f"Resource {resource} is already in use")

        self._selected = resource
        self._choice = choice

    def toggle(self, position: Hashable, choice: Any = None) -> ProvisionalMove:
        """
        Append an action at position, or remove the one already there.

        Raises:
            NotYourTurnError: If the local seat does not hold the turn
            AlreadySubmittingError: If a commit is outstanding
            LocalMoveError: If the adapter rejects the placement
        """
        session = self._editable_session()
        before = self._move
        after = self.adapter.place_at(
            session,
            before,
            self._selected,
            position,
            self._choice if choice is None else choice,
        )

        if len(after) > len(before):
            added = after.actions[-1].resource
            if self.adapter.consumes(session, added):
                self._selected = None
                self._choice = None

        self._set(after)
        return after

    def place(self, resource: ResourceRef | None, position: Hashable, choice: Any = None) -> ProvisionalMove:
        """Select resource, then toggle position."""
        if resource is not None and resource != self._selected:
            self.select(resource, choice)
        return self.toggle(position, choice)

    def remove(self, position: Hashable) -> ProvisionalMove:
        """Remove the pending action at position, if any."""
        self._editable_session()
        if self._move.action_at(position) is None:
            return self._move
        self._set(self._move.without_position(position))
        return self._move

    def clear(self):
        """Player-initiated clear. Same as reset but respects the turn gate."""
        self._editable_session()
        self.reset()

    def reset(self):
        """
        Drop the move and the selection. Never fails.

        While a commit is outstanding the move stays as sent; the reset is
        applied when the lock is released.
        """
        if self._locked:
            self._reset_pending = True
            return
        self._selected = None
        self._choice = None
        self._set(ProvisionalMove(), force=True)

    def restore(self, move: ProvisionalMove) -> bool:
        """
        Re-apply a move against the current snapshot.

        Used after a rejected commit: the refresh empties the builder, and
        the player's move comes back only if every action still applies.

        Returns:
            True if the move was restored
        """
        session = self.store.session
        if move.is_empty or session is None or not session.is_my_turn or session.is_completed:
            return False

        rebuilt = ProvisionalMove()
        try:
            for action in move:
                rebuilt = self.adapter.place_at(
                    session, rebuilt, action.resource, action.position, action.value,
                )
        except LocalMoveError:
            return False

        if rebuilt.shape_key != move.shape_key:
            return False
        self._set(rebuilt)
        return True

    # =========================================================================
    # Commit lock
    # =========================================================================

    def lock(self):
        self._locked = True

    def unlock(self):
        self._locked = False
        if self._reset_pending:
            self._reset_pending = False
            self.reset()

    # =========================================================================
    # Internals
    # =========================================================================

    def _editable_session(self) -> GameSession:
        if self._locked:
            raise AlreadySubmittingError("A move is being submitted")
        session = self.store.session
        if session is None:
            raise NotYourTurnError("Game is not loaded yet")
        if session.is_completed:
            raise NotYourTurnError("Game is over")
        if not session.is_my_turn:
            raise NotYourTurnError("Waiting for the opponent")
        return session

    def _set(self, move: ProvisionalMove, force: bool = False):
        if move == self._move and not force:
            return
        self._move = move
        for listener in self._listeners:
            listener(move)
