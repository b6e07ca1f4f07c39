"""
Game Adapter - Capability set every game variant implements.

The engine (store, builder, preview, submission) is written once against
this interface. Each variant translates its own rules into:
- slots: where a pending action may go
- place_at: toggle a pending action at a position
- is_locally_legal: cheap checks with no network call
- to_commit_payload: the request body the authority expects

Adapters are stateless. Everything they need comes in as arguments.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable

from ..engine_core.action import (
    CommitPayload,
    LegalityResult,
    PendingAction,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from ..engine_core.state import GameSession, Outcome, Phase, Seat, Variant
from ..errors import OutOfBoundsError, ResourceUnavailableError
from ..api.schemas import GameInfo


class GameAdapter(ABC):
    """
    Base class for variant adapters.

    Subclasses must set variant and route, and implement the abstract
    methods. Optional capabilities default to "not supported".
    """

    variant: Variant
    route: str

    # Seconds between polls while waiting on the opponent
    poll_interval: float = 5.0

    # Whether the authority can preview a move without applying it
    supports_remote_preview: bool = False

    # =========================================================================
    # Snapshot parsing
    # =========================================================================

    @abstractmethod
    def parse_session(
        self,
        game_id: str,
        payload: dict[str, Any],
        local_player_id: int | None = None,
    ) -> GameSession:
        """Normalize an authority state body into a GameSession."""

    def _seats(
        self,
        game: GameInfo,
        is_your_turn: bool,
        local_player_id: int | None,
    ) -> tuple[Seat, Seat | None, Outcome | None]:
        """
        Work out (local seat, turn owner, outcome) from the game header.

        Without a configured player id the local seat is inferred from the
        turn marker: if it is our turn, current_turn is us; during play, if
        it is not, current_turn is the opponent. Setup and finished games
        give no such hint and fall back to PLAYER1.
        """
        phase = Phase.from_status(game.status)
        if local_player_id is None and game.current_turn is not None:
            if is_your_turn:
                local_player_id = game.current_turn
            elif phase == Phase.ACTIVE:
                if game.current_turn == game.player1_id:
                    local_player_id = game.player2_id
                elif game.current_turn == game.player2_id:
                    local_player_id = game.player1_id
        if local_player_id is not None and local_player_id == game.player2_id:
            local_seat = Seat.PLAYER2
        else:
            local_seat = Seat.PLAYER1

        if phase == Phase.COMPLETED:
            winner = None
            if game.winner_id == game.player1_id:
                winner = Seat.PLAYER1
            elif game.winner_id == game.player2_id:
                winner = Seat.PLAYER2
            return local_seat, None, Outcome(winner=winner)

        turn_owner = local_seat if is_your_turn else local_seat.opponent
        return local_seat, turn_owner, None

    # =========================================================================
    # Capability set
    # =========================================================================

    @abstractmethod
    def describe_slots(self, session: GameSession) -> list[Slot]:
        """Ordered fillable positions and whether committed state occupies them."""

    @abstractmethod
    def available_resources(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[ResourceRef]:
        """Resources of the private view not consumed by the provisional move."""

    def consumes(self, session: GameSession, resource: ResourceRef) -> bool:
        """Whether a resource can back at most one pending action."""
        return True

    @abstractmethod
    def place_at(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        position: Hashable,
        choice: Any = None,
    ) -> ProvisionalMove:
        """
        Toggle a pending action at position.

        Removes the pending action if position already holds one,
        otherwise appends one backed by resource. Never both.
        """

    @abstractmethod
    def is_locally_legal(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> LegalityResult:
        """Variant checks that need no network call."""

    @abstractmethod
    def to_commit_payload(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> CommitPayload:
        """Deterministic request body for the current move."""

    def is_ready(self, session: GameSession, provisional: ProvisionalMove) -> bool:
        """True when the move is complete enough to commit."""
        return not provisional.is_empty and self.is_locally_legal(session, provisional).legal

    def next_position(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> Hashable | None:
        """Selection cursor hint: where the next action would naturally go."""
        return None

    # =========================================================================
    # Presentation helpers
    # =========================================================================

    def connected_groups(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[frozenset[Hashable]]:
        """Connectivity groups for rendering. Only grid variants have any."""
        return []

    def highlights(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> frozenset[Hashable]:
        """Cells to highlight (last move, pending cells...)."""
        return frozenset(provisional.positions)

    # =========================================================================
    # Shared helpers
    # =========================================================================

    def _require_free(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        position: Hashable,
    ) -> ResourceRef:
        """Check resource is selected, exists in the private view and is not in use."""
        if resource is None:
            raise ResourceUnavailableError("No resource selected", position=position)
        if resource not in self.all_resources(session):
            raise ResourceUnavailableError(
                f"Resource {resource} is not available", position=position,
            )
        if self.consumes(session, resource) and provisional.holds(resource):
            raise ResourceUnavailableError(
                f"Resource {resource} is already in use", position=position,
            )
        return resource

    def all_resources(self, session: GameSession) -> list[ResourceRef]:
        """Every resource of the private view, consumed or not."""
        return self.available_resources(session, ProvisionalMove())

    def _toggle_off(
        self,
        provisional: ProvisionalMove,
        position: Hashable,
    ) -> ProvisionalMove | None:
        """Return the move without position if it was pending, else None."""
        if provisional.action_at(position) is not None:
            return provisional.without_position(position)
        return None

    @staticmethod
    def _grid_cell(position: Hashable) -> tuple[int, int]:
        try:
            row, col = position
            return int(row), int(col)
        except (TypeError, ValueError):
            raise OutOfBoundsError(f"Not a grid cell: {position!r}", position=position)

    @staticmethod
    def _append(
        provisional: ProvisionalMove,
        position: Hashable,
        resource: ResourceRef,
        value: Any = None,
    ) -> ProvisionalMove:
        return provisional.with_action(PendingAction(position=position, resource=resource, value=value))
