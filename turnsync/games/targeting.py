"""
Targeting Grid - Fleet setup and shots on a 10x10 grid.

Two sub-phases:
1. Setup: place the fixed fleet as straight segments. Each segment is a
   start cell, an orientation flag and the segment's length. Segments must
   stay inside the grid and may not overlap each other.
2. Active: pick one cell of the enemy grid not fired at before.

Hit and sink determination belong to the authority.
"""

from __future__ import annotations
from typing import Any, Hashable

from ..api.schemas import TargetingStateResponse
from ..engine_core.action import (
    CommitPayload,
    LegalityResult,
    PendingAction,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from ..engine_core.state import GameSession, Phase, Variant
from ..errors import OccupiedError, OutOfBoundsError
from .base import GameAdapter

BOARD_SIZE = 10

# (segment type, length), in placement order
FLEET: tuple[tuple[str, int], ...] = (
    ("carrier", 5),
    ("battleship", 4),
    ("cruiser", 3),
    ("submarine", 3),
    ("destroyer", 2),
)

FIRED = frozenset({"hit", "miss"})
SHOT = ResourceRef("shot", 0)

Cell = tuple[int, int]


def segment_cells(start: Cell, horizontal: bool, length: int) -> list[Cell]:
    """Cells covered by a segment, starting at start."""
    row, col = start
    if horizontal:
        return [(row, col + i) for i in range(length)]
    return [(row + i, col) for i in range(length)]


class TargetingGridAdapter(GameAdapter):
    """Adapter for the shot game."""

    variant = Variant.TARGETING_GRID
    route = "battleship"

    def __init__(
        self,
        board_size: int = BOARD_SIZE,
        fleet: tuple[tuple[str, int], ...] = FLEET,
    ):
        self.board_size = board_size
        self.fleet = fleet

    # =========================================================================
    # Snapshot parsing
    # =========================================================================

    def parse_session(
        self,
        game_id: str,
        payload: dict[str, Any],
        local_player_id: int | None = None,
    ) -> GameSession:
        state = TargetingStateResponse.model_validate(payload)
        game = state.game
        local_seat, turn_owner, outcome = self._seats(game, state.is_your_turn, local_player_id)

        return GameSession(
            game_id=str(game_id),
            variant=self.variant,
            phase=Phase.from_status(state.phase or game.status),
            local_seat=local_seat,
            turn_owner=turn_owner,
            ready=state.ships_ready,
            public_view={
                "enemy_board": state.enemy_board,
                "enemy_ships_remaining": state.enemy_ships_remaining,
            },
            private_view={
                "my_board": state.my_board,
                "my_ships": [ship.model_dump() for ship in state.my_ships],
            },
            config={"board_size": self.board_size, "fleet": list(self.fleet)},
            outcome=outcome,
            raw=payload,
        )

    def in_setup(self, session: GameSession) -> bool:
        return session.phase == Phase.SETUP and not session.ready

    # =========================================================================
    # Capability set
    # =========================================================================

    def describe_slots(self, session: GameSession) -> list[Slot]:
        enemy = session.public_view.get("enemy_board") or []
        setup = self.in_setup(session)
        slots = []
        for row in range(self.board_size):
            for col in range(self.board_size):
                status = None if setup else self._status(enemy, (row, col))
                slots.append(Slot(
                    position=(row, col),
                    occupied=status in FIRED,
                    content=status,
                ))
        return slots

    def available_resources(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[ResourceRef]:
        if self.in_setup(session):
            pool = [ResourceRef("segment", i) for i in range(len(self.fleet))]
        elif session.phase == Phase.ACTIVE:
            pool = [SHOT]
        else:
            pool = []
        used = provisional.consumed
        return [ref for ref in pool if ref not in used]

    def place_at(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        position: Hashable,
        choice: Any = None,
    ) -> ProvisionalMove:
        cell = self._grid_cell(position)

        removed = self._toggle_off(provisional, cell)
        if removed is not None:
            return removed

        if self.in_setup(session):
            return self._place_segment(session, provisional, resource, cell, choice)
        return self._place_target(session, provisional, resource, cell)

    def _place_segment(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        start: Cell,
        choice: Any,
    ) -> ProvisionalMove:
        resource = self._require_free(session, provisional, resource, start)
        if choice is None:
            horizontal = True
        elif isinstance(choice, bool):
            horizontal = choice
        else:
            raise OutOfBoundsError(
                f"Orientation must be True (horizontal) or False (vertical), got {choice!r}",
                position=start,
            )
        _, length = self.fleet[resource.key]

        cells = segment_cells(start, horizontal, length)
        if not all(self._in_bounds(c) for c in cells):
            raise OutOfBoundsError(
                f"Segment of length {length} at {start} leaves the grid", position=start,
            )

        covered = self.covered_cells(provisional)
        overlap = [c for c in cells if c in covered]
        if overlap:
            raise OccupiedError(
                f"Segment at {start} overlaps another segment at {overlap[0]}", position=start,
            )

        return self._append(provisional, start, resource, horizontal)

    def _place_target(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        cell: Cell,
    ) -> ProvisionalMove:
        if not self._in_bounds(cell):
            raise OutOfBoundsError(f"Cell {cell} is outside the grid", position=cell)
        enemy = session.public_view.get("enemy_board") or []
        if self._status(enemy, cell) in FIRED:
            raise OccupiedError(f"Already fired at {cell}", position=cell)

        resource = self._require_free(session, provisional, resource or SHOT, cell)
        return self._append(provisional, cell, resource)

    def is_locally_legal(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> LegalityResult:
        if self.in_setup(session):
            return self._setup_legality(provisional)

        if len(provisional) != 1:
            return LegalityResult.illegal("Pick exactly one target cell")
        cell = provisional.actions[0].position
        if not self._in_bounds(cell):
            return LegalityResult.illegal(f"Cell {cell} is outside the grid")
        if self._status(session.public_view.get("enemy_board") or [], cell) in FIRED:
            return LegalityResult.illegal(f"Already fired at {cell}")
        return LegalityResult.ok()

    def _setup_legality(self, provisional: ProvisionalMove) -> LegalityResult:
        covered: set[Cell] = set()
        placed: set[int] = set()

        for action in provisional:
            key = action.resource.key
            if action.resource.kind != "segment" or not 0 <= key < len(self.fleet):
                return LegalityResult.illegal(f"Unknown segment {action.resource}")
            if key in placed:
                return LegalityResult.illegal(f"{self.fleet[key][0]} placed twice")
            placed.add(key)

            for cell in self._segment_of(action):
                if not self._in_bounds(cell):
                    return LegalityResult.illegal(f"{self.fleet[key][0]} leaves the grid")
                if cell in covered:
                    return LegalityResult.illegal(f"Segments overlap at {cell}")
                covered.add(cell)

        if len(placed) < len(self.fleet):
            return LegalityResult.illegal(
                f"Place all {len(self.fleet)} segments ({len(placed)} placed)"
            )
        return LegalityResult.ok()

    def to_commit_payload(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> CommitPayload:
        if self.in_setup(session):
            ships = []
            for action in provisional:
                kind, length = self.fleet[action.resource.key]
                row, col = action.position
                ships.append({
                    "type": kind,
                    "start_row": row,
                    "start_col": col,
                    "horizontal": bool(action.value),
                    "size": length,
                })
            return CommitPayload(action="ships", body={"ships": ships})

        row, col = provisional.actions[0].position
        return CommitPayload(action="fire", body={"row": row, "col": col})

    # =========================================================================
    # Presentation helpers
    # =========================================================================

    def covered_cells(self, provisional: ProvisionalMove) -> set[Cell]:
        """Every cell covered by a pending segment."""
        covered: set[Cell] = set()
        for action in provisional:
            if action.resource.kind == "segment":
                covered.update(self._segment_of(action))
        return covered

    def remove_covering(self, provisional: ProvisionalMove, cell: Cell) -> ProvisionalMove:
        """Remove the pending segment covering cell, if any."""
        for action in provisional:
            if action.resource.kind == "segment" and cell in self._segment_of(action):
                return provisional.without_position(action.position)
        return provisional

    def highlights(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> frozenset[Cell]:
        if self.in_setup(session):
            return frozenset(self.covered_cells(provisional))
        return frozenset(provisional.positions)

    # =========================================================================
    # Internals
    # =========================================================================

    def _segment_of(self, action: PendingAction) -> list[Cell]:
        _, length = self.fleet[action.resource.key]
        return segment_cells(action.position, bool(action.value), length)

    def _in_bounds(self, cell: Cell) -> bool:
        row, col = cell
        return 0 <= row < self.board_size and 0 <= col < self.board_size

    @staticmethod
    def _status(board: list[list[str]], cell: Cell) -> str | None:
        row, col = cell
        if 0 <= row < len(board) and 0 <= col < len(board[row]):
            return board[row][col]
        return None
