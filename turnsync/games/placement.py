"""
Placement Grid - Word placement on a 15x15 board.

The player drags rack tiles onto empty squares. Locally we only check:
- every pending cell is distinct, inside the grid and on an empty square
- every rack tile is used at most once
- blank tiles carry a chosen letter

Whether the tiles touch an existing word, form a line or spell real
words is decided by the authority's preview. The connected-group
computation below is for rendering only.
"""

from __future__ import annotations
from collections import deque
from typing import Any, Hashable
import json
import random
import string

from ..api.schemas import BoardTile, PlacementStateResponse
from ..engine_core.action import (
    CommitPayload,
    LegalityResult,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from ..engine_core.state import GameSession, Phase, Seat, Variant
from ..errors import OccupiedError, OutOfBoundsError, ResourceUnavailableError
from .base import GameAdapter

BOARD_SIZE = 15
BLANK = " "
LETTERS = frozenset(string.ascii_uppercase)

Cell = tuple[int, int]

DIRECTIONS: dict[str, Cell] = {
    "top": (-1, 0),
    "bottom": (1, 0),
    "left": (0, -1),
    "right": (0, 1),
}


class PlacementGridAdapter(GameAdapter):
    """Adapter for the word game."""

    variant = Variant.PLACEMENT_GRID
    route = "scrabble"
    poll_interval = 8.0
    supports_remote_preview = True

    def __init__(self, board_size: int = BOARD_SIZE):
        self.board_size = board_size

    # =========================================================================
    # Snapshot parsing
    # =========================================================================

    def parse_session(
        self,
        game_id: str,
        payload: dict[str, Any],
        local_player_id: int | None = None,
    ) -> GameSession:
        state = PlacementStateResponse.model_validate(payload)
        game = state.game
        local_seat, turn_owner, outcome = self._seats(game, state.is_your_turn, local_player_id)

        tiles: dict[Cell, BoardTile] = {}
        for row, cells in enumerate(game.extra("board") or []):
            for col, raw in enumerate(cells or []):
                if not raw:
                    continue
                tile = BoardTile.model_validate(raw)
                if tile.letter:
                    tiles[(row, col)] = tile

        last_move = state.last_move.model_dump() if state.last_move else None

        return GameSession(
            game_id=str(game_id),
            variant=self.variant,
            phase=Phase.from_status(game.status),
            local_seat=local_seat,
            turn_owner=turn_owner,
            ready=True,
            public_view={
                "tiles": tiles,
                "tiles_remaining": state.tiles_remaining,
            },
            private_view={"rack": list(state.rack)},
            config={"board_size": self.board_size},
            scores={
                Seat.PLAYER1: game.extra("player1_score", 0),
                Seat.PLAYER2: game.extra("player2_score", 0),
            },
            last_move=last_move,
            outcome=outcome,
            raw=payload,
        )

    # =========================================================================
    # Capability set
    # =========================================================================

    def describe_slots(self, session: GameSession) -> list[Slot]:
        tiles = self._committed(session)
        slots = []
        for row in range(self.board_size):
            for col in range(self.board_size):
                tile = tiles.get((row, col))
                slots.append(Slot(
                    position=(row, col),
                    occupied=tile is not None,
                    content=tile.letter if tile else None,
                ))
        return slots

    def available_resources(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[ResourceRef]:
        used = provisional.consumed
        return [
            ref for ref in (ResourceRef("rack", i) for i in range(len(self._rack(session))))
            if ref not in used
        ]

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

        if not self._in_bounds(cell):
            raise OutOfBoundsError(f"Cell {cell} is outside the board", position=cell)
        if cell in self._committed(session):
            raise OccupiedError(f"Cell {cell} already holds a tile", position=cell)

        resource = self._require_free(session, provisional, resource, cell)
        tile = self._rack(session)[resource.key]

        if tile.letter == BLANK:
            letter = (choice or "").upper()
            if letter not in LETTERS:
                raise ResourceUnavailableError(
                    "Blank tile needs a letter A-Z", position=cell,
                )
        else:
            letter = tile.letter

        return self._append(provisional, cell, resource, letter)

    def is_locally_legal(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> LegalityResult:
        if provisional.is_empty:
            return LegalityResult.illegal("No tiles placed")

        committed = self._committed(session)
        rack_size = len(self._rack(session))
        seen_cells: set[Cell] = set()
        seen_tiles: set[int] = set()

        for action in provisional:
            cell = action.position
            if cell in seen_cells:
                return LegalityResult.illegal(f"Two tiles on {cell}")
            seen_cells.add(cell)
            if not self._in_bounds(cell):
                return LegalityResult.illegal(f"Cell {cell} is outside the board")
            if cell in committed:
                return LegalityResult.illegal(f"Cell {cell} is not empty")
            if action.resource.key in seen_tiles or not 0 <= action.resource.key < rack_size:
                return LegalityResult.illegal(f"Rack tile {action.resource.key} is not available")
            seen_tiles.add(action.resource.key)

        return LegalityResult.ok()

    def to_commit_payload(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> CommitPayload:
        tiles = [
            {"letter": action.value, "row": action.position[0], "col": action.position[1]}
            for action in provisional
        ]
        return CommitPayload(action="play", body={"tiles": tiles})

    # =========================================================================
    # Presentation helpers
    # =========================================================================

    def connected_groups(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[frozenset[Cell]]:
        """
        Connected components of committed + pending tiles.

        Breadth-first search with 4-directional adjacency. Groups are
        returned sorted by their top-left cell.
        """
        filled = set(self._committed(session)) | set(provisional.positions)
        groups: list[frozenset[Cell]] = []
        visited: set[Cell] = set()

        for start in sorted(filled):
            if start in visited:
                continue
            component = {start}
            queue = deque([start])
            visited.add(start)
            while queue:
                row, col = queue.popleft()
                for d_row, d_col in DIRECTIONS.values():
                    neighbour = (row + d_row, col + d_col)
                    if neighbour in filled and neighbour not in visited:
                        visited.add(neighbour)
                        component.add(neighbour)
                        queue.append(neighbour)
            groups.append(frozenset(component))

        return groups

    def neighbours(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        cell: Cell,
    ) -> dict[str, bool]:
        """Which sides of cell touch another tile (for joined tile borders)."""
        filled = set(self._committed(session)) | set(provisional.positions)
        row, col = cell
        return {
            side: (row + d_row, col + d_col) in filled
            for side, (d_row, d_col) in DIRECTIONS.items()
        }

    def last_move_cells(self, session: GameSession) -> frozenset[Cell]:
        """Cells played by the most recent 'play' move."""
        move = session.last_move
        if not move or move.get("move_type") != "play" or not move.get("tiles_played"):
            return frozenset()
        try:
            played = json.loads(move["tiles_played"])
        except (TypeError, ValueError):
            return frozenset()
        return frozenset((t["row"], t["col"]) for t in played if "row" in t and "col" in t)

    def highlights(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> frozenset[Cell]:
        return frozenset(provisional.positions) | self.last_move_cells(session)

    def shuffled_rack_order(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        rng: random.Random | None = None,
    ) -> list[int]:
        """
        Display order for the rack after a shuffle.

        Tiles held by pending actions keep their place; only free
        tiles swap among themselves.
        """
        rng = rng or random.Random()
        order = list(range(len(self._rack(session))))
        used = {ref.key for ref in provisional.consumed}
        free = [i for i in order if i not in used]
        shuffled = free.copy()
        rng.shuffle(shuffled)
        for slot, index in zip(free, shuffled):
            order[slot] = index
        return order

    def exchange_letters(self, session: GameSession, rack_indices: list[int]) -> list[str]:
        """Letters to send for a tile exchange."""
        rack = self._rack(session)
        letters = []
        for index in rack_indices:
            if not 0 <= index < len(rack):
                raise ResourceUnavailableError(f"No rack tile at index {index}")
            letters.append(rack[index].letter)
        return letters

    # =========================================================================
    # Internals
    # =========================================================================

    def _committed(self, session: GameSession) -> dict[Cell, BoardTile]:
        return session.public_view.get("tiles", {})

    def _rack(self, session: GameSession) -> list[BoardTile]:
        return session.private_view.get("rack", [])

    def _in_bounds(self, cell: Cell) -> bool:
        row, col = cell
        return 0 <= row < self.board_size and 0 <= col < self.board_size
