"""
Tile Matching - Flip two hidden cells and hope they match.

The authority sends the visible board (hidden cells are -1, matched cells
show their tile id). The player whose turn it is also receives the full
board, which lets the first flip show its face before the pair is sent.

A move is exactly two distinct hidden cells. While two cells are face-up
further clicks are ignored until the pair resolves.
"""

from __future__ import annotations
from typing import Any, Hashable

from ..api.schemas import RevealRecord, TileMatchingStateResponse
from ..engine_core.action import (
    CommitPayload,
    LegalityResult,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from ..engine_core.state import GameSession, Phase, Seat, Variant
from ..errors import OccupiedError, OutOfBoundsError
from .base import GameAdapter

HIDDEN = -1
FLIPS = (ResourceRef("flip", 0), ResourceRef("flip", 1))
DEFAULT_BOARD = (4, 5)

Cell = tuple[int, int]


def parse_board_size(value: str | None) -> tuple[int, int] | None:
    """'4x5' -> (4, 5). None when the value is missing or malformed."""
    if not value:
        return None
    try:
        rows, cols = value.lower().split("x")
        return int(rows), int(cols)
    except ValueError:
        return None


class TileMatchingAdapter(GameAdapter):
    """Adapter for the pairs game."""

    variant = Variant.TILE_MATCHING
    route = "memory"

    # =========================================================================
    # Snapshot parsing
    # =========================================================================

    def parse_session(
        self,
        game_id: str,
        payload: dict[str, Any],
        local_player_id: int | None = None,
    ) -> GameSession:
        state = TileMatchingStateResponse.model_validate(payload)
        game = state.game
        local_seat, turn_owner, outcome = self._seats(game, state.is_your_turn, local_player_id)

        if state.board:
            rows, cols = len(state.board), len(state.board[0])
        else:
            rows, cols = parse_board_size(game.extra("board_size")) or DEFAULT_BOARD

        # Newest move first
        moves = [m.model_dump() for m in state.moves]

        return GameSession(
            game_id=str(game_id),
            variant=self.variant,
            phase=Phase.from_status(game.status),
            local_seat=local_seat,
            turn_owner=turn_owner,
            ready=True,
            public_view={
                "board": state.board,
                "moves": moves,
                "total_pairs": state.total_pairs,
                "matched_count": state.matched_count,
            },
            private_view={"full_board": state.full_board},
            config={"rows": rows, "cols": cols},
            scores={
                Seat.PLAYER1: game.extra("player1_score", 0),
                Seat.PLAYER2: game.extra("player2_score", 0),
            },
            last_move=moves[0] if moves else None,
            outcome=outcome,
            raw=payload,
        )

    # =========================================================================
    # Capability set
    # =========================================================================

    def describe_slots(self, session: GameSession) -> list[Slot]:
        board = session.public_view.get("board") or []
        slots = []
        for row in range(session.config["rows"]):
            for col in range(session.config["cols"]):
                tile = self._tile(board, (row, col))
                matched = tile is not None and tile != HIDDEN
                slots.append(Slot(
                    position=(row, col),
                    occupied=matched,
                    content=tile if matched else None,
                ))
        return slots

    def available_resources(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[ResourceRef]:
        if session.phase != Phase.ACTIVE:
            return []
        used = provisional.consumed
        return [ref for ref in FLIPS if ref not in used]

    def place_at(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        position: Hashable,
        choice: Any = None,
    ) -> ProvisionalMove:
        cell = self._grid_cell(position)

        # Pair is up: wait for it to resolve
        if len(provisional) >= len(FLIPS):
            return provisional

        removed = self._toggle_off(provisional, cell)
        if removed is not None:
            return removed

        if not self._in_bounds(session, cell):
            raise OutOfBoundsError(f"Cell {cell} is outside the board", position=cell)
        if self._tile(session.public_view.get("board") or [], cell) != HIDDEN:
            raise OccupiedError(f"Cell {cell} is already matched", position=cell)

        if resource is None:
            free = self.available_resources(session, provisional)
            resource = free[0] if free else None
        resource = self._require_free(session, provisional, resource, cell)
        return self._append(provisional, cell, resource, self.face_of(session, cell))

    def is_locally_legal(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> LegalityResult:
        if len(provisional) != 2:
            return LegalityResult.illegal("Flip exactly two cells")
        first, second = provisional.positions
        if first == second:
            return LegalityResult.illegal("Flip two different cells")
        board = session.public_view.get("board") or []
        for cell in (first, second):
            if not self._in_bounds(session, cell):
                return LegalityResult.illegal(f"Cell {cell} is outside the board")
            if self._tile(board, cell) != HIDDEN:
                return LegalityResult.illegal(f"Cell {cell} is already matched")
        return LegalityResult.ok()

    def to_commit_payload(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> CommitPayload:
        (row1, col1), (row2, col2) = provisional.positions
        return CommitPayload(
            action="reveal",
            body={"row1": row1, "col1": col1, "row2": row2, "col2": col2},
        )

    # =========================================================================
    # Presentation helpers
    # =========================================================================

    def face_of(self, session: GameSession, cell: Cell) -> int | None:
        """Tile id under a hidden cell, when the full board was sent."""
        full = session.private_view.get("full_board")
        if not full:
            return None
        return self._tile(full, cell)

    def opponent_move_to_show(
        self,
        session: GameSession,
        last_shown_id: int | None,
    ) -> RevealRecord | None:
        """
        The opponent's latest unmatched pair, if it has not been shown yet.

        Shown once per move when the turn comes back to the local seat.
        Matched pairs stay face-up on the board and need no replay.
        """
        if not session.is_my_turn or session.last_move is None:
            return None
        move = RevealRecord.model_validate(session.last_move)
        if move.id == last_shown_id or move.matched:
            return None
        if move.user_id == self._local_player_id(session):
            return None
        return move

    def highlights(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> frozenset[Cell]:
        return frozenset(provisional.positions)

    # =========================================================================
    # Internals
    # =========================================================================

    def _in_bounds(self, session: GameSession, cell: Cell) -> bool:
        row, col = cell
        return 0 <= row < session.config["rows"] and 0 <= col < session.config["cols"]

    @staticmethod
    def _tile(board: list[list[int]], cell: Cell) -> int | None:
        row, col = cell
        if 0 <= row < len(board) and 0 <= col < len(board[row]):
            return board[row][col]
        return None

    @staticmethod
    def _local_player_id(session: GameSession) -> int | None:
        game = session.raw.get("game") or {}
        if session.local_seat == Seat.PLAYER1:
            return game.get("player1_id")
        return game.get("player2_id")
