"""
Local Validator - Cheap checks before preview and before commit.

Two layers:
1. Turn gate: a loaded session, not completed, local seat holds the turn
2. Variant rules: the adapter's is_locally_legal

Nothing here talks to the network. A move that fails either layer never
reaches the authority.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Hashable

from ..errors import InvalidMoveError, NotYourTurnError
from .action import LegalityResult, ProvisionalMove
from .state import GameSession

if TYPE_CHECKING:
    from ..games.base import GameAdapter


class LocalValidator:
    """Runs the turn gate and the adapter's legality check."""

    def __init__(self, adapter: GameAdapter):
        self.adapter = adapter

    def turn_gate(self, session: GameSession | None) -> LegalityResult:
        if session is None:
            return LegalityResult.illegal("Game is not loaded yet")
        if session.is_completed:
            return LegalityResult.illegal("Game is over")
        if not session.is_my_turn:
            return LegalityResult.illegal("Waiting for the opponent")
        return LegalityResult.ok()

    def check(self, session: GameSession | None, move: ProvisionalMove) -> LegalityResult:
        gate = self.turn_gate(session)
        if not gate:
            return gate
        return self.adapter.is_locally_legal(session, move)

    def require(self, session: GameSession | None, move: ProvisionalMove) -> GameSession:
        """
        Raise unless the move may be sent right now.

        Raises:
            NotYourTurnError: If the turn gate fails
            InvalidMoveError: If the adapter rejects the move
        """
        gate = self.turn_gate(session)
        if not gate:
            raise NotYourTurnError(gate.reason)
        result = self.adapter.is_locally_legal(session, move)
        if not result:
            raise InvalidMoveError(result.reason, reason=result.reason)
        return session

    # =========================================================================
    # Presentation
    # =========================================================================

    def groups(self, session: GameSession | None, move: ProvisionalMove) -> list[frozenset[Hashable]]:
        if session is None:
            return []
        return self.adapter.connected_groups(session, move)

    def highlights(self, session: GameSession | None, move: ProvisionalMove) -> frozenset[Hashable]:
        if session is None:
            return frozenset()
        return self.adapter.highlights(session, move)
