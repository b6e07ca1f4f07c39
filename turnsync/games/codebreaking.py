"""
Code Breaking - Secret code and guesses over a color palette.

Both players first pick a secret code (setup), then take turns guessing
the opponent's code. A code is a fixed number of slots, each holding one
color index of the palette.

With repeats disallowed, a color already used in another slot cannot be
placed again until that slot is cleared. Feedback (correct/misplaced
pegs) is computed by the authority only.
"""

from __future__ import annotations
from typing import Any, Hashable

from ..api.schemas import CodeBreakingStateResponse
from ..engine_core.action import (
    CommitPayload,
    LegalityResult,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from ..engine_core.state import GameSession, Phase, Variant
from ..errors import OutOfBoundsError
from .base import GameAdapter

CODE_LENGTH = 4
DEFAULT_COLORS = 6
DEFAULT_MAX_GUESSES = 10


class CodeBreakingAdapter(GameAdapter):
    """Adapter for the code game."""

    variant = Variant.CODE_BREAKING
    route = "mastermind"

    def __init__(self, code_length: int = CODE_LENGTH):
        self.code_length = code_length

    # =========================================================================
    # Snapshot parsing
    # =========================================================================

    def parse_session(
        self,
        game_id: str,
        payload: dict[str, Any],
        local_player_id: int | None = None,
    ) -> GameSession:
        state = CodeBreakingStateResponse.model_validate(payload)
        game = state.game
        local_seat, turn_owner, outcome = self._seats(game, state.is_your_turn, local_player_id)

        num_colors = game.extra("num_colors") or DEFAULT_COLORS
        allow_repeats = game.extra("allow_repeats")

        return GameSession(
            game_id=str(game_id),
            variant=self.variant,
            phase=Phase.from_status(state.phase or game.status),
            local_seat=local_seat,
            turn_owner=turn_owner,
            ready=state.secret_set,
            public_view={
                "my_guesses": [g.model_dump() for g in state.my_guesses],
                "their_guesses": [g.model_dump() for g in state.their_guesses],
                "round": state.round,
                "opponent_secret": state.opponent_secret,
            },
            private_view={"my_secret": state.my_secret},
            config={
                "code_length": self.code_length,
                "num_colors": int(num_colors),
                # Only an explicit false disables repeats
                "allow_repeats": allow_repeats is not False,
                "max_guesses": game.extra("max_guesses") or DEFAULT_MAX_GUESSES,
            },
            outcome=outcome,
            raw=payload,
        )

    def in_setup(self, session: GameSession) -> bool:
        return session.phase == Phase.SETUP and not session.ready

    def allows_repeats(self, session: GameSession) -> bool:
        return session.config.get("allow_repeats", True)

    def palette_size(self, session: GameSession) -> int:
        return session.config.get("num_colors", DEFAULT_COLORS)

    # =========================================================================
    # Capability set
    # =========================================================================

    def describe_slots(self, session: GameSession) -> list[Slot]:
        return [Slot(position=i) for i in range(self.code_length)]

    def available_resources(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> list[ResourceRef]:
        if session.is_completed:
            return []
        palette = [ResourceRef("color", i) for i in range(self.palette_size(session))]
        if self.allows_repeats(session):
            return palette
        used = provisional.consumed
        return [ref for ref in palette if ref not in used]

    def consumes(self, session: GameSession, resource: ResourceRef) -> bool:
        return not self.allows_repeats(session)

    def place_at(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
        resource: ResourceRef | None,
        position: Hashable,
        choice: Any = None,
    ) -> ProvisionalMove:
        slot = self._slot(position)

        removed = self._toggle_off(provisional, slot)
        if removed is not None:
            return removed

        if resource is not None and not 0 <= resource.key < self.palette_size(session):
            raise OutOfBoundsError(
                f"Color {resource.key} is outside the palette", position=slot,
            )
        resource = self._require_free(session, provisional, resource, slot)
        return self._append(provisional, slot, resource, resource.key)

    def is_locally_legal(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> LegalityResult:
        filled = {action.position for action in provisional}
        if len(provisional) != self.code_length or filled != set(range(self.code_length)):
            return LegalityResult.illegal(
                f"Fill all {self.code_length} slots ({len(filled)} filled)"
            )

        palette = self.palette_size(session)
        colors = [action.resource.key for action in provisional]
        if any(not 0 <= color < palette for color in colors):
            return LegalityResult.illegal("Color outside the palette")
        if not self.allows_repeats(session) and len(set(colors)) != len(colors):
            return LegalityResult.illegal("Colors may not repeat in this game")
        return LegalityResult.ok()

    def to_commit_payload(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> CommitPayload:
        code = self.code_of(provisional)
        if self.in_setup(session):
            return CommitPayload(action="secret", body={"code": code})
        return CommitPayload(action="guess", body={"guess": code})

    def next_position(
        self,
        session: GameSession,
        provisional: ProvisionalMove,
    ) -> int | None:
        """First empty slot, or None when the code is full."""
        filled = set(provisional.positions)
        for slot in range(self.code_length):
            if slot not in filled:
                return slot
        return None

    # =========================================================================
    # Presentation helpers
    # =========================================================================

    def code_of(self, provisional: ProvisionalMove) -> list[int | None]:
        """Colors in slot order; None for empty slots."""
        code: list[int | None] = [None] * self.code_length
        for action in provisional:
            code[action.position] = action.value
        return code

    def guesses_left(self, session: GameSession) -> int:
        used = len(session.public_view.get("my_guesses", []))
        return max(0, session.config.get("max_guesses", DEFAULT_MAX_GUESSES) - used)

    # =========================================================================
    # Internals
    # =========================================================================

    def _slot(self, position: Hashable) -> int:
        try:
            slot = int(position)
        except (TypeError, ValueError):
            raise OutOfBoundsError(f"Not a code slot: {position!r}", position=position)
        if not 0 <= slot < self.code_length:
            raise OutOfBoundsError(f"Slot {slot} is outside the code", position=slot)
        return slot

