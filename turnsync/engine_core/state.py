"""
Game Session - Client-held snapshot of one authoritative game.

Design principles:
- Immutable: the SessionStore replaces the whole snapshot on every refresh
- Variant-agnostic: board/rack/code payloads live in the view dicts and are
  interpreted by the variant's GameAdapter
- Seat-relative: turn ownership is expressed in seats, never in user ids
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Phase(Enum):
    """High-level game phases, as reported by the authority."""
    SETUP = "setup"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def from_status(cls, status: str | None) -> Phase:
        """Map an authority status string; anything past play is completed."""
        if status == "setup":
            return cls.SETUP
        if status == "active":
            return cls.ACTIVE
        return cls.COMPLETED


class Variant(Enum):
    """Supported game variants."""
    PLACEMENT_GRID = "placement_grid"  # word placement
    TARGETING_GRID = "targeting_grid"  # fleet setup + shots
    CODE_BREAKING = "code_breaking"  # secret code + guesses
    TILE_MATCHING = "tile_matching"  # pairs


class Seat(Enum):
    """One of the two seats of a game."""
    PLAYER1 = 1
    PLAYER2 = 2

    @property
    def opponent(self) -> Seat:
        return Seat.PLAYER2 if self is Seat.PLAYER1 else Seat.PLAYER1


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a completed game."""
    winner: Seat | None = None

    @property
    def is_draw(self) -> bool:
        return self.winner is None


@dataclass(frozen=True)
class GameSession:
    """
    Authoritative snapshot of a game, as last loaded.

    Owned exclusively by the SessionStore. Never mutated field-by-field:
    a refresh swaps in a new instance.
    """
    game_id: str
    variant: Variant
    phase: Phase
    local_seat: Seat

    # None once the game is completed
    turn_owner: Seat | None = None

    # Setup sub-phase: has the local seat submitted its setup?
    ready: bool = False

    # Board as both players see it (committed tiles, shots, matched pairs...)
    public_view: dict[str, Any] = field(default_factory=dict)
    # What only the local seat sees (rack, own fleet, own secret...)
    private_view: dict[str, Any] = field(default_factory=dict)

    # Variant settings (board size, palette size, repeats flag...)
    config: dict[str, Any] = field(default_factory=dict)

    scores: dict[Seat, int] = field(default_factory=dict)
    last_move: dict[str, Any] | None = None
    outcome: Outcome | None = None

    # Untouched authority payload, for debugging and the CLI
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_my_turn(self) -> bool:
        return self.turn_owner is not None and self.turn_owner == self.local_seat

    @property
    def is_completed(self) -> bool:
        return self.phase == Phase.COMPLETED

    @property
    def my_score(self) -> int:
        return self.scores.get(self.local_seat, 0)

    @property
    def their_score(self) -> int:
        return self.scores.get(self.local_seat.opponent, 0)

    def is_winner(self) -> bool:
        """True if the game is over and the local seat won."""
        return self.outcome is not None and self.outcome.winner == self.local_seat
