"""
Engine Core - Game snapshots and move composition.

The core is the variant-agnostic part of the client:
1. GameSession: immutable snapshot of the authority's state
2. ProvisionalMove: the player's uncommitted move
3. ProvisionalMoveBuilder: edits the move through a game adapter
4. LocalValidator: turn gate plus the adapter's legality check
"""

from .state import GameSession, Outcome, Phase, Seat, Variant
from .action import (
    CommitPayload,
    LegalityResult,
    PendingAction,
    PreviewResult,
    ProvisionalMove,
    ResourceRef,
    Slot,
)
from .builder import ProvisionalMoveBuilder
from .validator import LocalValidator

__all__ = [
    "GameSession",
    "Outcome",
    "Phase",
    "Seat",
    "Variant",
    "CommitPayload",
    "LegalityResult",
    "PendingAction",
    "PreviewResult",
    "ProvisionalMove",
    "ResourceRef",
    "Slot",
    "ProvisionalMoveBuilder",
    "LocalValidator",
]
