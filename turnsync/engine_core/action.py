"""
Move System - Pending actions, provisional moves and their results.

A provisional move is the player's uncommitted composition:
1. Symbol-at-cell entries (word game)
2. Fleet segments or a target cell (shot game)
3. A fixed-length color code (code game)
4. A two-cell reveal pair (pairs game)

Every pending action records the local resource it consumes so the
move can be taken apart again.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Hashable
import hashlib
import json


@dataclass(frozen=True)
class ResourceRef:
    """
    A local resource a pending action consumes.

    kind names the pool ("rack", "color", "segment", "shot", "flip"),
    key identifies the item inside it (rack index, color index...).
    """
    kind: str
    key: int

    def __str__(self) -> str:
        return f"{self.kind}:{self.key}"


@dataclass(frozen=True)
class PendingAction:
    """
    One entry of a provisional move.

    position is variant-defined and hashable: (row, col) for grids,
    a slot index for codes. value carries what the action puts there
    (letter, orientation, color index).
    """
    position: Hashable
    resource: ResourceRef
    value: Any = None

    def to_key(self) -> list[Any]:
        """Canonical JSON-friendly form, used for structural hashing."""
        position = list(self.position) if isinstance(self.position, tuple) else self.position
        return [position, self.resource.kind, self.resource.key, self.value]


@dataclass(frozen=True)
class ProvisionalMove:
    """
    Ordered, immutable collection of pending actions.

    All edits return a new move. Order is preserved because it is part
    of what the player composed (and of the commit payload).
    """
    actions: tuple[PendingAction, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.actions) == 0

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self):
        return iter(self.actions)

    @property
    def positions(self) -> list[Hashable]:
        return [a.position for a in self.actions]

    @property
    def consumed(self) -> frozenset[ResourceRef]:
        """Resources held by pending actions."""
        return frozenset(a.resource for a in self.actions)

    def action_at(self, position: Hashable) -> PendingAction | None:
        """Get the pending action at a position, if any."""
        for action in self.actions:
            if action.position == position:
                return action
        return None

    def holds(self, resource: ResourceRef) -> bool:
        return any(a.resource == resource for a in self.actions)

    def with_action(self, action: PendingAction) -> ProvisionalMove:
        """Return new move with action appended."""
        return ProvisionalMove(actions=self.actions + (action,))

    def without_position(self, position: Hashable) -> ProvisionalMove:
        """Return new move with the action at position removed."""
        return ProvisionalMove(
            actions=tuple(a for a in self.actions if a.position != position)
        )

    @property
    def shape_key(self) -> str:
        """
        Structural hash of the move.

        Two moves with the same actions in the same order share a key,
        which is how previews are matched to the move they describe.
        """
        encoded = json.dumps(
            [a.to_key() for a in self.actions],
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Slot:
    """A fillable position and whether committed state already occupies it."""
    position: Hashable
    occupied: bool = False
    content: Any = None


@dataclass(frozen=True)
class LegalityResult:
    """Outcome of a cheap local legality check."""
    legal: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> LegalityResult:
        return cls(legal=True)

    @classmethod
    def illegal(cls, reason: str) -> LegalityResult:
        return cls(legal=False, reason=reason)

    def __bool__(self) -> bool:
        return self.legal


@dataclass(frozen=True)
class CommitPayload:
    """
    Request body for the authority, plus the action endpoint it goes to.

    Opaque to the engine: only the adapter that built it and the
    authority read the body.
    """
    action: str
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PreviewResult:
    """
    Authority (or local) assessment of a provisional move.

    shape_key ties the result to the exact move it was computed for;
    a result whose key differs from the current move is stale.
    """
    shape_key: str
    valid: bool
    metric: int | None = None
    detail: list[str] = field(default_factory=list)
    error_reason: str | None = None

    # False when the authority could not be reached
    known: bool = True

    @classmethod
    def unknown(cls, shape_key: str, reason: str) -> PreviewResult:
        """Degraded result after a failed preview request."""
        return cls(shape_key=shape_key, valid=False, error_reason=reason, known=False)

    def matches(self, move: ProvisionalMove) -> bool:
        return self.shape_key == move.shape_key

    def enables_commit(self, move: ProvisionalMove) -> bool:
        """Only a fresh, valid preview may enable the commit action."""
        return self.valid and self.known and self.matches(move)
