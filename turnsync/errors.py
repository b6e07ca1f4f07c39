"""
TurnSync Error Hierarchy

Every failure the engine can report inherits from TurnSyncError so callers can
catch one base class and read a machine code from it.

Local errors (OccupiedError, OutOfBoundsError, ResourceUnavailableError) are
raised before any request is made. Remote errors come from the authority
client and always leave the engine idle for edits.

Usage:
    from turnsync.errors import OccupiedError, NetworkError

    try:
        builder.toggle((7, 7))
    except OccupiedError as e:
        show_message(e.message)
"""

from __future__ import annotations
from typing import Any

__all__ = [
    "TurnSyncError",
    # Remote
    "RemoteError",
    "NetworkError",
    "NotFoundError",
    "AuthenticationError",
    "InvalidMoveError",
    # Turn / lifecycle
    "NotYourTurnError",
    "AlreadySubmittingError",
    # Local
    "LocalMoveError",
    "OccupiedError",
    "OutOfBoundsError",
    "ResourceUnavailableError",
]


class TurnSyncError(Exception):
    """Base exception for all TurnSync errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable description
        context: Extra details (game id, position, HTTP status...)
    """
    code: str = "TURNSYNC_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Remote errors
# =============================================================================


class RemoteError(TurnSyncError):
    """Base class for failures reported by (or on the way to) the authority."""
    code: str = "REMOTE_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.status = status
        if status is not None:
            self.context["status"] = status


class NetworkError(RemoteError):
    """Transport failure or server-side error.

    Retryable by the next poll or by the user. Never retried automatically
    in the middle of a commit.
    """
    code: str = "NETWORK_ERROR"


class NotFoundError(RemoteError):
    """The authority does not know this game id."""
    code: str = "NOT_FOUND"


class AuthenticationError(RemoteError):
    """Credentials were rejected even after one refresh-and-retry."""
    code: str = "UNAUTHORIZED"


class InvalidMoveError(RemoteError):
    """Move rejected, either by the authority or by the redundant local check.

    The provisional move is kept so the player can adjust it.

    Attributes:
        reason: Machine-readable reason as sent by the authority
    """
    code: str = "INVALID_MOVE"

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status=status, context=context)
        self.reason = reason or message
        self.context["reason"] = self.reason


# =============================================================================
# Turn / lifecycle errors
# =============================================================================


class NotYourTurnError(TurnSyncError):
    """An edit or commit was attempted while the opponent holds the turn.

    Usually means the UI is stale; resolved by forcing a refresh.
    """
    code: str = "NOT_YOUR_TURN"


class AlreadySubmittingError(TurnSyncError):
    """A commit is already outstanding for this session.

    Seeing this means the UI let the player click twice.
    """
    code: str = "ALREADY_SUBMITTING"


# =============================================================================
# Local move errors
# =============================================================================


class LocalMoveError(TurnSyncError):
    """Base class for errors detected without a network round trip.

    Attributes:
        position: The position the player tried to use, if any
    """
    code: str = "LOCAL_MOVE_ERROR"

    def __init__(
        self,
        message: str,
        position: Any = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.position = position
        if position is not None:
            self.context["position"] = position


class OccupiedError(LocalMoveError):
    """Position already holds committed state or another pending action."""
    code: str = "OCCUPIED"


class OutOfBoundsError(LocalMoveError):
    """Position (or palette index) lies outside the game's bounds."""
    code: str = "OUT_OF_BOUNDS"


class ResourceUnavailableError(LocalMoveError):
    """Resource is not in the private view, already consumed, or not selected."""
    code: str = "RESOURCE_UNAVAILABLE"
