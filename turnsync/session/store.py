"""
Session Store - Holds the current GameSession for one game.

refresh() is the only way the snapshot changes. Polls, visibility
events and post-commit reloads all go through it.

On success the snapshot is swapped wholesale and subscribers are called
in subscription order. The engine subscribes, in this order:
1. builder reset (provisional move is for the old snapshot)
2. preview cancel (any in-flight preview is for the old move)
3. scheduler re-evaluation (turn may have changed hands)

Concurrent refreshes are not serialized: whichever completes last wins.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Callable
import logging

from pydantic import ValidationError

from ..engine_core.state import GameSession
from ..errors import NetworkError

if TYPE_CHECKING:
    from ..api.client import MoveAuthorityClient
    from ..games.base import GameAdapter

logger = logging.getLogger(__name__)

SessionListener = Callable[[GameSession], None]


class SessionStore:
    """Owner of the authoritative snapshot for one game id."""

    def __init__(
        self,
        game_id: str,
        adapter: GameAdapter,
        client: MoveAuthorityClient,
        local_player_id: int | None = None,
    ):
        self.game_id = str(game_id)
        self.adapter = adapter
        self.client = client
        self.local_player_id = local_player_id
        self._session: GameSession | None = None
        self._listeners: list[SessionListener] = []
        self.refresh_count = 0

    @property
    def session(self) -> GameSession | None:
        return self._session

    @property
    def is_my_turn(self) -> bool:
        return self._session is not None and self._session.is_my_turn

    def subscribe(self, listener: SessionListener):
        self._listeners.append(listener)

    async def refresh(self) -> GameSession:
        """
        Load the authoritative state and replace the snapshot.

        Raises:
            NetworkError: Transport failure or malformed state body
            NotFoundError: Unknown game id
        """
        payload = await self.client.get_state(self.adapter.route, self.game_id)
        try:
            session = self.adapter.parse_session(self.game_id, payload, self.local_player_id)
        except ValidationError as e:
            raise NetworkError(
                f"Malformed {self.adapter.route} state: {e.error_count()} error(s)",
                context={"game_id": self.game_id},
            ) from e

        previous = self._session
        self._session = session
        self.refresh_count += 1

        if previous is None or previous.turn_owner != session.turn_owner or previous.phase != session.phase:
            logger.info(
                "Game %s/%s: phase=%s turn=%s (mine=%s)",
                self.adapter.route, self.game_id, session.phase.value,
                session.turn_owner.name if session.turn_owner else None, session.is_my_turn,
            )
        else:
            logger.debug("Game %s/%s refreshed", self.adapter.route, self.game_id)

        for listener in self._listeners:
            listener(session)
        return session
