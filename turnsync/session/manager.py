"""
Engine Manager - Opens and tracks game engines.

One engine per (route, game id). Engines share the HTTP client and its
credentials, nothing else: each keeps its own snapshot, move, timers and
submission lock.

No persistence. Closing the manager closes every engine and the client.
"""

from __future__ import annotations
import logging

from ..api.client import MoveAuthorityClient
from ..config import EngineConfig
from ..engine_core.state import Variant
from ..games import get_adapter
from .engine import GameEngine

logger = logging.getLogger(__name__)

EngineKey = tuple[str, str]


class EngineManager:
    """
    Manages open game engines.

    Usage:
        async with EngineManager(EngineConfig.from_env()) as manager:
            engine = await manager.open("scrabble", "42")
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        client: MoveAuthorityClient | None = None,
    ):
        self.config = config or EngineConfig()
        self._owns_client = client is None
        self.client = client or MoveAuthorityClient(
            self.config.api_base,
            credentials=self.config.credentials(),
            timeout=self.config.request_timeout,
        )
        self._engines: dict[EngineKey, GameEngine] = {}

    async def __aenter__(self) -> EngineManager:
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def open(self, variant: Variant | str, game_id: str) -> GameEngine:
        """
        Get the engine for a game, loading it on first use.

        Raises:
            KeyError: Unknown variant
            NotFoundError: Unknown game id
            NetworkError: Authority unreachable
        """
        adapter = get_adapter(variant)
        key = (adapter.route, str(game_id))
        engine = self._engines.get(key)
        if engine is not None:
            return engine

        engine = GameEngine(self.client, variant, game_id, config=self.config, adapter=adapter)
        try:
            await engine.open()
        except BaseException:
            await engine.close()
            raise
        self._engines[key] = engine
        return engine

    def get(self, variant: Variant | str, game_id: str) -> GameEngine | None:
        """Get an open engine without loading anything."""
        return self._engines.get((get_adapter(variant).route, str(game_id)))

    async def close_engine(self, variant: Variant | str, game_id: str):
        engine = self._engines.pop((get_adapter(variant).route, str(game_id)), None)
        if engine is not None:
            await engine.close()

    def list_open(self) -> list[EngineKey]:
        """(route, game id) of every open engine."""
        return list(self._engines)

    async def close(self):
        """Close every engine, then the client if this manager created it."""
        engines, self._engines = list(self._engines.values()), {}
        for engine in engines:
            await engine.close()
        if self._owns_client:
            await self.client.close()
        logger.debug("Closed %d engine(s)", len(engines))
