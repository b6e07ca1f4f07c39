"""
Move Authority Client - Request/response gateway to the remote authority.

Endpoints (per variant route: scrabble, battleship, mastermind, memory):
    GET    /{route}/games/{id}              Authoritative state
    POST   /{route}/games/{id}/preview      Preview a move (word game)
    POST   /{route}/games/{id}/{action}     Commit a move or auxiliary action
    GET    /{route}/games/{id}/bag          Unseen tiles (word game)
    GET    /{route}/games/{id}/history      Move log (word game)

Auth flow:
    1. Every request carries the provider's bearer token
    2. A 401 triggers provider.refresh() and ONE retry
    3. A second 401 surfaces as AuthenticationError

Error mapping:
    transport failure, 5xx  -> NetworkError
    404                     -> NotFoundError
    401 (after retry), 403  -> AuthenticationError
    "not your turn"         -> NotYourTurnError
    other 4xx               -> InvalidMoveError (reason from the body)

The client never retries on its own beyond the single auth retry.
"""

from __future__ import annotations
from typing import Any
import asyncio
import logging

import aiohttp
from pydantic import ValidationError

from ..engine_core.action import CommitPayload
from ..errors import (
    AuthenticationError,
    InvalidMoveError,
    NetworkError,
    NotFoundError,
    NotYourTurnError,
)
from .credentials import CredentialProvider, StaticCredentialProvider
from .schemas import (
    ErrorBody,
    FireShotResponse,
    HistoryResponse,
    PreviewResponse,
    RevealPairResponse,
    TilePoolResponse,
)

logger = logging.getLogger(__name__)

NOT_YOUR_TURN_REASON = "not your turn"


class MoveAuthorityClient:
    """
    Thin async gateway to the authority.

    Usage:
        async with MoveAuthorityClient("http://localhost:8080/api", creds) as client:
            state = await client.get_state("scrabble", "42")
            preview = await client.preview_move("scrabble", "42", payload)
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider | None = None,
        timeout: float = 10.0,
        http: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials or StaticCredentialProvider()
        self.timeout = timeout
        self._http = http
        self._owns_http = http is None
        self._closed = False

    async def __aenter__(self) -> MoveAuthorityClient:
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        """Close the underlying HTTP session if this client created it."""
        self._closed = True
        if self._http is not None and self._owns_http and not self._http.closed:
            await self._http.close()
        self._http = None

    def _session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise NetworkError("Client is closed")
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_http = True
        return self._http

    # =========================================================================
    # Transport
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises a TurnSyncError subclass on any failure.
        """
        url = f"{self.base_url}{path}"
        status, data = await self._send(method, url, body)

        if status == 401:
            http = self._session()
            if await self.credentials.refresh(http):
                logger.debug("Retrying %s %s after token refresh", method, path)
                status, data = await self._send(method, url, body)

        if 200 <= status < 300:
            return data

        self._raise_for_status(status, data, path)

    async def _send(
        self,
        method: str,
        url: str,
        body: dict[str, Any] | None,
    ) -> tuple[int, Any]:
        headers = {"Content-Type": "application/json"}
        token = await self.credentials.access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with self._session().request(
                method, url, json=body, headers=headers,
            ) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
                return resp.status, data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise NetworkError(f"Request failed: {e}", context={"url": url}) from e

    def _raise_for_status(self, status: int, data: Any, path: str):
        reason = ""
        if isinstance(data, dict):
            try:
                reason = ErrorBody.model_validate(data).error
            except ValidationError:
                reason = ""
        context = {"path": path}

        if status == 404:
            raise NotFoundError(reason or "Game not found", status=status, context=context)
        if status in (401, 403):
            raise AuthenticationError(reason or "Unauthorized", status=status, context=context)
        if reason.lower() == NOT_YOUR_TURN_REASON:
            raise NotYourTurnError(reason, context={**context, "status": status})
        if 400 <= status < 500:
            raise InvalidMoveError(
                reason or f"Request rejected ({status})",
                reason=reason or None,
                status=status,
                context=context,
            )
        raise NetworkError(reason or f"Authority error ({status})", status=status, context=context)

    def _game_path(self, route: str, game_id: str, action: str | None = None) -> str:
        path = f"/{route}/games/{game_id}"
        if action:
            path = f"{path}/{action}"
        return path

    def _parse(self, model, data: Any, path: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise NetworkError(
                f"Malformed response from authority: {e.error_count()} error(s)",
                context={"path": path},
            ) from e

    # =========================================================================
    # Core contract
    # =========================================================================

    async def get_state(self, route: str, game_id: str) -> dict[str, Any]:
        """Load the authoritative state body for a game."""
        path = self._game_path(route, game_id)
        data = await self.request("GET", path)
        if not isinstance(data, dict):
            raise NetworkError("Malformed state response", context={"path": path})
        return data

    async def preview_move(
        self,
        route: str,
        game_id: str,
        payload: CommitPayload,
    ) -> PreviewResponse:
        """Ask the authority to evaluate a move without applying it."""
        path = self._game_path(route, game_id, "preview")
        data = await self.request("POST", path, payload.body)
        return self._parse(PreviewResponse, data, path)

    async def commit_move(
        self,
        route: str,
        game_id: str,
        payload: CommitPayload,
    ) -> dict[str, Any]:
        """Apply a move. Returns the authority's response body."""
        path = self._game_path(route, game_id, payload.action)
        logger.info("Committing %s to %s", payload.action, path)
        data = await self.request("POST", path, payload.body)
        return data if isinstance(data, dict) else {}

    # =========================================================================
    # Auxiliary actions
    # =========================================================================

    async def pass_turn(self, route: str, game_id: str) -> dict[str, Any]:
        return await self.commit_move(route, game_id, CommitPayload(action="pass"))

    async def exchange_resources(
        self,
        route: str,
        game_id: str,
        letters: list[str],
    ) -> dict[str, Any]:
        return await self.commit_move(
            route, game_id, CommitPayload(action="exchange", body={"tiles": letters}),
        )

    async def resign(self, route: str, game_id: str) -> dict[str, Any]:
        return await self.commit_move(route, game_id, CommitPayload(action="resign"))

    async def submit_setup(
        self,
        route: str,
        game_id: str,
        ships: list[dict[str, Any]],
    ) -> dict[str, Any]:
        return await self.commit_move(
            route, game_id, CommitPayload(action="ships", body={"ships": ships}),
        )

    async def fire_at(
        self,
        route: str,
        game_id: str,
        cell: tuple[int, int],
    ) -> FireShotResponse:
        path = self._game_path(route, game_id, "fire")
        row, col = cell
        data = await self.request("POST", path, {"row": row, "col": col})
        return self._parse(FireShotResponse, data, path)

    async def set_secret(self, route: str, game_id: str, code: list[int]) -> dict[str, Any]:
        return await self.commit_move(
            route, game_id, CommitPayload(action="secret", body={"code": list(code)}),
        )

    async def make_guess(self, route: str, game_id: str, code: list[int]) -> dict[str, Any]:
        return await self.commit_move(
            route, game_id, CommitPayload(action="guess", body={"guess": list(code)}),
        )

    async def reveal_pair(
        self,
        route: str,
        game_id: str,
        cell_a: tuple[int, int],
        cell_b: tuple[int, int],
    ) -> RevealPairResponse:
        path = self._game_path(route, game_id, "reveal")
        body = {"row1": cell_a[0], "col1": cell_a[1], "row2": cell_b[0], "col2": cell_b[1]}
        data = await self.request("POST", path, body)
        return self._parse(RevealPairResponse, data, path)

    # =========================================================================
    # Read-only helpers (word game)
    # =========================================================================

    async def resource_pool(self, route: str, game_id: str) -> TilePoolResponse:
        path = self._game_path(route, game_id, "bag")
        data = await self.request("GET", path)
        return self._parse(TilePoolResponse, data, path)

    async def history(self, route: str, game_id: str) -> HistoryResponse:
        path = self._game_path(route, game_id, "history")
        data = await self.request("GET", path)
        return self._parse(HistoryResponse, data, path)
