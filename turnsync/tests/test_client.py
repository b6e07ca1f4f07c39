"""
Tests for MoveAuthorityClient against a local aiohttp server.

Tests:
- Bearer auth with one refresh-and-retry on 401
- Status and body mapping onto the error hierarchy
- Variant endpoints and response parsing
"""

from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as StubServer

from ..api.client import MoveAuthorityClient
from ..api.credentials import StaticCredentialProvider, TokenCredentialProvider
from ..engine_core.action import CommitPayload
from ..errors import (
    AuthenticationError,
    InvalidMoveError,
    NetworkError,
    NotFoundError,
    NotYourTurnError,
)
from .conftest import placement_state

GOOD_TOKEN = "fresh-token"
REFRESH_TOKEN = "refresh-1"


class AuthorityStub:
    """Tiny authority: one word game (42), one pairs game, canned failures."""

    def __init__(self):
        self.requests: list[tuple[str, str, object]] = []
        self.refreshes = 0

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/refresh", self.refresh)
        app.router.add_get("/api/scrabble/games/{game_id}", self.state)
        app.router.add_post("/api/scrabble/games/{game_id}/{action}", self.action)
        app.router.add_post("/api/memory/games/{game_id}/reveal", self.reveal)
        app.router.add_post("/api/battleship/games/{game_id}/fire", self.fire)
        app.router.add_post("/api/battleship/games/{game_id}/{action}", self.echo)
        app.router.add_post("/api/mastermind/games/{game_id}/{action}", self.echo)
        app.router.add_get("/api/scrabble/games/{game_id}/bag", self.bag)
        app.router.add_get("/api/scrabble/games/{game_id}/history", self.history)
        return app

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {GOOD_TOKEN}"

    async def _record(self, request: web.Request):
        body = await request.json() if request.can_read_body else None
        self.requests.append((request.method, request.path, body))
        return body

    async def refresh(self, request: web.Request) -> web.Response:
        self.refreshes += 1
        body = await request.json()
        if body.get("refresh_token") != REFRESH_TOKEN:
            return web.json_response({"error": "invalid refresh token"}, status=401)
        return web.json_response({"access_token": GOOD_TOKEN})

    async def state(self, request: web.Request) -> web.Response:
        await self._record(request)
        game_id = request.match_info["game_id"]
        if not self._authorized(request):
            return web.json_response({"error": "token expired"}, status=401)
        if game_id == "404":
            return web.json_response({"error": "Game not found"}, status=404)
        if game_id == "500":
            return web.Response(status=500, text="upstream exploded")
        if game_id == "list":
            return web.json_response([1, 2, 3])
        return web.json_response(placement_state())

    async def action(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if not self._authorized(request):
            return web.json_response({"error": "token expired"}, status=401)
        game_id = request.match_info["game_id"]
        action = request.match_info["action"]
        if game_id == "7":
            return web.json_response({"error": "Not your turn"}, status=400)
        if action == "preview":
            if not body.get("tiles"):
                return web.json_response({"valid": False, "error": "No tiles placed"})
            return web.json_response({"valid": True, "score": 9, "words": ["HI"]})
        if action == "play" and not body.get("tiles"):
            return web.json_response({"error": "No tiles placed"}, status=400)
        return web.json_response({"ok": True, "action": action})

    async def reveal(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        return web.json_response({"tile1": 3, "tile2": 3, "matched": body["row1"] == 0})

    async def fire(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if request.match_info["game_id"] == "bad":
            return web.json_response({"sunk": True})
        hit = (body["row"], body["col"]) == (0, 0)
        return web.json_response({"hit": hit, "sunk": hit, "ship_type": "destroyer" if hit else None})

    async def echo(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        return web.json_response({"ok": True, "received": body})

    async def bag(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"tiles": {"A": 9, "Q": 1}, "total": 10})

    async def history(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"history": [
            {"move_number": 1, "player_name": "ana", "move_type": "play", "words_formed": ["HELLO"], "score": 16},
            {"move_number": 2, "player_name": "ben", "move_type": "pass"},
        ]})


@asynccontextmanager
async def authority(token: str = GOOD_TOKEN, refresh_token: str | None = None):
    stub = AuthorityStub()
    server = StubServer(stub.app())
    await server.start_server()
    base = str(server.make_url("/api"))
    if refresh_token is not None:
        credentials = TokenCredentialProvider(f"{base}/refresh", token, refresh_token)
    else:
        credentials = StaticCredentialProvider(token)
    client = MoveAuthorityClient(base, credentials, timeout=5.0)
    try:
        yield stub, client
    finally:
        await client.close()
        await server.close()


def play(*tiles) -> CommitPayload:
    return CommitPayload(
        action="play",
        body={"tiles": [{"letter": letter, "row": 7, "col": 7 + i} for i, letter in enumerate(tiles)]},
    )


class TestAuth:
    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        async with authority() as (stub, client):
            state = await client.get_state("scrabble", "42")

        assert state["game"]["id"] == 42
        assert stub.refreshes == 0

    @pytest.mark.asyncio
    async def test_401_refreshes_and_retries_once(self):
        async with authority("stale", REFRESH_TOKEN) as (stub, client):
            state = await client.get_state("scrabble", "42")

            assert state["is_your_turn"] is True
            assert stub.refreshes == 1
            assert len(stub.requests) == 2
            assert await client.credentials.access_token() == GOOD_TOKEN

    @pytest.mark.asyncio
    async def test_failed_refresh_is_auth_error(self):
        async with authority("stale", "wrong-refresh-token") as (stub, client):
            with pytest.raises(AuthenticationError) as exc:
                await client.get_state("scrabble", "42")

            assert exc.value.status == 401
            assert stub.refreshes == 1
            assert len(stub.requests) == 1
            assert not client.credentials.has_refresh_token

    @pytest.mark.asyncio
    async def test_static_token_not_retried(self):
        async with authority("nope") as (stub, client):
            with pytest.raises(AuthenticationError):
                await client.get_state("scrabble", "42")

            assert len(stub.requests) == 1


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_not_found(self):
        async with authority() as (_, client):
            with pytest.raises(NotFoundError) as exc:
                await client.get_state("scrabble", "404")

        assert exc.value.message == "Game not found"
        assert exc.value.status == 404

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self):
        async with authority() as (_, client):
            with pytest.raises(NetworkError) as exc:
                await client.get_state("scrabble", "500")

        assert exc.value.status == 500

    @pytest.mark.asyncio
    async def test_unreachable_authority(self):
        client = MoveAuthorityClient("http://127.0.0.1:1/api", timeout=2.0)
        try:
            with pytest.raises(NetworkError):
                await client.get_state("scrabble", "42")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_not_your_turn(self):
        async with authority() as (_, client):
            with pytest.raises(NotYourTurnError):
                await client.commit_move("scrabble", "7", play("H", "I"))

    @pytest.mark.asyncio
    async def test_rejected_move_carries_reason(self):
        async with authority() as (_, client):
            with pytest.raises(InvalidMoveError) as exc:
                await client.commit_move("scrabble", "42", play())

        assert exc.value.reason == "No tiles placed"
        assert exc.value.status == 400

    @pytest.mark.asyncio
    async def test_state_must_be_an_object(self):
        async with authority() as (_, client):
            with pytest.raises(NetworkError):
                await client.get_state("scrabble", "list")


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_preview(self):
        async with authority() as (stub, client):
            result = await client.preview_move("scrabble", "42", play("H", "I"))

        assert result.valid
        assert result.score == 9
        assert result.words == ["HI"]
        method, path, body = stub.requests[-1]
        assert (method, path) == ("POST", "/api/scrabble/games/42/preview")
        assert body["tiles"][1] == {"letter": "I", "row": 7, "col": 8}

    @pytest.mark.asyncio
    async def test_auxiliary_actions_use_action_paths(self):
        async with authority() as (stub, client):
            await client.pass_turn("scrabble", "42")
            await client.exchange_resources("scrabble", "42", ["Q", "Z"])
            await client.resign("scrabble", "42")

        paths = [path for _, path, _ in stub.requests]
        assert paths == [
            "/api/scrabble/games/42/pass",
            "/api/scrabble/games/42/exchange",
            "/api/scrabble/games/42/resign",
        ]
        assert stub.requests[1][2] == {"tiles": ["Q", "Z"]}

    @pytest.mark.asyncio
    async def test_reveal_pair(self):
        async with authority() as (stub, client):
            result = await client.reveal_pair("memory", "42", (0, 1), (2, 3))

        assert result.matched
        assert result.tile1 == result.tile2 == 3
        assert not result.extra_turn
        assert stub.requests[-1][2] == {"row1": 0, "col1": 1, "row2": 2, "col2": 3}

    @pytest.mark.asyncio
    async def test_fleet_and_shots(self):
        ships = [{"type": "destroyer", "start_row": 0, "start_col": 0, "horizontal": True, "size": 2}]
        async with authority() as (stub, client):
            await client.submit_setup("battleship", "42", ships)
            hit = await client.fire_at("battleship", "42", (0, 0))
            miss = await client.fire_at("battleship", "42", (5, 6))

        assert hit.hit and hit.sunk and hit.ship_type == "destroyer"
        assert not miss.hit and miss.ship_type is None
        assert [path for _, path, _ in stub.requests] == [
            "/api/battleship/games/42/ships",
            "/api/battleship/games/42/fire",
            "/api/battleship/games/42/fire",
        ]
        assert stub.requests[0][2] == {"ships": ships}
        assert stub.requests[2][2] == {"row": 5, "col": 6}

    @pytest.mark.asyncio
    async def test_malformed_shot_response(self):
        async with authority() as (_, client):
            with pytest.raises(NetworkError):
                await client.fire_at("battleship", "bad", (1, 1))

    @pytest.mark.asyncio
    async def test_secret_and_guess(self):
        async with authority() as (stub, client):
            await client.set_secret("mastermind", "42", (5, 4, 3, 2))
            result = await client.make_guess("mastermind", "42", [0, 1, 2, 3])

        assert result["ok"]
        assert stub.requests == [
            ("POST", "/api/mastermind/games/42/secret", {"code": [5, 4, 3, 2]}),
            ("POST", "/api/mastermind/games/42/guess", {"guess": [0, 1, 2, 3]}),
        ]

    @pytest.mark.asyncio
    async def test_tile_pool_and_history(self):
        async with authority() as (stub, client):
            pool = await client.resource_pool("scrabble", "42")
            history = await client.history("scrabble", "42")

        assert pool.tiles == {"A": 9, "Q": 1}
        assert pool.total == 10
        assert [entry.move_type for entry in history.history] == ["play", "pass"]
        assert history.history[0].words_formed == ["HELLO"]
        assert history.history[1].score == 0
        assert [(method, path) for method, path, _ in stub.requests] == [
            ("GET", "/api/scrabble/games/42/bag"),
            ("GET", "/api/scrabble/games/42/history"),
        ]


class TestClose:
    @pytest.mark.asyncio
    async def test_no_session_after_close(self):
        async with authority() as (stub, client):
            await client.get_state("scrabble", "42")
            await client.close()

            with pytest.raises(NetworkError):
                await client.get_state("scrabble", "42")

            assert len(stub.requests) == 1
            assert client._http is None
