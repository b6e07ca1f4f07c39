"""
Pytest fixtures for TurnSync tests.

FakeAuthority stands in for MoveAuthorityClient: it serves canned state
bodies, records every call and can be told to fail or to hold a request
until released.
"""

import asyncio
from typing import Any

import pytest

from ..api.schemas import FireShotResponse, PreviewResponse, RevealPairResponse
from ..config import EngineConfig
from ..engine_core.action import CommitPayload
from ..games import get_adapter
from ..session.engine import GameEngine

LOCAL_PLAYER = 1
OPPONENT = 2


# =============================================================================
# Payload factories
# =============================================================================


def game_header(status: str = "active", my_turn: bool = True, winner_id=None, **extra) -> dict[str, Any]:
    return {
        "id": 42,
        "player1_id": LOCAL_PLAYER,
        "player2_id": OPPONENT,
        "current_turn": LOCAL_PLAYER if my_turn else OPPONENT,
        "status": status,
        "winner_id": winner_id,
        **extra,
    }


def empty_board(size: int = 15) -> list[list[dict[str, Any]]]:
    return [[{"letter": "", "value": 0} for _ in range(size)] for _ in range(size)]


def placement_state(
    rack: str = "HELLOXZ",
    my_turn: bool = True,
    status: str = "active",
    committed: dict[tuple[int, int], str] | None = None,
    last_move: dict[str, Any] | None = None,
) -> dict[str, Any]:
    board = empty_board()
    for (row, col), letter in (committed or {}).items():
        board[row][col] = {"letter": letter, "value": 1}
    return {
        "game": game_header(status, my_turn, board=board, player1_score=10, player2_score=7),
        "rack": [{"letter": letter, "value": 0 if letter == " " else 1} for letter in rack],
        "is_your_turn": my_turn,
        "tiles_remaining": 80,
        "last_move": last_move,
    }


def targeting_state(
    phase: str = "setup",
    ships_ready: bool = False,
    my_turn: bool | None = None,
    enemy_board: list[list[str]] | None = None,
) -> dict[str, Any]:
    if my_turn is None:
        my_turn = not ships_ready if phase == "setup" else True
    return {
        "game": game_header(phase, my_turn),
        "my_board": [["empty"] * 10 for _ in range(10)],
        "enemy_board": enemy_board or [["unknown"] * 10 for _ in range(10)],
        "my_ships": [],
        "is_your_turn": my_turn,
        "ships_ready": ships_ready,
        "phase": phase,
        "enemy_ships_remaining": 5,
    }


def codebreaking_state(
    phase: str = "active",
    secret_set: bool = True,
    my_turn: bool = True,
    num_colors: int = 6,
    allow_repeats: bool = False,
) -> dict[str, Any]:
    return {
        "game": game_header(
            phase, my_turn, num_colors=num_colors, allow_repeats=allow_repeats, max_guesses=10,
        ),
        "my_guesses": [],
        "their_guesses": [],
        "secret_set": secret_set,
        "is_your_turn": my_turn,
        "phase": phase,
        "round": 0,
    }


def tilematching_state(
    my_turn: bool = True,
    status: str = "active",
    matched: dict[tuple[int, int], int] | None = None,
    moves: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    full = [[(r * 5 + c) // 2 for c in range(5)] for r in range(4)]
    board = [[-1] * 5 for _ in range(4)]
    for (row, col), tile in (matched or {}).items():
        board[row][col] = tile
    return {
        "game": game_header(status, my_turn, board_size="4x5", player1_score=0, player2_score=0),
        "board": board,
        "full_board": full if my_turn else None,
        "is_your_turn": my_turn,
        "moves": moves or [],
        "total_pairs": 10,
        "matched_count": len(matched or {}) // 2,
    }


def reveal_record(move_id: int, user_id: int, matched: bool = False) -> dict[str, Any]:
    return {
        "id": move_id,
        "user_id": user_id,
        "row1": 0, "col1": 0, "row2": 3, "col2": 4,
        "tile1": 0, "tile2": 9,
        "matched": matched,
    }


# =============================================================================
# Fake authority
# =============================================================================


class FixedStore:
    """Minimal stand-in for SessionStore when only .session is needed."""

    def __init__(self, session=None, game_id: str = "42"):
        self.session = session
        self.game_id = game_id


class FakeAuthority:
    """
    Records calls and answers from canned bodies.

    states: state bodies served by get_state, in order; the last one
        keeps being served.
    errors: method name -> exception raised on the next call.
    hold: method name -> asyncio.Event the call waits on.
    """

    def __init__(self, *states: dict[str, Any]):
        self.states = list(states)
        self.calls: list[tuple[str, Any]] = []
        self.errors: dict[str, Exception] = {}
        self.hold: dict[str, asyncio.Event] = {}
        self.preview_response = PreviewResponse(valid=True, score=12, words=["HELLO"])
        self.reveal_response = RevealPairResponse(tile1=0, tile2=0, matched=True, extra_turn=True)
        self.fire_response = FireShotResponse(hit=False)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def _enter(self, method: str, arg: Any = None):
        self.calls.append((method, arg))
        event = self.hold.get(method)
        if event is not None:
            await event.wait()
        error = self.errors.pop(method, None)
        if error is not None:
            raise error

    async def get_state(self, route: str, game_id: str) -> dict[str, Any]:
        await self._enter("get_state")
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    async def preview_move(self, route: str, game_id: str, payload: CommitPayload):
        await self._enter("preview_move", payload)
        return self.preview_response

    async def commit_move(self, route: str, game_id: str, payload: CommitPayload):
        await self._enter("commit_move", payload)
        return {"ok": True}

    async def pass_turn(self, route: str, game_id: str):
        await self._enter("pass_turn")
        return {"ok": True}

    async def exchange_resources(self, route: str, game_id: str, letters: list[str]):
        await self._enter("exchange_resources", letters)
        return {"ok": True}

    async def resign(self, route: str, game_id: str):
        await self._enter("resign")
        return {"ok": True}

    async def fire_at(self, route: str, game_id: str, cell):
        await self._enter("fire_at", cell)
        return self.fire_response

    async def reveal_pair(self, route: str, game_id: str, cell_a, cell_b):
        await self._enter("reveal_pair", (cell_a, cell_b))
        return self.reveal_response


async def open_engine(variant: str, *states: dict[str, Any], **config) -> tuple[GameEngine, FakeAuthority]:
    """Open an engine against a FakeAuthority serving states."""
    fake = FakeAuthority(*states)
    settings = {"player_id": LOCAL_PLAYER, "preview_debounce": 0.01, "poll_interval": 0.05}
    settings.update(config)
    engine = GameEngine(fake, variant, "42", config=EngineConfig(**settings))
    await engine.open()
    return engine, fake


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def placement():
    return get_adapter("scrabble")


@pytest.fixture
def targeting():
    return get_adapter("battleship")


@pytest.fixture
def codebreaking():
    return get_adapter("mastermind")


@pytest.fixture
def tilematching():
    return get_adapter("memory")


@pytest.fixture
def word_session(placement):
    return placement.parse_session("42", placement_state(), LOCAL_PLAYER)


@pytest.fixture
def setup_session(targeting):
    return targeting.parse_session("42", targeting_state(), LOCAL_PLAYER)


@pytest.fixture
def code_session(codebreaking):
    return codebreaking.parse_session("42", codebreaking_state(), LOCAL_PLAYER)


@pytest.fixture
def pairs_session(tilematching):
    return tilematching.parse_session("42", tilematching_state(), LOCAL_PLAYER)
