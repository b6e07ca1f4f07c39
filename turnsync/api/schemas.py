"""
Pydantic Schemas for the authority API.

These models define the contract between this client and the remote move
authority. Every game variant answers GET /{route}/games/{id} with its own
state body; action endpoints answer with either a full state body or a
small result body (shot result, revealed pair).

Error bodies are always {"error": "<reason>"}.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Shared Models
# =============================================================================

class GameInfo(BaseModel):
    """Game header common to every variant."""
    id: int
    player1_id: int
    player2_id: int
    current_turn: Optional[int] = None
    status: str
    winner_id: Optional[int] = None

    # Variant-specific settings and scores ride along as extra fields
    model_config = {"extra": "allow"}

    def extra(self, name: str, default: Any = None) -> Any:
        """Read a variant-specific header field."""
        return (self.model_extra or {}).get(name, default)


class ErrorBody(BaseModel):
    """Authority error response."""
    error: str = ""


class PreviewResponse(BaseModel):
    """Preview of a provisional move (word game only)."""
    valid: bool
    score: int = 0
    words: list[str] = Field(default_factory=list)
    error: Optional[str] = None


# =============================================================================
# Placement grid (word game)
# =============================================================================

class BoardTile(BaseModel):
    """A tile on the board or in the rack. Blank tiles have letter ' ' in the rack."""
    letter: str = ""
    value: int = 0
    row: Optional[int] = None
    col: Optional[int] = None
    is_new: bool = False


class MoveRecord(BaseModel):
    """Most recent move (word game)."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    move_type: str = ""
    tiles_played: Optional[str] = None
    words_formed: Optional[str] = None
    score: int = 0


class PlacementStateResponse(BaseModel):
    """State body for the word game."""
    game: GameInfo
    rack: list[BoardTile] = Field(default_factory=list)
    is_your_turn: bool = False
    tiles_remaining: int = 0
    last_move: Optional[MoveRecord] = None


class TilePoolResponse(BaseModel):
    """Unseen tile counts; '?' stands for blanks."""
    tiles: dict[str, int] = Field(default_factory=dict)
    total: int = 0


class HistoryEntry(BaseModel):
    move_number: int
    player_name: str = ""
    move_type: str
    words_formed: list[str] = Field(default_factory=list)
    score: int = 0
    created_at: str = ""


class HistoryResponse(BaseModel):
    history: list[HistoryEntry] = Field(default_factory=list)


# =============================================================================
# Targeting grid (shot game)
# =============================================================================

class ShipPlacement(BaseModel):
    """A fleet segment as the authority stores it."""
    type: str
    start_row: int
    start_col: int
    horizontal: bool
    size: int
    hits: int = 0


class TargetingStateResponse(BaseModel):
    """State body for the shot game."""
    game: GameInfo
    my_board: list[list[str]] = Field(default_factory=list)
    enemy_board: list[list[str]] = Field(default_factory=list)
    my_ships: list[ShipPlacement] = Field(default_factory=list)
    is_your_turn: bool = False
    ships_ready: bool = False
    phase: str = "setup"
    enemy_ships_remaining: int = 0


class FireShotResponse(BaseModel):
    hit: bool
    sunk: bool = False
    ship_type: Optional[str] = None
    game_over: bool = False
    winner: Optional[str] = None


# =============================================================================
# Code breaking
# =============================================================================

class GuessRecord(BaseModel):
    id: Optional[int] = None
    user_id: Optional[int] = None
    guess: list[int] = Field(default_factory=list)
    correct: int = 0
    misplaced: int = 0
    guess_number: int = 0


class CodeBreakingStateResponse(BaseModel):
    """State body for the code game."""
    game: GameInfo
    my_secret: Optional[list[int]] = None
    opponent_secret: Optional[list[int]] = None
    my_guesses: list[GuessRecord] = Field(default_factory=list)
    their_guesses: list[GuessRecord] = Field(default_factory=list)
    secret_set: bool = False
    is_your_turn: bool = False
    phase: str = "setup"
    round: int = 0


# =============================================================================
# Tile matching (pairs game)
# =============================================================================

class RevealRecord(BaseModel):
    id: int
    user_id: int
    row1: int
    col1: int
    row2: int
    col2: int
    tile1: int
    tile2: int
    matched: bool = False


class TileMatchingStateResponse(BaseModel):
    """State body for the pairs game. Hidden cells are -1 on the board."""
    game: GameInfo
    board: list[list[int]] = Field(default_factory=list)
    full_board: Optional[list[list[int]]] = None
    is_your_turn: bool = False
    moves: list[RevealRecord] = Field(default_factory=list)
    total_pairs: int = 0
    matched_count: int = 0


class RevealPairResponse(BaseModel):
    tile1: int
    tile2: int
    matched: bool
    extra_turn: bool = False
    game_over: bool = False
