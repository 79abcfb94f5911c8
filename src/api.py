import logging

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core
from board import is_power_of_two
from settings import load_settings

logger = logging.getLogger(__name__)

settings = load_settings()

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Tilt Engine API",
    description="A stateless API over the 2048 rules engine. "\
                "The client keeps the game state (board, score, max_score, max_tile) "\
                "and decides where new tiles appear.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

def _check_max_tile(value: Optional[int]) -> Optional[int]:
    if value is not None and not is_power_of_two(value):
        raise ValueError("max_tile must be a power of two, or no tile could ever reach it")
    return value


class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: Optional[int] = Field(
        default=settings.board_size,
        gt=1, # Board size must be at least 2x2
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    max_tile: Optional[int] = Field(
        default=settings.max_piece,
        gt=0,
        description="The tile value that ends the game as a win (e.g., 2048)."
    )

    max_tile_is_reachable = field_validator("max_tile")(_check_max_tile)

class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    board: List[List[int]] = Field(..., description="The N x N board as rows, top row first, 0 for empty.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    max_score: int = Field(..., ge=0, description="Best score recorded at the end of a game.")
    game_over: bool = Field(..., description="True if the max tile is on the board or no move is left.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    max_tile: int = Field(..., gt=0, description="The tile value that ends this game instance.")
    board_size: int = Field(..., gt=0, description="The dimension N of the N x N board.")


class GameRequestData(BaseModel):
    """Client-held state sent with every request."""
    board: List[List[int]] = Field(..., description="Current N x N board, rows top first, 0 for empty.")
    score: int = Field(..., ge=0, description="Current score.")
    max_score: int = Field(default=0, ge=0, description="Best score recorded so far.")
    max_tile: int = Field(default=settings.max_piece, gt=0, description="The max tile for this game instance.")
    # board_size is implicitly derived from the board structure.

    max_tile_is_reachable = field_validator("max_tile")(_check_max_tile)


class AddTileRequestData(GameRequestData):
    """Data required to place a tile on an empty cell."""
    column: int = Field(..., ge=0, description="Column of the new tile, 0 is the left edge.")
    row: int = Field(..., ge=0, description="Row of the new tile, 0 is the bottom edge.")
    value: int = Field(..., gt=0, description="Value of the new tile, a power of two.")


class MoveRequestData(GameRequestData):
    """Data required to make a move."""
    direction: core.Side = Field(
        ...,
        description="Direction of the tilt (NORTH, EAST, SOUTH, WEST)."
    )

class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    score_gained: int = Field(..., ge=0, description="Points scored by merges in this move.")
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was not effective or the game ended."
    )


def _state_of(model: core.Model) -> dict:
    return dict(
        board=model.values(),
        score=model.score(),
        max_score=model.max_score(),
        game_over=model.game_over(),
        progress=model.progress(),
        max_tile=model.max_piece,
        board_size=model.size(),
    )


def _load_model(request_data: GameRequestData) -> core.Model:
    return core.Model.from_values(
        request_data.board,
        score=request_data.score,
        max_score=request_data.max_score,
        max_piece=request_data.max_tile,
    )

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit(settings.rate_limit)
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Initializes a new, empty 2048 game based on the provided settings.

    - **size**: Dimension of the N x N board (e.g., 4 for 4x4). Default is 4.
    - **max_tile**: Tile value that ends the game (e.g., 2048). Default is 2048.

    The board starts empty; place the opening tiles with `/game/tile`.
    """
    try:
        model = core.Model(settings.size, settings.max_tile)
        return GameStateData(**_state_of(model))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error in /game/new: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/tile", response_model=GameStateData, summary="Place a Tile")
@limiter.limit(settings.rate_limit)
async def add_tile(request: Request, request_data: AddTileRequestData):
    """
    Places a tile of `value` at (`column`, `row`).

    Fails with 400 if the cell is already occupied or outside the board.
    """
    try:
        model = _load_model(request_data)
        model.add_tile(core.Tile(request_data.value), request_data.column, request_data.row)
        return GameStateData(**_state_of(model))
    except core.TileOccupiedError as e:
        raise HTTPException(status_code=400, detail=f"Cell is occupied: {str(e)}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error placing tile: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/tile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while placing the tile: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(settings.rate_limit)
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Tilts the board toward `direction`.

    Requires the current `board` state, `score`, `max_score`, the `direction`
    of the tilt, and the `max_tile` for this game instance.

    The API will:
    1. Slide and merge every row or column toward the requested side.
    2. Add the merge points to the score.
    3. Determine the new game status (IN_PROGRESS, GAME_WON, GAME_OVER).

    No new tile is added; the client places it with `/game/tile`.
    """
    try:
        model = _load_model(request_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid board structure in request: {str(e)}")

    message_for_client: Optional[str] = None

    try:
        score_before = model.score()
        move_was_effective = model.tilt(request_data.direction)

        if not move_was_effective:
            message_for_client = "Move was not effective; board state unchanged by tilt."

        state = _state_of(model)
        if state["progress"] == core.GameProgressState.GAME_WON:
            message_for_client = "Congratulations! You won!"
        elif state["progress"] == core.GameProgressState.GAME_OVER:
            message_for_client = "Game Over. No more valid moves."

        return MoveResponseData(
            **state,
            move_was_effective=move_was_effective,
            score_gained=model.score() - score_before,
            message=message_for_client
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")
