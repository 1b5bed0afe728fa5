import logging

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core
from config import MIN_WIN_TILE, check_win_tile, load_config

logger = logging.getLogger(__name__)

settings = load_config()

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Game API",
    description="A stateless API for playing the 2048 game. "\
                "Manage your game state (board, score, win_tile) on the client side.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: Optional[int] = Field(
        default=None,
        gt=0,
        description="Size of the N x N game board (e.g., 4 for a 4x4 board). "\
                    "Must be one of the configured board sizes."
    )
    win_tile: Optional[int] = Field(
        default=None,
        ge=MIN_WIN_TILE,
        description="The tile value to achieve for winning the game (e.g., 2048). Must be a power of two."
    )

    @field_validator("win_tile")
    @classmethod
    def _power_of_two(cls, value: Optional[int]) -> Optional[int]:
        return None if value is None else check_win_tile(value)

class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    board: List[List[int]] = Field(..., description="The N x N game board, represented as a list of lists.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    progress: core.GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    win_tile: int = Field(..., gt=0, description="The tile value required to win this game instance.")
    board_size: int = Field(..., gt=0, description="The dimension N of the N x N board.")


class MoveRequestData(BaseModel):
    """Data required to make a move."""
    board: List[List[int]] = Field(..., description="Current N x N game board state before the move.")
    score: int = Field(..., ge=0, description="Current score before the move.")
    direction: core.DIRECTION = Field(
        ...,
        description="Direction of the move (up, down, left, right)."
    )
    win_tile: int = Field(..., ge=MIN_WIN_TILE, description="The win condition tile for this game instance.")
    # board_size is implicitly derived from the board structure.

    @field_validator("win_tile")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        return check_win_tile(value)

class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    points: int = Field(default=0, ge=0, description="Points gained by merges in this move.")
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was invalid, game ended, or other info."
    )

class StatusRequestData(BaseModel):
    """A board to evaluate without moving."""
    board: List[List[int]] = Field(..., description="The N x N game board to inspect.")
    win_tile: int = Field(default=settings.win_tile, ge=MIN_WIN_TILE, description="The win condition tile.")

    @field_validator("win_tile")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        return check_win_tile(value)

class StatusResponseData(BaseModel):
    """Terminal-state verdict for a submitted board."""
    progress: core.GameProgressState
    is_terminal: bool
    board_size: int = Field(..., gt=0)
    max_tile: int = Field(..., ge=0)


def _validated_size(board: List[List[int]]) -> int:
    try:
        return core.validate_board(board)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid board structure in request: {str(e)}")


def _progress_message(progress: core.GameProgressState) -> Optional[str]:
    if progress == core.GameProgressState.GAME_WON:
        return "Congratulations! You won!"
    if progress == core.GameProgressState.GAME_OVER:
        return "Game Over. No more valid moves."
    return None

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit(settings.rate_limit)
async def start_new_game(request: Request, settings_in: NewGameSettings):
    """
    Initializes a new 2048 game based on the provided settings (size and win_tile).

    - **size**: Dimension of the N x N board. Defaults to the configured size.
    - **win_tile**: Tile value to reach to win. Defaults to the configured tile (2048).

    Returns the initial game state, including the board with two random tiles,
    score (0), progress status (IN_PROGRESS), and the specified win_tile.
    """
    size = settings_in.size if settings_in.size is not None else settings.board_size
    win_tile = settings_in.win_tile if settings_in.win_tile is not None else settings.win_tile

    if size not in settings.allowed_board_sizes:
        raise HTTPException(
            status_code=400,
            detail=f"Board size {size} is not supported; choose one of {list(settings.allowed_board_sizes)}."
        )

    try:
        initial_board, initial_score, _ = core.initialize_board(size, settings.two_probability)

        # For a standard new game this is IN_PROGRESS, unless win_tile is tiny.
        current_progress = core.determine_game_status(initial_board, win_tile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error in /game/new")
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")

    logger.info("New %dx%d game (win tile %d)", size, size, win_tile)
    return GameStateData(
        board=initial_board,
        score=initial_score,
        progress=current_progress,
        win_tile=win_tile,
        board_size=size
    )


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(settings.rate_limit)
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move in the game.

    Requires the current `board` state, `score`, the `direction` of the move,
    and the `win_tile` for this game instance.

    The API will:
    1. Refuse the move if the submitted board is already won or stuck.
    2. Slide and merge tiles in the requested direction.
    3. If the move changed the board, add exactly one new random tile (2 or 4).
    4. Determine the new game status (IN_PROGRESS, GAME_WON, GAME_OVER).

    Returns the updated game state, whether the move was effective, and an optional message.
    """
    current_board = request_data.board
    current_score = request_data.score
    direction = request_data.direction
    win_tile = request_data.win_tile

    board_size_from_request = _validated_size(current_board)

    final_board = core.clone_board(current_board)
    final_score = current_score
    points = 0
    move_was_effective = False

    try:
        current_progress = core.determine_game_status(current_board, win_tile)
        if current_progress != core.GameProgressState.IN_PROGRESS:
            return MoveResponseData(
                board=final_board,
                score=final_score,
                progress=current_progress,
                win_tile=win_tile,
                board_size=board_size_from_request,
                move_was_effective=False,
                message="The game is over; start a new game to keep playing."
            )

        board_after_slide, points, move_was_effective = core.transform_board(current_board, direction)

        if move_was_effective:
            final_score += points
            final_board = core.spawn_tile(board_after_slide, settings.two_probability)
            message_for_client = None
        else:
            message_for_client = "Move was not effective; board state unchanged by slide."

        current_progress = core.determine_game_status(final_board, win_tile)
        message_for_client = _progress_message(current_progress) or message_for_client
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error in /game/move")
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")

    logger.debug("Move %s: effective=%s points=%d", direction.value, move_was_effective, points)
    return MoveResponseData(
        board=final_board,
        score=final_score,
        progress=current_progress,
        win_tile=win_tile,
        board_size=board_size_from_request,
        move_was_effective=move_was_effective,
        points=points,
        message=message_for_client
    )


@app.post("/game/status", response_model=StatusResponseData, summary="Check Whether a Game Is Over")
@limiter.limit(settings.rate_limit)
async def game_status(request: Request, request_data: StatusRequestData):
    """
    Reports whether a board is won, stuck, or still playable, without moving it.
    """
    board_size = _validated_size(request_data.board)
    progress = core.determine_game_status(request_data.board, request_data.win_tile)
    return StatusResponseData(
        progress=progress,
        is_terminal=progress != core.GameProgressState.IN_PROGRESS,
        board_size=board_size,
        max_tile=max(max(row) for row in request_data.board)
    )
