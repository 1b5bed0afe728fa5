# core.py
# Stateless board engine for the 2048 game: slide/merge, tile spawning, win and stalemate checks.

import logging
import random
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union

logger = logging.getLogger(__name__)

Board = List[List[int]]

DEFAULT_WIN_TILE = 2048
DEFAULT_TWO_PROBABILITY = 0.7


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3


class DIRECTION(str, Enum):
    """Represents the possible move directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class MoveResult(NamedTuple):
    """Outcome of sliding a board in one direction. No new tile is placed."""
    board: Board
    points: int
    moved: bool


def parse_direction(value: Union[DIRECTION, str]) -> DIRECTION:
    """
    Coerces a direction given as an enum member, value or name into a DIRECTION.
    Args:
        value (Union[DIRECTION, str]): e.g. DIRECTION.UP, "up" or "UP".
    Returns:
        DIRECTION: The matching direction.
    Raises:
        ValueError: If the value names no direction. There is no fallback direction.
    """
    if isinstance(value, DIRECTION):
        return value
    if isinstance(value, str):
        try:
            return DIRECTION(value.strip().lower())
        except ValueError:
            pass
    raise ValueError(
        f"Invalid direction {value!r}; expected one of {', '.join(d.value for d in DIRECTION)}."
    )

# --- Board Helper Functions ---

def get_board_size(board: Board) -> int:
    """
    Gets the size (N) of an N x N board.
    Args:
        board (Board): The game board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or empty.
    """
    if not board or not all(len(row) == len(board) for row in board):
        raise ValueError("Board must be a non-empty square matrix.")
    return len(board)


def create_empty_board(size: int = 4) -> Board:
    """
    Creates an N x N board with every cell empty.
    Raises:
        ValueError: If size is not a positive integer.
    """
    if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
        raise ValueError("Board size must be a positive integer.")
    return [[0] * size for _ in range(size)]


def clone_board(board: Board) -> Board:
    """Returns a copy of the board that shares no rows with the original."""
    return [list(row) for row in board]


def get_empty_cells(board: Board) -> List[Tuple[int, int]]:
    """
    Get coordinates of empty (0-value) cells in the given board, in row-major order.
    Args:
        board (Board): The board to check.
    Returns:
        List[Tuple[int, int]]: List of (row, col) tuples for empty cells.
    """
    n = get_board_size(board)
    empty_cells = []
    for row in range(n):
        for col in range(n):
            if board[row][col] == 0:
                empty_cells.append((row, col))
    return empty_cells


def is_valid_tile(value: int) -> bool:
    """True for 0 (empty) or a positive power of two."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        return False
    return value == 0 or value & (value - 1) == 0


def validate_board(board: Board) -> int:
    """
    Checks that a board is square and holds only empty cells or powers of two.
    Args:
        board (Board): The board to check.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: On the first malformed row or cell.
    """
    n = get_board_size(board)
    for r in range(n):
        for c in range(n):
            if not is_valid_tile(board[r][c]):
                raise ValueError(
                    f"Cell ({r}, {c}) holds {board[r][c]!r}; tiles must be 0 or a power of two."
                )
    return n

# --- Line Manipulation (Core Move Logic) ---

def collapse_line(line: List[int]) -> Tuple[List[int], int]:
    """
    Slides a single line toward index 0, merging equal neighbours pairwise.

    A tile produced by a merge never merges again in the same call, so
    [2, 2, 2, 0] becomes [4, 2, 0, 0] and [2, 2, 2, 2] becomes [4, 4, 0, 0].
    Args:
        line (List[int]): A row or column, 0 meaning empty.
    Returns:
        Tuple[List[int], int]: The collapsed line (same length) and the sum of merged values.
    """
    tiles = [value for value in line if value != 0]
    collapsed = []
    points = 0

    i = 0
    while i < len(tiles):
        if i + 1 < len(tiles) and tiles[i] == tiles[i + 1]:
            merged_value = tiles[i] * 2
            collapsed.append(merged_value)
            points += merged_value
            i += 2  # Skip the partner tile
        else:
            collapsed.append(tiles[i])
            i += 1

    collapsed += [0] * (len(line) - len(collapsed))
    return collapsed, points

# --- Board Transformations ---

def rotate_clockwise(board: Board) -> Board:
    """
    Rotates a board 90 degrees clockwise.
    Args:
        board (Board): The board to rotate.
    Returns:
        Board: A new rotated board.
    """
    n = get_board_size(board)
    new_board = create_empty_board(n)
    for r in range(n):
        for c in range(n):
            new_board[c][n - 1 - r] = board[r][c]
    return new_board


def rotate_counter_clockwise(board: Board) -> Board:
    """
    Rotates a board 90 degrees counter-clockwise.
    Args:
        board (Board): The board to rotate.
    Returns:
        Board: A new rotated board.
    """
    n = get_board_size(board)
    new_board = create_empty_board(n)
    for r in range(n):
        for c in range(n):
            new_board[n - 1 - c][r] = board[r][c]
    return new_board


def rotate_half_turn(board: Board) -> Board:
    """Rotates a board 180 degrees."""
    return [row[::-1] for row in reversed(board)]


def mirror_horizontally(board: Board) -> Board:
    """
    Reverses each row in a given board.
    Args:
        board (Board): The board whose rows are to be reversed.
    Returns:
        Board: A new board with rows reversed.
    """
    new_board = []
    for row in board:
        new_board.append(row[::-1])
    return new_board


# Each direction maps to (rotation that makes it a left move, rotation that undoes it).
_ORIENTATIONS: Dict[DIRECTION, Tuple[Callable[[Board], Board], Callable[[Board], Board]]] = {
    DIRECTION.LEFT: (clone_board, clone_board),
    DIRECTION.RIGHT: (rotate_half_turn, rotate_half_turn),
    DIRECTION.UP: (rotate_counter_clockwise, rotate_clockwise),
    DIRECTION.DOWN: (rotate_clockwise, rotate_counter_clockwise),
}

# --- Core Game Move Processing ---

def _collapse_all_rows(oriented_board: Board) -> MoveResult:
    """
    Collapses every row of an already-oriented board to the left.
    Args:
        oriented_board (Board): The board after its forward rotation.
    Returns:
        MoveResult: The collapsed board (still oriented), total points,
                    and whether any cell differs from the input.
    """
    processed_board = []
    total_points = 0
    moved = False

    for row in oriented_board:
        new_row, points = collapse_line(row)
        processed_board.append(new_row)
        total_points += points
        if any(new != old for new, old in zip(new_row, row)):
            moved = True

    return MoveResult(processed_board, total_points, moved)


def transform_board(board: Board, direction: Union[DIRECTION, str]) -> MoveResult:
    """
    Slides and merges every tile of the board in the given direction.

    Every direction is reduced to a left move: the board is rotated so that
    the movement axis runs toward column 0, each row is collapsed, and the
    inverse rotation restores the original orientation. No tile is spawned
    and the input board is never mutated.
    Args:
        board (Board): The current game board.
        direction (Union[DIRECTION, str]): The direction to move.
    Returns:
        MoveResult:
            - The new board state after the move.
            - The points gained from merges in this move.
            - Whether any cell changed.
    Raises:
        ValueError: If the board is malformed or the direction is unknown.
    """
    direction = parse_direction(direction)
    get_board_size(board)
    forward, inverse = _ORIENTATIONS[direction]

    collapsed, points, moved = _collapse_all_rows(forward(board))
    return MoveResult(inverse(collapsed), points, moved)

# --- Tile Spawning ---

def spawn_tile(
    board: Board,
    two_probability: float = DEFAULT_TWO_PROBABILITY,
    rng: Optional[random.Random] = None,
) -> Board:
    """
    Places one new tile on a uniformly chosen empty cell of a copy of the board.
    Args:
        board (Board): The current game board.
        two_probability (float): Chance that the new tile is a 2; otherwise it is a 4.
        rng (Optional[random.Random]): Random source, the `random` module when omitted.
    Returns:
        Board: A new board with the added tile. A full board comes back as an
               unmodified copy.
    Raises:
        ValueError: If two_probability is outside [0, 1].
    """
    if not 0.0 <= two_probability <= 1.0:
        raise ValueError("two_probability must be between 0 and 1.")
    source = rng if rng is not None else random

    new_board = clone_board(board)
    empty_cells = get_empty_cells(board)
    if not empty_cells:
        return new_board

    row, col = source.choice(empty_cells)
    new_board[row][col] = 2 if source.random() < two_probability else 4
    logger.debug("Spawned %d at (%d, %d)", new_board[row][col], row, col)
    return new_board


def create_starting_board(
    size: int = 4,
    two_probability: float = DEFAULT_TWO_PROBABILITY,
    rng: Optional[random.Random] = None,
) -> Board:
    """
    Creates an empty N x N board and spawns the two opening tiles.
    Raises:
        ValueError: If board size is not a positive integer.
    """
    board = create_empty_board(size)
    board = spawn_tile(board, two_probability, rng)
    board = spawn_tile(board, two_probability, rng)
    return board


def initialize_board(
    size: int = 4,
    two_probability: float = DEFAULT_TWO_PROBABILITY,
    rng: Optional[random.Random] = None,
) -> Tuple[Board, int, GameProgressState]:
    """
    Initializes a new game board with two random tiles.
    Args:
        size (int): The dimension of the N x N game board. Default is 4.
        two_probability (float): Chance that each opening tile is a 2.
        rng (Optional[random.Random]): Random source for tile placement.
    Returns:
        Tuple[Board, int, GameProgressState]: The initial board, score (0),
                                              and game state (IN_PROGRESS).
    Raises:
        ValueError: If board size is not a positive integer.
    """
    current_board = create_starting_board(size, two_probability, rng)
    return current_board, 0, GameProgressState.IN_PROGRESS

# --- Game State Checks ---

def check_for_win(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> bool:
    """
    Check if the game is won (a tile reaches or exceeds win_tile).
    Args:
        board (Board): The game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        bool: True if the game is won, False otherwise.
    """
    n = get_board_size(board)
    for r in range(n):
        for c in range(n):
            if board[r][c] >= win_tile:
                return True
    return False


def is_any_move_possible(board: Board) -> bool:
    """
    Checks if any direction changes the board. The trial moves are discarded.
    Args:
        board (Board): The game board.
    Returns:
        bool: True if any move can be made, False otherwise.
    """
    for direction in DIRECTION:
        if transform_board(board, direction).moved:
            return True
    return False


def determine_game_status(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> GameProgressState:
    """
    Determines the current progress state of the game based on the board.

    A win is reported even when moves remain, and takes precedence over a stalemate.
    Args:
        board (Board): The current game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    if check_for_win(board, win_tile):
        return GameProgressState.GAME_WON
    if not is_any_move_possible(board):
        return GameProgressState.GAME_OVER
    return GameProgressState.IN_PROGRESS


def is_terminal(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> bool:
    """True once the board is won or no direction can change it."""
    return determine_game_status(board, win_tile) != GameProgressState.IN_PROGRESS
