# cli_driver.py
# This file is intended to be run to play the 2048 game on the CLI

import argparse
import logging
import random
from typing import List, Optional

from pydantic import ValidationError

from config import GameConfig, load_config
from core import (
    DIRECTION,
    GameProgressState,
    create_starting_board,
    transform_board,
    spawn_tile,
    determine_game_status
)

logger = logging.getLogger(__name__)

KEY_MAP = {'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT}
QUIT_KEY = 'Q'
RESTART_KEY = 'R'


def map_key(key: str) -> Optional[DIRECTION]:
    """Returns the direction bound to a W/A/S/D key, or None for any other input."""
    return KEY_MAP.get(key.strip().upper())


def build_parser(config: GameConfig) -> argparse.ArgumentParser:
    """Command-line options, defaulting to the loaded configuration."""
    parser = argparse.ArgumentParser(description="Play 2048 in the terminal.")
    parser.add_argument("--size", type=int, default=config.board_size,
                        help=f"Board dimension, one of {list(config.allowed_board_sizes)}.")
    parser.add_argument("--win-tile", type=int, default=config.win_tile,
                        help="Tile value that wins the game (lower it, e.g. 32, for testing).")
    parser.add_argument("--two-probability", type=float, default=config.two_probability,
                        help="Chance that a spawned tile is a 2 rather than a 4.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible tile placement.")
    parser.add_argument("--log-level", default=config.log_level)
    return parser


def options_to_config(config: GameConfig, args: argparse.Namespace) -> GameConfig:
    """
    Applies command-line overrides on top of the loaded configuration.
    Raises:
        ValueError: If an override fails the same checks as GAME2048_* variables.
    """
    overrides = {
        "board_size": args.size,
        "win_tile": args.win_tile,
        "two_probability": args.two_probability,
        "log_level": args.log_level,
    }
    try:
        return GameConfig(**{**config.model_dump(), **overrides})
    except ValidationError as e:
        raise ValueError("; ".join(error["msg"] for error in e.errors())) from e


def main(argv: Optional[List[str]] = None, input_fn=input, output_fn=print) -> int:
    """
    Plays one terminal session until the game ends or the player quits.
    Args:
        argv (Optional[List[str]]): Command-line arguments, sys.argv when omitted.
        input_fn: Reads one line of player input.
        output_fn: Shows one block of text.
    Returns:
        int: 0 after a game, 2 for invalid options.
    """
    config = load_config()
    args = build_parser(config).parse_args(argv)
    try:
        config = options_to_config(config, args)
    except ValueError as e:
        output_fn(f"Invalid options: {e}")
        return 2
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    rng = random.Random(args.seed)

    # 1. Initialize game
    current_board = create_starting_board(config.board_size, config.two_probability, rng)
    current_score = 0
    current_progress = determine_game_status(current_board, config.win_tile)
    output_fn(display_board_state(current_board, current_score, current_progress))

    # 2. Game Loop
    while current_progress == GameProgressState.IN_PROGRESS:
        try:
            move_input = input_fn("Enter move (W/A/S/D for Up/Left/Down/Right, R to restart, Q to quit): ")
        except EOFError:
            move_input = QUIT_KEY
        move_input = move_input.strip().upper()

        if move_input == QUIT_KEY:
            output_fn("Quitting game.")
            break

        if move_input == RESTART_KEY:
            logger.info("Restarting after score %d", current_score)
            current_board = create_starting_board(config.board_size, config.two_probability, rng)
            current_score = 0
            current_progress = determine_game_status(current_board, config.win_tile)
            output_fn(display_board_state(current_board, current_score, current_progress))
            continue

        chosen_direction = map_key(move_input)
        if chosen_direction is None:
            output_fn("Invalid input. Use W, A, S, D.")
            continue

        # 3. Process the move
        next_board_candidate, score_increase, move_was_made = transform_board(current_board, chosen_direction)

        if not move_was_made:
            output_fn("Move did not change the board. Try a different direction.")
            continue

        # 4. Add a new random tile only because the move changed the board
        current_board = spawn_tile(next_board_candidate, config.two_probability, rng)
        current_score += score_increase

        # 5. Update game progress state
        current_progress = determine_game_status(current_board, config.win_tile)
        output_fn(display_board_state(current_board, current_score, current_progress))

    # 6. Game Ended
    if current_progress == GameProgressState.GAME_WON:
        output_fn(f"Congratulations! You reached the {config.win_tile} tile!")
    elif current_progress == GameProgressState.GAME_OVER:
        output_fn("No more moves possible. Better luck next time!")
    output_fn(f"Final score: {current_score}")
    return 0


# --- Display Functions ---

def render_board(board: List[List[int]]) -> str:
    """Formats the board as tab-separated rows, with '.' marking empty cells."""
    return "\n".join("\t".join(str(value) if value else "." for value in row) for row in board)


def display_board_state(board: List[List[int]], score: int, progress: GameProgressState) -> str:
    """Builds the score line, status line and board shown after each turn."""
    status_message = {
        GameProgressState.IN_PROGRESS: f"Status: {progress.name}",
        GameProgressState.GAME_WON: "YOU WON!",
        GameProgressState.GAME_OVER: "GAME OVER!"
    }
    return "\n".join([
        f"\nScore: {score}",
        status_message[progress],
        render_board(board),
        "-" * (len(board) * 6),
    ])


if __name__ == "__main__":
    raise SystemExit(main())
