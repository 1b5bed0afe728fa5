# config.py
# Game settings shared by the API and the CLI driver, overridable through GAME2048_* environment variables.

import logging
import os
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

import core

ENV_PREFIX = "GAME2048_"
MIN_WIN_TILE = 4


def check_win_tile(value: int) -> int:
    """
    Checks that a win tile is a power of two no smaller than MIN_WIN_TILE.
    Raises:
        ValueError: If the value could never be a sensible 2048 target.
    """
    if value < MIN_WIN_TILE or not core.is_valid_tile(value):
        raise ValueError(f"win_tile must be a power of two >= {MIN_WIN_TILE}")
    return value


class GameConfig(BaseModel):
    """Defaults for new games and for the services that host them."""
    board_size: int = Field(default=4, ge=1, description="Board dimension used when none is requested.")
    allowed_board_sizes: Tuple[int, ...] = Field(
        default=(3, 4, 5),
        description="Board dimensions a client may start a game with.",
    )
    win_tile: int = Field(default=core.DEFAULT_WIN_TILE, ge=MIN_WIN_TILE, description="Tile value that wins the game.")
    two_probability: float = Field(
        default=core.DEFAULT_TWO_PROBABILITY,
        ge=0.0,
        le=1.0,
        description="Chance that a spawned tile is a 2 rather than a 4.",
    )
    rate_limit: str = Field(default="100/minute", description="Per-client limit for each API route.")
    log_level: str = Field(default="INFO")

    @field_validator("allowed_board_sizes", mode="before")
    @classmethod
    def _split_sizes(cls, value):
        if isinstance(value, str):
            return tuple(int(part) for part in value.split(",") if part.strip())
        return value

    @field_validator("allowed_board_sizes")
    @classmethod
    def _positive_sizes(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        if not value or any(size < 1 for size in value):
            raise ValueError("allowed_board_sizes must list positive sizes")
        return tuple(sorted(set(value)))

    @field_validator("win_tile")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        return check_win_tile(value)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @model_validator(mode="after")
    def _default_size_allowed(self) -> "GameConfig":
        if self.board_size not in self.allowed_board_sizes:
            raise ValueError(
                f"board_size {self.board_size} is not one of {list(self.allowed_board_sizes)}"
            )
        return self


def load_config(environ: Optional[Mapping[str, str]] = None) -> GameConfig:
    """
    Builds a GameConfig from GAME2048_<FIELD> variables, e.g. GAME2048_WIN_TILE=16.
    Args:
        environ (Optional[Mapping[str, str]]): Variables to read, os.environ by default.
    Returns:
        GameConfig: Validated settings; unset fields keep their defaults.
    Raises:
        ValueError: If a variable cannot be coerced or fails validation.
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for name in GameConfig.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            overrides[name] = environ[key]
    try:
        return GameConfig(**overrides)
    except ValidationError as e:
        raise ValueError(f"Invalid game configuration: {e}") from e
