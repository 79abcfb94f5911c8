# settings.py
# Runtime configuration for the API and the CLI driver.

import os

from pydantic import BaseModel, Field, field_validator

from board import is_power_of_two
from core import MAX_PIECE

ENV_PREFIX = "TILT2048_"


class Settings(BaseModel):
    """Defaults for new games and for the services wrapping the engine."""
    board_size: int = Field(default=4, gt=1, description="Size N of a new N x N board.")
    max_piece: int = Field(default=MAX_PIECE, gt=0, description="Tile value that ends the game as a win.")
    rate_limit: str = Field(default="100/minute", description="slowapi limit applied to every endpoint.")
    log_level: str = Field(default="WARNING", description="Level handed to logging.basicConfig by the CLI.")

    @field_validator("max_piece")
    @classmethod
    def max_piece_is_reachable(cls, value: int) -> int:
        if not is_power_of_two(value):
            raise ValueError("max_piece must be a power of two")
        return value


def load_settings() -> Settings:
    """
    Reads settings from TILT2048_* environment variables, falling back to the
    defaults above.
    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    overrides = {}
    for name in Settings.model_fields:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None:
            overrides[name] = raw
    return Settings(**overrides)
