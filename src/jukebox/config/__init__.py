"""Configuration module for the jukebox engine.

This module provides a two-tier configuration system:
- constants: Pure constants that never change (storage keys, economy defaults, etc.)
- settings: Runtime settings loaded from environment variables
"""

# Re-export all constants
from jukebox.config.constants import (
    CATEGORY_CHAR_LIMIT,
    COIN_COST_PER_PLAY,
    COINS_KEY,
    COINS_PER_DIFFICULTY,
    DEFAULT_COINS,
    DEFAULT_PROGRESS_SPEED,
    GENERATION_ERROR_MESSAGE,
    JSON_DATA_TYPE,
    MAX_GENERATION_ARTISTS,
    MIN_GENERATION_ARTISTS,
    PROGRESS_CEILING,
    PROGRESS_COMPLETE,
    PROGRESS_SPEED,
    SONGS_PLAYED_KEY,
)

# Re-export settings class
from jukebox.config.settings import JukeboxSettings

__all__ = [
    # Constants
    "CATEGORY_CHAR_LIMIT",
    "COIN_COST_PER_PLAY",
    "COINS_KEY",
    "COINS_PER_DIFFICULTY",
    "DEFAULT_COINS",
    "DEFAULT_PROGRESS_SPEED",
    "GENERATION_ERROR_MESSAGE",
    "JSON_DATA_TYPE",
    "MAX_GENERATION_ARTISTS",
    "MIN_GENERATION_ARTISTS",
    "PROGRESS_CEILING",
    "PROGRESS_COMPLETE",
    "PROGRESS_SPEED",
    "SONGS_PLAYED_KEY",
    # Settings class
    "JukeboxSettings",
]
