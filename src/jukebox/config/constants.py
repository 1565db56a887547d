"""Constants for the jukebox engine.

These are true constants that never change - storage keys, economy defaults, progress tables.
"""

from typing import Any, Final, Iterable, Mapping

# Durable storage keys
COINS_KEY: Final = "jukebox_coins"
SONGS_PLAYED_KEY: Final = "jukebox_songs_played"

# Economy
DEFAULT_COINS: Final = 5
COIN_COST_PER_PLAY: Final = 1
# Coins credited per correct quiz answer
COINS_PER_DIFFICULTY: Final = {"Easy": 2, "Medium": 3, "Hard": 5}

# Playlist generation
MIN_GENERATION_ARTISTS: Final = 1
MAX_GENERATION_ARTISTS: Final = 5
# Cosmetic progress stalls just below this value until the request resolves
PROGRESS_CEILING: Final = 99.0
PROGRESS_COMPLETE: Final = 100.0
# Fraction of the remaining distance covered per tick, keyed by artist count.
# 1 artist takes ~20s to approach the ceiling, 5 artists ~150s.
PROGRESS_SPEED: Final = {1: 0.08, 2: 0.04, 3: 0.026, 4: 0.013, 5: 0.011}
DEFAULT_PROGRESS_SPEED: Final = 0.08
CATEGORY_CHAR_LIMIT: Final = 50
GENERATION_ERROR_MESSAGE: Final = "Failed to generate playlist. Try again."

# Artist browsing and search
ARTIST_PAGE_SIZE: Final = 17
# Shorter queries clear the results instead of searching
ARTIST_SEARCH_MIN_LENGTH: Final = 2

# Type aliases
JSON_DATA_TYPE = str | int | float | bool | Mapping[str, Any] | Iterable[Any] | None
