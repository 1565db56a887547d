"""Runtime settings for the jukebox engine.

Settings loaded from environment variables and provided to components via dependency injection.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from jukebox.config import constants


@dataclass(frozen=True)
class JukeboxSettings:
    """Runtime settings for the jukebox engine."""

    # Backend configuration
    api_base_url: str
    api_token: str | None
    request_timeout: float

    # File paths
    data_dir: Path
    state_dir: Path
    state_file: Path

    # Economy and catalog
    default_coins: int
    catalog_page_size: int

    # Playlist generation
    generation_target_count: int
    generation_batch_size: int
    progress_interval: float
    reveal_interval: float

    # List views
    scroll_delay: float
    songs_per_page: int
    playlists_per_page: int
    search_delay: float

    # External player
    seek_step: int
    media_url_template: str

    # Logging
    log_level: int

    @staticmethod
    def from_environment() -> "JukeboxSettings":
        """Load settings from environment variables.

        Returns:
            JukeboxSettings instance with values from environment variables.
        """
        data_dir = Path(os.environ.get("JUKEBOX_DATA_DIR", "data"))
        state_dir = data_dir / "state"
        state_file = Path(
            os.environ.get("JUKEBOX_STATE_FILE", str(state_dir / "jukebox_state.json"))
        )

        log_level_name = os.environ.get("JUKEBOX_LOG_LEVEL", "INFO").upper()
        log_level = logging.getLevelName(log_level_name)
        if not isinstance(log_level, int):
            log_level = logging.INFO

        return JukeboxSettings(
            api_base_url=os.environ.get(
                "JUKEBOX_API_URL", "https://localhost:7183/api"
            ).rstrip("/"),
            api_token=os.environ.get("JUKEBOX_API_TOKEN"),
            request_timeout=float(os.environ.get("JUKEBOX_REQUEST_TIMEOUT", "15")),
            data_dir=data_dir,
            state_dir=state_file.parent,
            state_file=state_file,
            default_coins=int(
                os.environ.get("JUKEBOX_DEFAULT_COINS", str(constants.DEFAULT_COINS))
            ),
            catalog_page_size=int(os.environ.get("JUKEBOX_CATALOG_PAGE_SIZE", "100")),
            generation_target_count=int(
                os.environ.get("JUKEBOX_GENERATION_SONGS", "30")
            ),
            generation_batch_size=int(os.environ.get("JUKEBOX_GENERATION_BATCH", "3")),
            progress_interval=float(os.environ.get("JUKEBOX_PROGRESS_INTERVAL", "0.3")),
            reveal_interval=float(os.environ.get("JUKEBOX_REVEAL_INTERVAL", "0.12")),
            scroll_delay=float(os.environ.get("JUKEBOX_SCROLL_DELAY", "0.3")),
            songs_per_page=int(os.environ.get("JUKEBOX_SONGS_PER_PAGE", "30")),
            playlists_per_page=int(os.environ.get("JUKEBOX_PLAYLISTS_PER_PAGE", "20")),
            search_delay=float(os.environ.get("JUKEBOX_SEARCH_DELAY", "0.4")),
            seek_step=int(os.environ.get("JUKEBOX_SEEK_STEP", "10")),
            media_url_template=os.environ.get(
                "JUKEBOX_MEDIA_URL", "https://www.youtube.com/watch?v={reference_id}"
            ),
            log_level=log_level,
        )

    def validate(self, logger: logging.Logger) -> None:
        """Log warnings for missing optional configuration.

        Args:
            logger: Logger instance to use for warnings.
        """
        if self.api_token is None:
            logger.warning(
                "JUKEBOX_API_TOKEN is not set, backend calls will be made anonymously"
            )

        if "{reference_id}" not in self.media_url_template:
            logger.warning(
                "JUKEBOX_MEDIA_URL does not contain {reference_id}, every track will load the same media"
            )
