"""Startup checks for the jukebox engine."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jukebox.config.settings import JukeboxSettings

logger = logging.getLogger(__name__)


def validate_and_setup_directories(settings: "JukeboxSettings") -> list[str]:
    """Make sure the coin ledger can be persisted before the session starts.

    Creates the state directory when missing and probes it with a throwaway
    file.

    Args:
        settings: JukeboxSettings instance containing the state paths.

    Returns:
        Error messages, one per problem found. Empty when startup may proceed.
    """
    problems: list[str] = []

    state_dir = settings.state_dir
    probe = state_dir / ".ledger_probe"
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
        probe.write_text("", encoding="utf-8")
        probe.unlink()
    except OSError as e:
        problems.append(f"Cannot write to state directory ({state_dir}): {e}")

    if settings.state_file.exists() and not settings.state_file.is_file():
        problems.append(f"State file path is not a file: {settings.state_file}")

    if not settings.data_dir.exists():
        logger.warning(f"Data directory does not exist: {settings.data_dir}")

    return problems
