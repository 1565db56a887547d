"""Durable local store backing the coin ledger across restarts."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, cast

from jukebox.config import constants
from jukebox.config.constants import JSON_DATA_TYPE

logger = logging.getLogger(__name__)


class PersistentState:
    """Key/value state with JSON file backing.

    Reads and writes are synchronous so that a ledger transition and its
    persistence happen without yielding to the event loop.
    """

    def __init__(self, state_file: Path) -> None:
        """Initialize the store and load any existing state from disk.

        Args:
            state_file: Path to the state file.
        """
        self._state: dict[str, Any] = {}
        self._state_file = state_file

        try:
            raw = state_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            # First run, or the state was cleared on logout.
            raw = None
        except OSError:
            logger.error(f"Could not read state from {state_file}")
            raise

        if raw:
            try:
                loaded = json.loads(raw)
            except json.JSONDecodeError:
                logger.exception(f"Corrupt state file {state_file}, starting fresh")
                loaded = {}
            if isinstance(loaded, dict):
                self._state = loaded
                logger.info(f"Loaded state from {state_file}")
        else:
            logger.info("No existing state file found, starting fresh")

    def set_state(self, path: Iterable[str], value: JSON_DATA_TYPE) -> None:
        """Store `value` under `path`, then write the whole state to disk.

        Args:
            path: Keys leading to the value, e.g. ["ledger", "jukebox_coins"].
                Missing intermediate dicts are created.
            value: A JSON-serialisable value.
        """
        path = list(path)
        if not path:
            if not isinstance(value, dict):
                raise TypeError("Attempted to override entire state with a non-dict type")
            self._state = dict(value)
        else:
            key = path.pop()
            current = self._state
            for pathname in path:
                current = current.setdefault(pathname, {})
            current[key] = value

        self._flush()

    def get_state(self, path: Iterable[str]) -> JSON_DATA_TYPE:
        """Retrieve a copy of the value stored at `path`.

        Returns:
            The value, or None if the path does not exist.
        """
        path = list(path)
        if not path:
            return copy.deepcopy(self._state)

        key = path.pop()
        current = self._state
        for pathname in path:
            next_level = current.get(pathname)
            if not isinstance(next_level, dict):
                return None
            current = next_level

        value = current.get(key)
        if value is None:
            return None
        return cast(JSON_DATA_TYPE, copy.deepcopy(value))

    def delete_state(self, path: Iterable[str]) -> bool:
        """Delete the value at `path`, pruning dicts left empty.

        Returns:
            True if the path was deleted, False if it did not exist.
        """
        path = list(path)
        if not path:
            return False

        key = path.pop()
        parent = self.get_state(path) if path else copy.deepcopy(self._state)
        if not isinstance(parent, dict) or key not in parent:
            return False

        del parent[key]
        if path:
            self.set_state(path, parent)
            if not parent:
                self.delete_state(path)
        else:
            self.set_state([], parent)
        return True

    # Ledger accessors

    def load_ledger(self, default_coins: int) -> tuple[int, int]:
        """Return the persisted (balance, total plays), with defaults when absent."""
        coins = self.get_state(["ledger", constants.COINS_KEY])
        played = self.get_state(["ledger", constants.SONGS_PLAYED_KEY])
        balance = coins if isinstance(coins, int) and coins >= 0 else default_coins
        total_plays = played if isinstance(played, int) and played >= 0 else 0
        return balance, total_plays

    def save_ledger(self, balance: int, total_plays: int) -> None:
        self.set_state(
            ["ledger"],
            {constants.COINS_KEY: balance, constants.SONGS_PLAYED_KEY: total_plays},
        )

    def clear_ledger(self) -> None:
        """Forget the ledger, e.g. on logout."""
        self.delete_state(["ledger"])

    def _flush(self) -> None:
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._state_file.with_suffix(".tmp")
        # Indented so the file stays easy to inspect by hand
        temp_path.write_text(json.dumps(self._state, indent=2), encoding="utf-8")
        os.replace(temp_path, self._state_file)
