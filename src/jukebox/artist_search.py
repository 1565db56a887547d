"""Debounced artist search for picking generation seeds."""

import asyncio
import logging
from typing import Iterable

from jukebox.config import constants
from jukebox.player.protocols import ArtistApi
from jukebox.track import Artist

logger = logging.getLogger(__name__)


class ArtistSearch:
    """Searches artists by name once typing settles.

    Each query replaces the previous one: a pending search is cancelled
    before its request is sent, so only the latest query reaches the
    backend. Queries shorter than the minimum length clear the results.
    """

    def __init__(
        self,
        api: ArtistApi,
        delay: float = 0.4,
        min_length: int = constants.ARTIST_SEARCH_MIN_LENGTH,
    ) -> None:
        self._api = api
        self._delay = delay
        self._min_length = min_length
        self._pending: asyncio.Task[list[Artist]] | None = None
        self.results: list[Artist] = []

    @property
    def searching(self) -> bool:
        return self._pending is not None

    def update(
        self, query: str, exclude: Iterable[Artist] = ()
    ) -> asyncio.Task[list[Artist]] | None:
        """Report the current query text.

        Args:
            query: What the user has typed so far.
            exclude: Artists to leave out of the results, e.g. those already
                chosen as seeds.

        Returns:
            The scheduled search, or None if the query was too short.
        """
        self.close()
        query = query.strip()
        if len(query) < self._min_length:
            self.results = []
            return None

        excluded = {artist.artist_id for artist in exclude}
        self._pending = asyncio.get_running_loop().create_task(
            self._search(query, excluded)
        )
        return self._pending

    async def _search(self, query: str, excluded: set[int]) -> list[Artist]:
        try:
            await asyncio.sleep(self._delay)
            try:
                found = await self._api.search_artists(query)
            except Exception as e:
                logger.error(f"Artist search for {query!r} failed: {e}")
                found = []
            self.results = [a for a in found if a.artist_id not in excluded]
            logger.debug(f"Found {len(self.results)} artists matching {query!r}")
            return self.results
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

    def close(self) -> None:
        """Cancel any pending search."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
