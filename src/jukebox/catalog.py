"""Aggregation of paginated song listings into one complete catalog."""

import logging
import math

from jukebox.player.models import Page, Selection
from jukebox.player.protocols import CatalogApi
from jukebox.track import Track

logger = logging.getLogger(__name__)


class CatalogLoadError(Exception):
    """A page of the catalog could not be fetched; nothing was loaded."""

    def __init__(self, source: Selection, page_number: int) -> None:
        super().__init__(
            f"Failed to load page {page_number} of {source.kind.name.lower()} {source.source_id}"
        )
        self.source = source
        self.page_number = page_number


class CatalogLoader:
    """Fetches every page of an artist's or playlist's songs."""

    def __init__(self, api: CatalogApi, page_size: int = 100) -> None:
        if page_size <= 0:
            raise ValueError(f"Page size must be positive: {page_size}")
        self._api = api
        self._page_size = page_size

    async def load_all(
        self, source: Selection, page_size: int | None = None
    ) -> list[Track]:
        """Load the complete song list for `source`, preserving server order.

        Pages are fetched one after another. The result is only returned once
        every page has succeeded.

        Raises:
            CatalogLoadError: Any page failed. No partial list is returned.
        """
        size = page_size or self._page_size

        first = await self._fetch(source, 1, size)
        tracks = list(first.items)
        # Some endpoints omit the total for single-page results
        total = first.total_items or len(tracks)
        total_pages = math.ceil(total / size)

        for page_number in range(2, total_pages + 1):
            page = await self._fetch(source, page_number, size)
            tracks.extend(page.items)

        logger.info(
            f"Loaded {len(tracks)} tracks for {source.kind.name.lower()} "
            f"{source.source_id} across {max(total_pages, 1)} page(s)"
        )
        return tracks

    async def _fetch(self, source: Selection, page_number: int, page_size: int) -> Page:
        try:
            return await self._api.get_page(source, page_number, page_size)
        except Exception as e:
            raise CatalogLoadError(source, page_number) from e
