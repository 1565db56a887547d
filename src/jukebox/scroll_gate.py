"""Visibility-triggered pagination for long lists."""

import asyncio
import logging
from typing import Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InfiniteScrollGate:
    """Reveals a list one page at a time as its end comes into view.

    When the sentinel (usually the last visible row) becomes visible and more
    items remain, the display count grows by one page after a short delay.
    Only one load can be pending at a time, so rapid visibility changes never
    stack increments. The display count never decreases.
    """

    def __init__(
        self, items_per_page: int = 30, total_items: int = 0, delay: float = 0.3
    ) -> None:
        if items_per_page <= 0:
            raise ValueError(f"Items per page must be positive: {items_per_page}")
        self._items_per_page = items_per_page
        self._total_items = total_items
        self._delay = delay
        self._display_count = items_per_page
        self._pending: asyncio.Task[None] | None = None

    @property
    def display_count(self) -> int:
        return self._display_count

    @property
    def total_items(self) -> int:
        return self._total_items

    @property
    def loading_more(self) -> bool:
        return self._pending is not None

    @property
    def has_more(self) -> bool:
        return self._display_count < self._total_items

    def update_total(self, total_items: int) -> None:
        self._total_items = total_items

    def visible(self, items: Sequence[T]) -> Sequence[T]:
        """Slice `items` down to what should currently be displayed."""
        return items[: self._display_count]

    def on_sentinel_visibility(self, is_visible: bool) -> asyncio.Task[None] | None:
        """Report the sentinel's visibility.

        Returns:
            The scheduled load, or None if nothing was scheduled.
        """
        if not is_visible or self._pending is not None or not self.has_more:
            return None

        self._pending = asyncio.get_running_loop().create_task(self._load_more())
        return self._pending

    async def _load_more(self) -> None:
        try:
            await asyncio.sleep(self._delay)
            self._display_count += self._items_per_page
            logger.debug(f"Showing {self._display_count} of {self._total_items} items")
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

    def close(self) -> None:
        """Cancel any pending load."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
