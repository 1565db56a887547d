"""Protocol definitions for dependency injection into the playback engine."""

from typing import Callable, Protocol

from jukebox.config import constants
from jukebox.player.models import (
    GeneratedPlaylist,
    GenerationRequest,
    Page,
    PlayerEvent,
    Selection,
)
from jukebox.track import Artist


class CatalogApi(Protocol):
    """Protocol for paginated song listings."""

    async def get_page(
        self, source: Selection, page_number: int, page_size: int
    ) -> Page:
        """Fetch one page of songs for an artist or playlist.

        Args:
            source: The artist or playlist to list.
            page_number: 1-based page number.
            page_size: Maximum number of items per page.

        Returns:
            The page items in server order, and the total item count.
        """
        ...


class ArtistApi(Protocol):
    """Protocol for looking up generation seed artists."""

    async def get_artist(self, artist_id: int) -> Artist:
        ...

    async def search_artists(
        self, name: str | None = None, page_size: int = constants.ARTIST_PAGE_SIZE
    ) -> list[Artist]:
        """List artists whose name matches `name`, or the first page of all artists."""
        ...


class GenerationApi(Protocol):
    """Protocol for server-side playlist generation."""

    async def generate(self, request: GenerationRequest) -> GeneratedPlaylist:
        """Create a playlist from seed artists in a single request/response."""
        ...


class LedgerApi(Protocol):
    """Protocol for mirroring the coin ledger to the backend.

    Both calls are accept-and-forget: callers never inspect the result.
    """

    async def record_spend(self, amount: int) -> None:
        ...

    async def record_play(self, track_id: int) -> None:
        ...


class LedgerStore(Protocol):
    """Protocol for durable local persistence of the ledger.

    All methods are synchronous so a ledger transition and its persistence
    happen without yielding to the event loop.
    """

    def load_ledger(self, default_coins: int) -> tuple[int, int]:
        """Return the persisted (balance, total plays), or defaults if absent."""
        ...

    def save_ledger(self, balance: int, total_plays: int) -> None:
        ...

    def clear_ledger(self) -> None:
        ...


class PlayerHandle(Protocol):
    """A created external player instance.

    Every method may raise; the adapter guards all calls.
    """

    def load(self, reference_id: str) -> None:
        """Load media and start playing it."""
        ...

    def cue(self, reference_id: str) -> None:
        """Load media without starting playback."""
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def seek_to(self, seconds: float) -> None:
        ...

    def current_time(self) -> float | None:
        ...

    def mute(self) -> None:
        ...

    def unmute(self) -> None:
        ...

    def destroy(self) -> None:
        ...


class PlayerRuntime(Protocol):
    """Protocol for the third-party player runtime.

    The runtime must be loaded before any player can be created. Loading is
    asynchronous and its readiness is outside the engine's control.
    """

    async def load_script(self) -> None:
        """Load the runtime, completing once it is ready to create players."""
        ...

    def create(
        self,
        reference_id: str,
        autoplay: bool,
        on_state_change: Callable[[PlayerEvent], None],
    ) -> PlayerHandle:
        """Create a player bound to the given media.

        Args:
            reference_id: External media reference of the first track.
            autoplay: Start playback as soon as the media is loaded.
            on_state_change: Called on the event loop for every player event.
        """
        ...
