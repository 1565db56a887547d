"""JukeboxSession: owns every component of one playback session."""

import asyncio
import logging
from typing import Protocol

from jukebox.artist_search import ArtistSearch
from jukebox.catalog import CatalogLoader, CatalogLoadError
from jukebox.config import constants
from jukebox.config.settings import JukeboxSettings
from jukebox.generation import GenerationOrchestrator
from jukebox.player.adapter import ExternalPlayerAdapter, PlayerScriptLoader
from jukebox.player.machine import PlaybackMachine
from jukebox.player.models import (
    Direction,
    GeneratedPlaylist,
    Profile,
    Selection,
    Transition,
    ViewMode,
)
from jukebox.player.protocols import (
    ArtistApi,
    CatalogApi,
    GenerationApi,
    LedgerApi,
    LedgerStore,
    PlayerRuntime,
)
from jukebox.player.sync import BackendSync
from jukebox.scroll_gate import InfiniteScrollGate
from jukebox.track import Artist, Playlist

logger = logging.getLogger(__name__)


class BackendApi(ArtistApi, CatalogApi, GenerationApi, LedgerApi, Protocol):
    """Everything a session needs from the backend."""

    async def get_profile(self) -> Profile:
        ...

    async def get_my_playlists(self) -> list[Playlist]:
        ...


class JukeboxSession:
    """Wires the state machine to the backend and the external player.

    One session exists per logged-in user. It is created at startup, started
    once, and closed on logout or exit; closing cancels every timer and
    destroys the player.
    """

    def __init__(
        self,
        settings: JukeboxSettings,
        api: BackendApi,
        runtime: PlayerRuntime,
        store: LedgerStore,
    ) -> None:
        self.settings = settings
        self.api = api
        self.machine = PlaybackMachine(store, settings.default_coins)
        self.sync = BackendSync(api)
        self.loader = PlayerScriptLoader(runtime)
        self.player = ExternalPlayerAdapter(self.machine, self.loader)
        self.catalog = CatalogLoader(api, settings.catalog_page_size)
        self.generator = GenerationOrchestrator(
            self.machine,
            api,
            target_count=settings.generation_target_count,
            batch_size=settings.generation_batch_size,
            progress_interval=settings.progress_interval,
            reveal_interval=settings.reveal_interval,
            on_created=self._add_generated_playlist,
        )
        self.artist_search = ArtistSearch(api, settings.search_delay)
        self.playlists: list[Playlist] = []
        self.song_gate = InfiniteScrollGate(settings.songs_per_page, 0, settings.scroll_delay)
        self.playlist_gate = InfiniteScrollGate(
            settings.playlists_per_page, 0, settings.scroll_delay
        )
        self.last_error: str | None = None
        self._closed = False
        # Bumped per selection so only the latest catalog load may commit
        self._select_token = 0
        self.machine.subscribe(self._track_queue_length)

    async def start(self) -> None:
        """Attach backend sync, load the player and fetch server-side data."""
        self.sync.attach(self.machine)
        await asyncio.gather(
            self.player.start(), self.refresh_profile(), self.refresh_playlists()
        )
        ledger = self.machine.ledger
        logger.info(
            f"Session started with {ledger.balance} coins, {ledger.total_plays} plays"
        )

    async def refresh_profile(self) -> None:
        """Replace the local ledger with the server's, if reachable."""
        try:
            profile = await self.api.get_profile()
        except Exception as e:
            logger.warning(f"Could not fetch profile, keeping local coins: {e}")
            return
        self.machine.sync_profile(profile.coins, profile.total_songs_played)

    async def refresh_playlists(self) -> None:
        try:
            self.playlists = await self.api.get_my_playlists()
        except Exception as e:
            logger.warning(f"Could not fetch playlists: {e}")
            return
        self.playlist_gate.update_total(len(self.playlists))

    # Catalog selection

    async def select_artist(self, artist_id: int) -> bool:
        return await self._select(Selection.artist(artist_id))

    async def select_playlist(self, playlist_id: int) -> bool:
        return await self._select(Selection.playlist(playlist_id))

    async def _select(self, selection: Selection) -> bool:
        """Load a whole catalog, make it the queue and auto-play its first track.

        Returns:
            True if the queue was replaced. Selecting the active source, or
            selecting while a playlist generates, does nothing. A load that
            finishes after a newer selection, a generation start or session
            close is discarded.
        """
        state = self.machine.state
        if self._closed or state.selection == selection or state.generation_in_progress:
            return False

        self._select_token += 1
        token = self._select_token
        try:
            tracks = await self.catalog.load_all(selection)
        except CatalogLoadError as e:
            if token != self._select_token or self._closed:
                return False
            logger.error(f"{e}: {e.__cause__}")
            self.last_error = str(e)
            return False

        if token != self._select_token or self._closed:
            logger.debug(f"Discarding stale catalog for {selection}")
            return False

        self.last_error = None
        if not self.machine.select_queue(tracks, selection):
            return False
        if tracks:
            self.machine.play(tracks[0], 0)
        return True

    # Artists

    async def browse_artists(self) -> list[Artist]:
        try:
            return await self.api.search_artists()
        except Exception as e:
            logger.warning(f"Could not list artists: {e}")
            return []

    async def search_artists(self, query: str) -> list[Artist]:
        """Search seed artists by name, leaving out those already chosen.

        Returns:
            The matches once the debounce delay has passed, or an empty list
            for queries that are too short.
        """
        pending = self.artist_search.update(
            query, exclude=self.generator.selected_artists
        )
        if pending is None:
            return []
        # A newer query cancels this one
        await asyncio.wait([pending])
        return [] if pending.cancelled() else pending.result()

    # Controls

    def play_index(self, index: int) -> bool:
        queue = self.machine.state.queue
        return self.machine.play(queue[index], index)

    def next(self) -> bool:
        return self.machine.advance(Direction.NEXT)

    def previous(self) -> bool:
        return self.machine.advance(Direction.PREVIOUS)

    def toggle_play(self) -> None:
        self.machine.toggle_play()

    def toggle_mute(self) -> None:
        self.machine.set_muted(not self.machine.state.muted)

    def show_video(self, video: bool) -> None:
        self.machine.set_view_mode(ViewMode.VIDEO if video else ViewMode.DISC)

    def seek(self, forward: bool = True) -> bool:
        step = self.settings.seek_step
        return self.player.seek(step if forward else -step)

    def insert_coin(self) -> None:
        self.machine.insert_coin()

    def award_quiz_coins(self, difficulty: str, correct_answers: int) -> int:
        """Credit the coins won in a quiz round.

        Returns:
            The number of coins credited.
        """
        per_answer = constants.COINS_PER_DIFFICULTY.get(difficulty, 0)
        won = max(0, correct_answers) * per_answer
        if won:
            self.machine.add_coins(won)
        return won

    # Lifecycle

    async def logout(self) -> None:
        """End the session and forget the locally persisted ledger."""
        if self._closed:
            return
        self._closed = True
        self.generator.close()
        self.machine.reset()
        await self._shutdown()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._shutdown()

    async def _shutdown(self) -> None:
        self.generator.close()
        self.song_gate.close()
        self.artist_search.close()
        self.playlist_gate.close()
        self.player.close()
        self.loader.close()
        await self.sync.aclose()
        logger.info("Session closed")

    def _add_generated_playlist(self, result: GeneratedPlaylist) -> None:
        playlist = Playlist(
            playlist_id=result.playlist_id,
            name=result.name,
            songs_count=len(result.songs),
            is_generated=True,
        )
        self.playlists.insert(0, playlist)
        self.playlist_gate.update_total(len(self.playlists))

    def _track_queue_length(self, transition: Transition) -> None:
        if transition.action in ("select_queue", "begin_generation", "reset"):
            # A new list starts again from its first page
            self.song_gate.close()
            self.song_gate = InfiniteScrollGate(
                self.settings.songs_per_page,
                len(transition.after.queue),
                self.settings.scroll_delay,
            )
        elif len(transition.before.queue) != len(transition.after.queue):
            self.song_gate.update_total(len(transition.after.queue))
