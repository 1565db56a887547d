"""VLC-backed implementation of the external player runtime."""

import asyncio
import importlib
import logging
from typing import Any, Callable

from jukebox.player.models import PlayerEvent

logger = logging.getLogger(__name__)


class VlcRuntime:
    """PlayerRuntime built on python-vlc.

    Loading the runtime imports the `vlc` module off the event loop, since
    importing it probes for the native libvlc library.
    """

    def __init__(self, media_url_template: str) -> None:
        self._media_url_template = media_url_template
        self._vlc: Any | None = None

    async def load_script(self) -> None:
        if self._vlc is not None:
            return
        try:
            self._vlc = await asyncio.to_thread(importlib.import_module, "vlc")
        except Exception as e:
            raise RuntimeError(
                "VLC backend is unavailable. Install VLC and the python-vlc package."
            ) from e

    def create(
        self,
        reference_id: str,
        autoplay: bool,
        on_state_change: Callable[[PlayerEvent], None],
    ) -> "VlcPlayerHandle":
        if self._vlc is None:
            raise RuntimeError("VLC runtime has not been loaded")

        handle = VlcPlayerHandle(
            self._vlc,
            self._media_url_template,
            on_state_change,
            asyncio.get_running_loop(),
        )
        if autoplay:
            handle.load(reference_id)
        else:
            handle.cue(reference_id)
        return handle


class VlcPlayerHandle:
    """Thin wrapper around python-vlc's MediaPlayer."""

    def __init__(
        self,
        vlc: Any,
        media_url_template: str,
        on_state_change: Callable[[PlayerEvent], None],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._vlc = vlc
        self._media_url_template = media_url_template
        self._on_state_change = on_state_change
        self._loop = loop
        self._instance = vlc.Instance()
        self._player = self._instance.media_player_new()
        self._events = self._player.event_manager()
        self._events.event_attach(
            vlc.EventType.MediaPlayerEndReached, self._handle_end_reached
        )

    def _handle_end_reached(self, event: object) -> None:
        # libvlc calls this from its own thread
        del event
        self._loop.call_soon_threadsafe(self._on_state_change, PlayerEvent.ENDED)

    def _set_media(self, reference_id: str) -> None:
        url = self._media_url_template.format(reference_id=reference_id)
        media = self._instance.media_new(url)
        self._player.set_media(media)

    def load(self, reference_id: str) -> None:
        self._set_media(reference_id)
        self._player.play()

    def cue(self, reference_id: str) -> None:
        self._set_media(reference_id)

    def play(self) -> None:
        self._player.play()

    def pause(self) -> None:
        self._player.set_pause(1)

    def seek_to(self, seconds: float) -> None:
        self._player.set_time(int(seconds * 1000))

    def current_time(self) -> float | None:
        position = self._player.get_time()
        if position is None or position < 0:
            return None
        return position / 1000

    def mute(self) -> None:
        self._player.audio_set_mute(True)

    def unmute(self) -> None:
        self._player.audio_set_mute(False)

    def destroy(self) -> None:
        try:
            self._events.event_detach(self._vlc.EventType.MediaPlayerEndReached)
        finally:
            self._player.stop()
            self._player.release()
            self._instance.release()
