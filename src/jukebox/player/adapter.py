"""Adapter between the PlaybackMachine and the external video player."""

import asyncio
import logging
from enum import Enum, auto
from typing import Callable, TypeVar

from jukebox.player.machine import PLAY_ACTIONS, PlaybackMachine
from jukebox.player.models import Direction, PlayerEvent, Transition
from jukebox.player.protocols import PlayerHandle, PlayerRuntime
from jukebox.track import Track

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdapterPhase(Enum):
    """Lifecycle of the external player."""

    UNINITIALIZED = auto()  # Runtime not requested yet
    SCRIPT_LOADING = auto()  # Waiting for the runtime to become ready
    READY = auto()  # Runtime loaded, no player created yet
    BOUND = auto()  # Player created and associated with a track
    UNAVAILABLE = auto()  # Runtime failed to load, all commands are no-ops


class PlayerScriptLoader:
    """Loads the player runtime at most once per session.

    Concurrent callers share the same in-flight load, and the outcome
    (ready or failed) is remembered for the lifetime of the loader.
    """

    def __init__(self, runtime: PlayerRuntime) -> None:
        self.runtime = runtime
        self._load: asyncio.Future[None] | None = None

    @property
    def is_ready(self) -> bool:
        return (
            self._load is not None
            and self._load.done()
            and not self._load.cancelled()
            and self._load.exception() is None
        )

    def load(self) -> "asyncio.Future[None]":
        """Start loading if needed and return the shared load future."""
        if self._load is None:
            logger.info("Loading external player runtime")
            self._load = asyncio.ensure_future(self.runtime.load_script())
        return self._load

    async def wait_ready(self) -> None:
        """Wait for the runtime. Cancelling the caller leaves the load running."""
        await asyncio.shield(self.load())

    def close(self) -> None:
        if self._load is not None and not self._load.done():
            self._load.cancel()


class ExternalPlayerAdapter:
    """Drives the external player from PlaybackMachine transitions.

    The underlying player is created on the first bind only; later tracks are
    loaded into the same instance. Every runtime call is guarded so that a
    misbehaving player never raises into the state machine.
    """

    def __init__(self, machine: PlaybackMachine, loader: PlayerScriptLoader) -> None:
        self._machine = machine
        self._loader = loader
        self._phase = AdapterPhase.UNINITIALIZED
        self._handle: PlayerHandle | None = None
        self._bound_track: Track | None = None
        # Incremented per load/cue, so each track reports "ended" at most once
        self._bind_token = 0
        self._ended_token: int | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def phase(self) -> AdapterPhase:
        return self._phase

    @property
    def bound_track(self) -> Track | None:
        return self._bound_track

    async def start(self) -> None:
        """Subscribe to the machine and wait for the runtime to load."""
        if self._phase != AdapterPhase.UNINITIALIZED:
            return

        self._phase = AdapterPhase.SCRIPT_LOADING
        self._unsubscribe = self._machine.subscribe(self._on_transition)
        try:
            await self._loader.wait_ready()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"External player failed to load, video disabled: {e}")
            self._phase = AdapterPhase.UNAVAILABLE
            return

        if self._phase != AdapterPhase.SCRIPT_LOADING:
            # Closed while loading
            return

        self._phase = AdapterPhase.READY
        logger.info("External player ready")

        state = self._machine.state
        if state.current_track is not None:
            self._bind(state.current_track, state.is_playing)

    def close(self) -> None:
        """Destroy the bound player and stop listening to the machine."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._handle is not None:
            handle = self._handle
            self._guard("destroy", handle.destroy)
            self._handle = None

        self._bound_track = None
        self._phase = AdapterPhase.UNINITIALIZED

    # Imperative controls, all free of charge

    def seek(self, delta_seconds: float) -> bool:
        """Seek relative to the current position, clamped at the start."""
        handle = self._handle
        if handle is None:
            return False
        current = self._guard("current_time", handle.current_time) or 0.0
        target = max(0.0, current + delta_seconds)
        try:
            handle.seek_to(target)
        except Exception as e:
            logger.warning(f"Player command seek failed: {e}")
            return False
        return True

    def mute(self) -> None:
        if self._handle is not None:
            self._guard("mute", self._handle.mute)

    def unmute(self) -> None:
        if self._handle is not None:
            self._guard("unmute", self._handle.unmute)

    # Machine and player events

    def _on_transition(self, transition: Transition) -> None:
        if self._phase not in (AdapterPhase.READY, AdapterPhase.BOUND):
            return

        before, after = transition.before, transition.after
        track = after.current_track
        restarted = transition.action in PLAY_ACTIONS and transition.debited

        if track is not None and (transition.track_changed or restarted):
            self._bind(track, after.is_playing)
        elif (
            before.is_playing != after.is_playing
            and self._handle is not None
            and self._bound_track is not None
        ):
            if after.is_playing:
                self._guard("play", self._handle.play)
            else:
                self._guard("pause", self._handle.pause)

        if before.muted != after.muted:
            if after.muted:
                self.mute()
            else:
                self.unmute()

    def _bind(self, track: Track, autoplay: bool) -> None:
        reference_id = track.player_ref
        if not reference_id:
            logger.warning(f"Track {track.track_id} has no player reference, video unavailable")
            if self._handle is not None:
                self._guard("pause", self._handle.pause)
            if self._phase == AdapterPhase.BOUND:
                # The paused player still holds the previous track
                self._bound_track = None
                self._phase = AdapterPhase.READY
            return

        self._bind_token += 1
        if self._handle is None:
            handle = self._guard(
                "create",
                lambda: self._loader.runtime.create(
                    reference_id, autoplay, self._on_player_event
                ),
            )
            if handle is None:
                return
            self._handle = handle
            if self._machine.state.muted:
                self.mute()
        else:
            handle = self._handle
            if autoplay:
                self._guard("load", lambda: handle.load(reference_id))
            else:
                self._guard("cue", lambda: handle.cue(reference_id))

        self._bound_track = track
        self._phase = AdapterPhase.BOUND
        logger.debug(f"Bound player to track {track.track_id} (autoplay={autoplay})")

    def _on_player_event(self, event: PlayerEvent) -> None:
        if event != PlayerEvent.ENDED or self._phase != AdapterPhase.BOUND:
            return
        if self._ended_token == self._bind_token:
            logger.debug("Ignoring repeated end-of-track event")
            return
        self._ended_token = self._bind_token

        state = self._machine.state
        if state.has_next and self._machine.ledger.balance > 0:
            self._machine.advance(Direction.NEXT)
        else:
            self._machine.set_playing(False)

    def _guard(self, command: str, call: Callable[[], T]) -> T | None:
        try:
            return call()
        except Exception as e:
            logger.warning(f"Player command {command} failed: {e}")
            return None
