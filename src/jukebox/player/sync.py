"""Best-effort mirroring of ledger transitions to the backend."""

import asyncio
import logging
from typing import Awaitable, Callable

from jukebox.config import constants
from jukebox.player.machine import PLAY_ACTIONS, PlaybackMachine
from jukebox.player.models import Transition
from jukebox.player.protocols import LedgerApi

logger = logging.getLogger(__name__)


class BackendSync:
    """Observes the PlaybackMachine and reports every coin spend.

    For each transition that debits the ledger, two independent calls are
    fired: one recording the spend and one recording the play. They never
    block the transition, are never retried and never roll back local state.
    """

    def __init__(self, api: LedgerApi) -> None:
        self._api = api
        self._pending: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def pending(self) -> int:
        """Number of sync calls still in flight."""
        return len(self._pending)

    def attach(self, machine: PlaybackMachine) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = machine.subscribe(self.on_transition)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_transition(self, transition: Transition) -> None:
        if transition.action not in PLAY_ACTIONS or not transition.debited:
            return

        self._fire(
            "coin spend",
            lambda: self._api.record_spend(constants.COIN_COST_PER_PLAY),
        )
        track = transition.after.current_track
        if track is not None:
            self._fire("track play", lambda: self._api.record_play(track.track_id))

    def _fire(self, what: str, call: Callable[[], Awaitable[None]]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No event loop running, dropping {what} sync")
            return

        task = loop.create_task(self._guarded(what, call))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _guarded(self, what: str, call: Callable[[], Awaitable[None]]) -> None:
        try:
            await call()
        except Exception as e:
            logger.warning(f"Failed to record {what}: {e}")

    async def aclose(self) -> None:
        """Detach and let in-flight calls finish."""
        self.detach()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
