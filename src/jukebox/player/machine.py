"""PlaybackMachine: the single owner of playback state and the coin ledger."""

import dataclasses
import logging
from typing import Callable, Sequence

from jukebox.config import constants
from jukebox.player.models import (
    CoinLedger,
    Direction,
    PlaybackState,
    Selection,
    Transition,
    ViewMode,
)
from jukebox.player.protocols import LedgerStore
from jukebox.track import Track

logger = logging.getLogger(__name__)

# Transitions that spend a coin when they succeed
PLAY_ACTIONS = frozenset({"play", "next", "previous"})

Listener = Callable[[Transition], None]


class PlaybackMachine:
    """Authoritative in-memory state for a playback session.

    Every public method is synchronous and never yields to the event loop, so
    each transition is atomic with respect to every other one. Coin-gated
    operations check and debit the balance inside one method call: two rapid
    requests can never both pass the balance check.
    """

    def __init__(
        self, store: LedgerStore, default_coins: int = constants.DEFAULT_COINS
    ) -> None:
        self._store = store
        self._default_coins = default_coins
        self._state = PlaybackState()
        balance, total_plays = store.load_ledger(default_coins)
        self._ledger = CoinLedger(balance=balance, total_plays=total_plays)
        self._listeners: list[Listener] = []

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def ledger(self) -> CoinLedger:
        return self._ledger

    @property
    def current_track(self) -> Track | None:
        return self._state.current_track

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every committed transition.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Queue management

    def select_queue(self, tracks: Sequence[Track], selection: Selection) -> bool:
        """Replace the queue with a freshly loaded catalog and stop playback.

        Returns:
            False if a generation owns the queue, in which case nothing changes.
        """
        if self._state.generation_in_progress:
            logger.warning("Refusing to replace the queue while a playlist generates")
            return False
        self._commit(
            "select_queue",
            state=dataclasses.replace(
                self._state,
                queue=tuple(tracks),
                current_index=None,
                is_playing=False,
                selection=selection,
            ),
        )
        return True

    def append_tracks(self, tracks: Sequence[Track]) -> None:
        """Append generated tracks without touching the playback position."""
        if not self._state.generation_in_progress:
            logger.warning("Appending tracks while no generation is in progress")
        self._commit(
            "append_tracks",
            state=dataclasses.replace(
                self._state, queue=self._state.queue + tuple(tracks)
            ),
        )

    def set_selection(self, selection: Selection) -> None:
        """Mark a catalog source active without reloading the queue."""
        self._commit(
            "set_selection", state=dataclasses.replace(self._state, selection=selection)
        )

    def begin_generation(self) -> None:
        """Clear the queue and pause so a generation can fill it."""
        self._commit(
            "begin_generation",
            state=dataclasses.replace(
                self._state,
                queue=(),
                current_index=None,
                is_playing=False,
                generation_in_progress=True,
            ),
        )

    def end_generation(self) -> None:
        if not self._state.generation_in_progress:
            return
        self._commit(
            "end_generation",
            state=dataclasses.replace(self._state, generation_in_progress=False),
        )

    # Coin-gated playback

    def play(self, track: Track, index: int) -> bool:
        """Play the track at `index`, spending one coin.

        Returns:
            True if playback started, False if rejected. A rejection for lack
            of coins bumps the starvation signal and changes nothing else.

        Raises:
            IndexError: `index` is outside the queue.
            ValueError: `track` is not the track queued at `index`.
        """
        if self._state.generation_in_progress:
            logger.debug("Ignoring track selection while a playlist is generating")
            return False
        if not 0 <= index < len(self._state.queue):
            raise IndexError(f"Track index {index} outside queue of {len(self._state.queue)}")
        if self._state.queue[index] != track:
            raise ValueError(f"Track {track.track_id} is not queued at index {index}")
        return self._spend_and_move("play", index)

    def advance(self, direction: Direction) -> bool:
        """Move to the next or previous track with wraparound, spending one coin.

        Returns:
            True if the position changed, False for an empty queue or a
            rejection for lack of coins.
        """
        queue_len = len(self._state.queue)
        if queue_len == 0:
            return False

        current = self._state.current_index
        if direction == Direction.NEXT:
            # With nothing selected yet, "next" starts at the top of the queue
            new_index = 0 if current is None else (current + 1) % queue_len
            action = "next"
        else:
            new_index = queue_len - 1 if not current else current - 1
            action = "previous"
        return self._spend_and_move(action, new_index)

    def _spend_and_move(self, action: str, index: int) -> bool:
        ledger = self._ledger
        if ledger.balance < constants.COIN_COST_PER_PLAY:
            logger.debug(f"Rejected {action}: no coins left")
            self._commit(
                "starved",
                ledger=dataclasses.replace(
                    ledger, starvation_signal=ledger.starvation_signal + 1
                ),
            )
            return False

        self._commit(
            action,
            state=dataclasses.replace(self._state, current_index=index, is_playing=True),
            ledger=dataclasses.replace(
                ledger,
                balance=ledger.balance - constants.COIN_COST_PER_PLAY,
                total_plays=ledger.total_plays + 1,
            ),
        )
        return True

    # Free controls

    def toggle_play(self) -> None:
        if self._state.current_track is None:
            return
        self.set_playing(not self._state.is_playing)

    def set_playing(self, playing: bool) -> None:
        if self._state.current_track is None or self._state.is_playing == playing:
            return
        self._commit(
            "set_playing", state=dataclasses.replace(self._state, is_playing=playing)
        )

    def set_view_mode(self, mode: ViewMode) -> None:
        if self._state.view_mode == mode:
            return
        self._commit("set_view_mode", state=dataclasses.replace(self._state, view_mode=mode))

    def set_muted(self, muted: bool) -> None:
        if self._state.muted == muted:
            return
        self._commit("set_muted", state=dataclasses.replace(self._state, muted=muted))

    def insert_coin(self) -> None:
        """Signal the "insert coin" gesture.

        This is a prompt to go earn coins, not an economic operation: the
        balance is untouched.
        """
        self._commit("insert_coin")

    # Ledger

    def add_coins(self, amount: int) -> None:
        """Credit coins, e.g. quiz rewards. Persisted immediately."""
        if amount <= 0:
            raise ValueError(f"Coin credit must be positive: {amount}")
        self._commit(
            "add_coins",
            ledger=dataclasses.replace(self._ledger, balance=self._ledger.balance + amount),
        )

    def sync_profile(self, balance: int, total_plays: int) -> None:
        """Overwrite the ledger with authoritative values from the backend."""
        self._commit(
            "sync_profile",
            ledger=dataclasses.replace(
                self._ledger, balance=max(0, balance), total_plays=max(0, total_plays)
            ),
        )

    def reset(self) -> None:
        """Return to the initial state and forget the persisted ledger (logout)."""
        self._store.clear_ledger()
        before, ledger_before = self._state, self._ledger
        self._state = PlaybackState()
        self._ledger = CoinLedger(balance=self._default_coins)
        self._notify(Transition("reset", before, self._state, ledger_before, self._ledger))

    def _commit(
        self,
        action: str,
        state: PlaybackState | None = None,
        ledger: CoinLedger | None = None,
    ) -> None:
        before, ledger_before = self._state, self._ledger
        if state is not None:
            self._state = state
        if ledger is not None:
            self._ledger = ledger
            if (ledger.balance, ledger.total_plays) != (
                ledger_before.balance,
                ledger_before.total_plays,
            ):
                try:
                    self._store.save_ledger(ledger.balance, ledger.total_plays)
                except OSError:
                    logger.exception("Failed to persist coin ledger")

        self._notify(Transition(action, before, self._state, ledger_before, self._ledger))

    def _notify(self, transition: Transition) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception:
                logger.exception(f"Listener failed while handling {transition.action}")
