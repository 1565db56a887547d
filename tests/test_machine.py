"""Tests for PlaybackMachine state transitions and the coin ledger."""

import pytest

from jukebox.player.machine import PlaybackMachine
from jukebox.player.models import (
    NO_SELECTION,
    CoinLedger,
    Direction,
    Selection,
    ViewMode,
)
from tests.conftest import make_track
from tests.mocks.mock_store import MockLedgerStore


def load(machine, tracks, artist_id=1):
    machine.select_queue(tracks, Selection.artist(artist_id))


class TestInitialState:
    """Tests for construction and rehydration."""

    def test_starts_with_default_coins(self, machine):
        """A fresh store yields the default balance and an empty queue."""
        assert machine.ledger.balance == 5
        assert machine.ledger.total_plays == 0
        assert machine.state.queue == ()
        assert machine.current_track is None
        assert machine.state.view_mode == ViewMode.DISC

    def test_rehydrates_persisted_ledger(self):
        """Balance and play count come back from the store."""
        machine = PlaybackMachine(MockLedgerStore(balance=2, total_plays=40))
        assert machine.ledger.balance == 2
        assert machine.ledger.total_plays == 40

    def test_ledger_rejects_negative_balance(self):
        """A negative balance cannot be represented."""
        with pytest.raises(ValueError):
            CoinLedger(balance=-1)


class TestPlay:
    """Tests for coin-gated play."""

    def test_play_debits_one_coin(self, machine, store, sample_tracks):
        """A successful play spends a coin and counts a play."""
        load(machine, sample_tracks)
        assert machine.play(sample_tracks[1], 1)

        assert machine.current_track == sample_tracks[1]
        assert machine.state.is_playing
        assert machine.ledger.balance == 4
        assert machine.ledger.total_plays == 1
        assert store.saved == (4, 1)

    def test_play_at_zero_balance_is_rejected(self, sample_tracks):
        """Starved plays change nothing except the starvation signal."""
        machine = PlaybackMachine(MockLedgerStore(balance=0))
        load(machine, sample_tracks)
        before = machine.state

        assert not machine.play(sample_tracks[0], 0)

        assert machine.state == before
        assert machine.ledger.balance == 0
        assert machine.ledger.total_plays == 0
        assert machine.ledger.starvation_signal == 1

    def test_each_starved_attempt_bumps_signal_once(self, sample_tracks):
        """The starvation signal counts every rejected spend."""
        machine = PlaybackMachine(MockLedgerStore(balance=0))
        load(machine, sample_tracks)

        machine.play(sample_tracks[0], 0)
        machine.advance(Direction.NEXT)
        machine.advance(Direction.PREVIOUS)

        assert machine.ledger.starvation_signal == 3

    def test_double_play_race_spends_only_once(self, sample_tracks):
        """With one coin left, only the first of two rapid plays succeeds."""
        machine = PlaybackMachine(MockLedgerStore(balance=1))
        load(machine, sample_tracks)

        first = machine.play(sample_tracks[0], 0)
        second = machine.play(sample_tracks[1], 1)

        assert first and not second
        assert machine.ledger.balance == 0
        assert machine.ledger.starvation_signal == 1
        assert machine.current_track == sample_tracks[0]

    def test_play_outside_queue_raises(self, machine, sample_tracks):
        """Indices outside the queue are programming errors."""
        load(machine, sample_tracks)
        with pytest.raises(IndexError):
            machine.play(sample_tracks[0], 3)

    def test_play_mismatched_track_raises(self, machine, sample_tracks):
        """The track must be the one queued at the index."""
        load(machine, sample_tracks)
        with pytest.raises(ValueError):
            machine.play(sample_tracks[0], 1)
        assert machine.ledger.balance == 5

    def test_play_ignored_while_generating(self, machine, sample_tracks):
        """Track selection is disabled while a playlist generates."""
        machine.begin_generation()
        machine.append_tracks(sample_tracks)

        assert not machine.play(sample_tracks[0], 0)
        assert machine.ledger.balance == 5
        assert machine.ledger.starvation_signal == 0

    def test_balance_never_negative(self, sample_tracks):
        """Repeated spending stops at zero."""
        machine = PlaybackMachine(MockLedgerStore(balance=2))
        load(machine, sample_tracks)

        results = [machine.advance(Direction.NEXT) for _ in range(5)]

        assert results == [True, True, False, False, False]
        assert machine.ledger.balance == 0
        assert machine.ledger.total_plays == 2


class TestAdvance:
    """Tests for next/previous with wraparound."""

    def test_advance_on_empty_queue_is_noop(self, machine):
        """Nothing happens without a queue, not even starvation."""
        events = []
        machine.subscribe(events.append)

        assert not machine.advance(Direction.NEXT)
        assert events == []
        assert machine.ledger.balance == 5

    def test_next_wraps_to_first(self, machine, sample_tracks):
        """Next on the last index wraps to index 0 and costs a coin."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[2], 2)

        assert machine.advance(Direction.NEXT)
        assert machine.state.current_index == 0
        assert machine.ledger.balance == 3

    def test_previous_wraps_to_last(self, machine, sample_tracks):
        """Previous on index 0 wraps to the last index."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[0], 0)

        assert machine.advance(Direction.PREVIOUS)
        assert machine.state.current_index == 2
        assert machine.ledger.balance == 3

    def test_advance_without_position(self, machine, sample_tracks):
        """With nothing playing, next starts at the top and previous at the bottom."""
        load(machine, sample_tracks)
        machine.advance(Direction.NEXT)
        assert machine.state.current_index == 0

        load(machine, sample_tracks, artist_id=2)
        machine.advance(Direction.PREVIOUS)
        assert machine.state.current_index == 2

    def test_advance_single_track_replays_it(self, machine):
        """A one-track queue wraps onto itself."""
        track = make_track(9)
        load(machine, [track])
        machine.play(track, 0)

        assert machine.advance(Direction.NEXT)
        assert machine.state.current_index == 0
        assert machine.ledger.balance == 3


class TestFreeControls:
    """Tests for operations that never touch the ledger."""

    def test_toggle_play_is_free(self, machine, sample_tracks):
        """Pausing and resuming costs nothing."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[0], 0)

        machine.toggle_play()
        assert not machine.state.is_playing
        machine.toggle_play()
        assert machine.state.is_playing
        assert machine.ledger.balance == 4

    def test_toggle_play_without_track_is_noop(self, machine, sample_tracks):
        """There is nothing to resume before a track is chosen."""
        load(machine, sample_tracks)
        machine.toggle_play()
        assert not machine.state.is_playing

    def test_view_mode_and_mute(self, machine):
        """View mode and mute are plain flags."""
        machine.set_view_mode(ViewMode.VIDEO)
        machine.set_muted(True)
        assert machine.state.view_mode == ViewMode.VIDEO
        assert machine.state.muted

    def test_insert_coin_changes_nothing(self, machine):
        """Inserting a coin is a prompt, not a credit."""
        events = []
        machine.subscribe(events.append)

        machine.insert_coin()

        assert machine.ledger.balance == 5
        assert [e.action for e in events] == ["insert_coin"]
        assert not events[0].debited


class TestQueue:
    """Tests for queue replacement and generation."""

    def test_select_queue_resets_position(self, machine, sample_tracks):
        """Loading a new catalog stops playback and clears the position."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[0], 0)

        machine.select_queue(sample_tracks[:2], Selection.playlist(7))

        assert machine.state.current_index is None
        assert not machine.state.is_playing
        assert machine.state.selection.playlist_id == 7
        assert machine.state.selection.artist_id is None

    def test_generation_clears_and_appends(self, machine, sample_tracks):
        """Generation empties the queue, then grows it batch by batch."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[0], 0)

        machine.begin_generation()
        assert machine.state.queue == ()
        assert not machine.state.is_playing
        assert machine.state.generation_in_progress

        machine.append_tracks(sample_tracks[:2])
        machine.append_tracks(sample_tracks[2:])
        machine.end_generation()

        assert machine.state.queue == tuple(sample_tracks)
        assert machine.state.current_index is None
        assert not machine.state.generation_in_progress

    def test_select_queue_refused_while_generating(self, machine, sample_tracks):
        """A loaded catalog cannot replace a queue that a generation is filling."""
        machine.begin_generation()
        machine.append_tracks(sample_tracks[:1])

        assert not machine.select_queue(sample_tracks, Selection.artist(4))

        assert machine.state.queue == tuple(sample_tracks[:1])
        assert machine.state.selection == NO_SELECTION
        assert machine.state.generation_in_progress


class TestLedger:
    """Tests for credits, sync and persistence."""

    def test_add_coins(self, machine, store):
        """Credits raise the balance and are persisted."""
        machine.add_coins(6)
        assert machine.ledger.balance == 11
        assert store.saved == (11, 0)

    def test_add_coins_rejects_non_positive(self, machine):
        """Only positive credits are accepted."""
        with pytest.raises(ValueError):
            machine.add_coins(0)

    def test_sync_profile_overwrites_ledger(self, machine):
        """Backend values replace the local ledger."""
        machine.sync_profile(12, 30)
        assert machine.ledger.balance == 12
        assert machine.ledger.total_plays == 30

    def test_persist_failure_keeps_transition(self, sample_tracks):
        """A failed save is logged and the in-memory ledger still moves."""
        store = MockLedgerStore(balance=3)
        store.fail_saves = True
        machine = PlaybackMachine(store)
        load(machine, sample_tracks)

        assert machine.play(sample_tracks[0], 0)
        assert machine.ledger.balance == 2

    def test_reset_restores_defaults(self, machine, store, sample_tracks):
        """Logout clears state and forgets the persisted ledger."""
        load(machine, sample_tracks)
        machine.play(sample_tracks[0], 0)

        machine.reset()

        assert store.cleared
        assert machine.ledger == CoinLedger(balance=5)
        assert machine.state.queue == ()


class TestListeners:
    """Tests for transition notification."""

    def test_listener_sees_before_and_after(self, machine, sample_tracks):
        """Each transition carries snapshots from both sides."""
        load(machine, sample_tracks)
        events = []
        machine.subscribe(events.append)

        machine.play(sample_tracks[1], 1)

        transition = events[0]
        assert transition.action == "play"
        assert transition.before.current_index is None
        assert transition.after.current_index == 1
        assert transition.debited
        assert transition.track_changed

    def test_failing_listener_does_not_block_others(self, machine):
        """Listener exceptions are isolated."""
        received = []

        def broken(transition):
            raise RuntimeError("boom")

        machine.subscribe(broken)
        machine.subscribe(received.append)
        machine.set_muted(True)

        assert len(received) == 1

    def test_unsubscribe(self, machine):
        """Unsubscribed listeners are not called again."""
        received = []
        unsubscribe = machine.subscribe(received.append)
        unsubscribe()
        machine.set_muted(True)
        assert received == []
