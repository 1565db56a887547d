"""Shared test fixtures and utilities."""

import logging
from pathlib import Path

import pytest

from jukebox.config.settings import JukeboxSettings
from jukebox.player.machine import PlaybackMachine
from jukebox.track import Artist, Track
from tests.mocks.mock_backend import MockBackend
from tests.mocks.mock_player import MockPlayerRuntime
from tests.mocks.mock_store import MockLedgerStore


@pytest.fixture
def settings(tmp_path: Path) -> JukeboxSettings:
    """JukeboxSettings with fast timing for tests."""
    return JukeboxSettings(
        api_base_url="https://jukebox.test/api",
        api_token="fake_token",
        request_timeout=1.0,
        data_dir=tmp_path,
        state_dir=tmp_path / "state",
        state_file=tmp_path / "state" / "jukebox_state.json",
        default_coins=5,
        catalog_page_size=100,
        generation_target_count=30,
        generation_batch_size=3,
        progress_interval=0,  # No waiting between progress ticks
        reveal_interval=0,  # Reveal batches back to back
        scroll_delay=0,
        songs_per_page=30,
        playlists_per_page=20,
        search_delay=0,
        seek_step=10,
        media_url_template="https://www.youtube.com/watch?v={reference_id}",
        log_level=logging.INFO,
    )


@pytest.fixture
def store() -> MockLedgerStore:
    """Fresh, empty MockLedgerStore."""
    return MockLedgerStore()


@pytest.fixture
def machine(store) -> PlaybackMachine:
    """PlaybackMachine starting with the default 5 coins."""
    return PlaybackMachine(store, default_coins=5)


@pytest.fixture
def mock_backend() -> MockBackend:
    """Fresh MockBackend instance."""
    return MockBackend()


@pytest.fixture
def mock_runtime() -> MockPlayerRuntime:
    """MockPlayerRuntime that loads immediately."""
    return MockPlayerRuntime()


def make_track(
    track_id: int,
    title: str | None = None,
    duration: int = 180,
    player_ref: str | None = "",
    order: int | None = None,
) -> Track:
    """Helper to create test Track instances.

    Tracks get a player reference derived from their id unless one is given;
    pass None for a track that cannot be played as video.
    """
    return Track(
        track_id=track_id,
        title=title or f"Song {track_id}",
        duration=duration,
        player_ref=f"yt{track_id}" if player_ref == "" else player_ref,
        artist_name="Test Artist",
        order=order,
    )


def make_artist(artist_id: int, genre: str | None = "Rock") -> Artist:
    """Helper to create test Artist instances."""
    return Artist(artist_id=artist_id, name=f"Artist {artist_id}", genre=genre)


@pytest.fixture
def sample_tracks() -> list[Track]:
    """Sample track list for testing."""
    return [
        make_track(1, "Intro", duration=120),
        make_track(2, "Middle", duration=200),
        make_track(3, "Outro", duration=95),
    ]
