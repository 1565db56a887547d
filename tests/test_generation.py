"""Tests for the playlist generation wizard."""

import asyncio

import pytest

from jukebox.config import constants
from jukebox.generation import (
    GenerationJob,
    GenerationMode,
    GenerationOrchestrator,
    JobStatus,
    WizardStep,
)
from jukebox.player.models import GeneratedPlaylist, GenerationRequest, Selection
from tests.conftest import make_artist, make_track


def make_orchestrator(machine, mock_backend, **kwargs):
    options = {"progress_interval": 0, "reveal_interval": 0, "batch_size": 3}
    options.update(kwargs)
    return GenerationOrchestrator(machine, mock_backend, **options)


def generated(count, playlist_id=77):
    # Server returns songs out of order; the order field decides
    songs = tuple(make_track(i, order=count - i) for i in range(1, count + 1))
    return GeneratedPlaylist(playlist_id=playlist_id, name="Mix", songs=songs)


def prepare(orchestrator, *artists):
    orchestrator.open()
    if len(artists) > 1:
        orchestrator.choose_mode(GenerationMode.MULTIPLE)
    for artist in artists:
        orchestrator.select_artist(artist)


class TestWizard:
    """Tests for collecting the name and seed artists."""

    def test_individual_mode_allows_one_artist(self, machine, mock_backend):
        """Individual playlists take exactly one seed artist."""
        orchestrator = make_orchestrator(machine, mock_backend)
        orchestrator.open()

        assert orchestrator.select_artist(make_artist(1))
        assert not orchestrator.select_artist(make_artist(2))
        assert orchestrator.step == WizardStep.AWAITING_ARTISTS

    def test_multiple_mode_allows_five(self, machine, mock_backend):
        """Multiple-artist playlists take up to five, without duplicates."""
        orchestrator = make_orchestrator(machine, mock_backend)
        orchestrator.open()
        orchestrator.choose_mode(GenerationMode.MULTIPLE)

        added = [orchestrator.select_artist(make_artist(i)) for i in range(1, 7)]

        assert added == [True] * 5 + [False]
        orchestrator.remove_artist(5)
        assert not orchestrator.select_artist(make_artist(1))
        assert len(orchestrator.selected_artists) == 4

    def test_switching_mode_truncates_selection(self, machine, mock_backend):
        """Going back to individual mode keeps only the first artist."""
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1), make_artist(2), make_artist(3))

        orchestrator.choose_mode(GenerationMode.INDIVIDUAL)

        assert [a.artist_id for a in orchestrator.selected_artists] == [1]

    async def test_start_requires_name(self, machine, mock_backend):
        """A blank name is refused before anything changes."""
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        with pytest.raises(ValueError):
            orchestrator.start("   ")
        assert not machine.state.generation_in_progress

    async def test_start_requires_artist(self, machine, mock_backend):
        """At least one seed artist is required."""
        orchestrator = make_orchestrator(machine, mock_backend)
        orchestrator.open()

        with pytest.raises(ValueError):
            orchestrator.start("Mix")


class TestGenerationRequest:
    """Tests for the request built from the wizard."""

    def test_description_and_category(self):
        """Artist names describe the playlist and unique genres categorise it."""
        request = GenerationRequest(
            "Mix",
            (make_artist(1, "Rock"), make_artist(2, "Jazz"), make_artist(3, "Rock")),
            30,
        )

        assert request.artist_ids == [1, 2, 3]
        assert request.description == "Artist 1, Artist 2, Artist 3"
        assert request.category == "Rock, Jazz"

    def test_category_is_limited(self):
        """Long genre lists are cut to the category limit."""
        artists = tuple(make_artist(i, f"Genre number {i}") for i in range(5))
        request = GenerationRequest("Mix", artists, 30)

        assert len(request.category) == constants.CATEGORY_CHAR_LIMIT

    def test_no_genres_means_no_category(self):
        """Artists without genres leave the category empty."""
        request = GenerationRequest("Mix", (make_artist(1, None),), 30)
        assert request.category is None


class TestProgress:
    """Tests for the cosmetic progress value."""

    def test_advance_never_reaches_ceiling(self):
        """The request phase approaches 99% without ever getting there."""
        job = GenerationJob(GenerationRequest("Mix", (make_artist(1),), 30))
        values = []
        for _ in range(2000):
            job.advance_progress(0.08)
            values.append(job.display_progress)

        assert values == sorted(values)
        assert values[-1] < constants.PROGRESS_CEILING

    def test_reveal_reaches_100_only_at_the_end(self):
        """Progress is exactly 100 once every song is revealed, and not before."""
        job = GenerationJob(GenerationRequest("Mix", (make_artist(1),), 30))
        job.display_progress = 60.0

        values = []
        for revealed in range(3, 46, 3):
            job.reveal_progress(revealed, 45)
            values.append(job.display_progress)

        assert values == sorted(values)
        assert all(v < 100.0 for v in values[:-1])
        assert values[-1] == 100.0

    async def test_progress_monotonic_while_request_pending(self, machine, mock_backend):
        """While the request is in flight progress only grows and stays below 99."""
        mock_backend.generate_gate = asyncio.Event()
        mock_backend.generated = generated(6)
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        values = []
        for _ in range(50):
            await asyncio.sleep(0)
            values.append(orchestrator.progress)

        assert values == sorted(values)
        assert values[-1] > 0
        assert values[-1] < constants.PROGRESS_CEILING

        mock_backend.generate_gate.set()
        await job.wait()
        assert orchestrator.progress == constants.PROGRESS_COMPLETE


class TestGenerationRun:
    """Tests for the full request and reveal cycle."""

    async def test_reveals_in_batches(self, machine, mock_backend):
        """45 songs in batches of 3 arrive as 15 appends, in server order."""
        mock_backend.generated = generated(45)
        created = []
        orchestrator = make_orchestrator(machine, mock_backend, on_created=created.append)
        appends = []

        def on_transition(transition):
            if transition.action == "append_tracks":
                appends.append(len(transition.after.queue))

        machine.subscribe(on_transition)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        await job.wait()

        assert appends == list(range(3, 46, 3))
        assert [t.order for t in machine.state.queue] == list(range(45))
        assert job.status == JobStatus.DONE
        assert job.revealed_count == 45
        assert orchestrator.step == WizardStep.DONE
        assert orchestrator.progress == constants.PROGRESS_COMPLETE
        assert not machine.state.generation_in_progress
        assert machine.state.selection.playlist_id == 77
        assert created == [mock_backend.generated]

    async def test_start_clears_queue_and_pauses(self, machine, mock_backend, sample_tracks):
        """Starting a generation stops playback and empties the queue."""
        machine.select_queue(sample_tracks, Selection.artist(1))
        machine.play(sample_tracks[0], 0)
        mock_backend.generate_gate = asyncio.Event()
        mock_backend.generated = generated(3)
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")

        assert machine.state.queue == ()
        assert not machine.state.is_playing
        assert machine.state.generation_in_progress
        assert orchestrator.step == WizardStep.GENERATING

        mock_backend.generate_gate.set()
        await job.wait()

    async def test_request_uses_target_count(self, machine, mock_backend):
        """The configured song count and artists are sent."""
        mock_backend.generated = generated(3)
        orchestrator = make_orchestrator(machine, mock_backend, target_count=12)
        prepare(orchestrator, make_artist(1), make_artist(2))

        await orchestrator.start("Mix").wait()

        (request,) = mock_backend.calls("generate")[0]
        assert request.target_count == 12
        assert request.artist_ids == [1, 2]
        assert request.name == "Mix"

    async def test_empty_result_finishes(self, machine, mock_backend):
        """A playlist with no songs completes immediately."""
        mock_backend.generated = generated(0)
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        await job.wait()

        assert job.status == JobStatus.DONE
        assert orchestrator.progress == constants.PROGRESS_COMPLETE
        assert machine.state.queue == ()

    async def test_failure_returns_to_artist_step(self, machine, mock_backend):
        """A failed request commits nothing and can be retried."""
        mock_backend.generate_error = ConnectionError("offline")
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        await job.wait()

        assert job.status == JobStatus.FAILED
        assert orchestrator.error == constants.GENERATION_ERROR_MESSAGE
        assert orchestrator.step == WizardStep.AWAITING_ARTISTS
        assert not machine.state.generation_in_progress
        assert machine.state.queue == ()

        mock_backend.generate_error = None
        mock_backend.generated = generated(3)
        retry = orchestrator.start()
        await retry.wait()
        assert retry.status == JobStatus.DONE
        assert orchestrator.error is None

    async def test_close_during_request_discards_result(self, machine, mock_backend):
        """A result arriving after the wizard closed is never revealed."""
        mock_backend.generate_gate = asyncio.Event()
        mock_backend.generated = generated(9)
        created = []
        orchestrator = make_orchestrator(machine, mock_backend, on_created=created.append)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        await asyncio.sleep(0)
        orchestrator.close()
        mock_backend.generate_gate.set()
        await job.wait()

        assert job.status == JobStatus.CANCELLED
        assert machine.state.queue == ()
        assert not machine.state.generation_in_progress
        assert orchestrator.step == WizardStep.IDLE
        assert created == []

    async def test_close_during_reveal_stops_appending(self, machine, mock_backend):
        """Closing mid-reveal leaves only the batches already released."""
        mock_backend.generated = generated(9)
        orchestrator = make_orchestrator(machine, mock_backend, reveal_interval=10)
        prepare(orchestrator, make_artist(1))

        job = orchestrator.start("Mix")
        for _ in range(10):
            await asyncio.sleep(0)
        assert orchestrator.step == WizardStep.REVEALING

        orchestrator.close()
        await job.wait()

        assert len(machine.state.queue) == 3
        assert job.status == JobStatus.CANCELLED
        assert not machine.state.generation_in_progress

    async def test_restart_cancels_previous_job(self, machine, mock_backend):
        """Starting again abandons the job still in flight."""
        mock_backend.generate_gate = asyncio.Event()
        mock_backend.generated = generated(3)
        orchestrator = make_orchestrator(machine, mock_backend)
        prepare(orchestrator, make_artist(1))

        first = orchestrator.start("First")
        await asyncio.sleep(0)
        second = orchestrator.start("Second")
        mock_backend.generate_gate.set()
        await asyncio.gather(first.wait(), second.wait())

        assert first.status == JobStatus.CANCELLED
        assert second.status == JobStatus.DONE
        assert len(machine.state.queue) == 3
