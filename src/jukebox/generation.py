"""Playlist generation wizard.

Generation is a single long-running request to the backend. While it is in
flight the wizard shows a cosmetic progress value that creeps towards 99%,
faster for fewer seed artists. Once the playlist arrives, its songs are
revealed into the queue a few at a time and progress closes in on 100%,
reaching it exactly when the last batch lands.

Both the progress ticker and the reveal loop are asyncio tasks owned by the
GenerationJob, and both are cancelled together on completion, failure or
when the wizard is closed.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Coroutine

from jukebox.config import constants
from jukebox.player.machine import PlaybackMachine
from jukebox.player.models import GeneratedPlaylist, GenerationRequest, Selection
from jukebox.player.protocols import GenerationApi
from jukebox.track import Artist, Track, sort_by_order

logger = logging.getLogger(__name__)

# Largest float below 100, so only the final batch can complete progress
_BELOW_COMPLETE = math.nextafter(constants.PROGRESS_COMPLETE, 0.0)


class WizardStep(Enum):
    """Where the user is in the generation wizard."""

    IDLE = auto()  # Wizard closed
    AWAITING_ARTISTS = auto()  # Choosing a name and seed artists
    GENERATING = auto()  # Request in flight
    REVEALING = auto()  # Songs being released into the queue
    DONE = auto()


class JobStatus(Enum):
    GENERATING = auto()
    REVEALING = auto()
    DONE = auto()
    FAILED = auto()
    CANCELLED = auto()


class GenerationMode(Enum):
    """Individual playlists use one artist, multiple-artist ones up to five."""

    INDIVIDUAL = constants.MIN_GENERATION_ARTISTS
    MULTIPLE = constants.MAX_GENERATION_ARTISTS


@dataclass(eq=False)
class GenerationJob:
    """One generation run and the timers it owns."""

    request: GenerationRequest
    status: JobStatus = JobStatus.GENERATING
    display_progress: float = 0.0
    revealed_count: int = 0
    result: GeneratedPlaylist | None = None
    error: str | None = None
    _timers: set[asyncio.Task[None]] = field(default_factory=set, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.status in (JobStatus.DONE, JobStatus.FAILED, JobStatus.CANCELLED)

    def advance_progress(self, factor: float) -> None:
        """Cover `factor` of the remaining distance to the ceiling, never reaching it."""
        remaining = constants.PROGRESS_CEILING - self.display_progress
        candidate = self.display_progress + remaining * factor
        if self.display_progress < candidate < constants.PROGRESS_CEILING:
            self.display_progress = candidate

    def reveal_progress(self, revealed: int, total: int) -> None:
        """Close in on 100% as songs are revealed; exactly 100% once all are."""
        if revealed >= total:
            self.display_progress = constants.PROGRESS_COMPLETE
            return
        candidate = self.display_progress + (
            constants.PROGRESS_COMPLETE - self.display_progress
        ) * (revealed / total)
        self.display_progress = max(
            self.display_progress, min(candidate, _BELOW_COMPLETE)
        )

    def start_timer(self, coro: Coroutine[None, None, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)
        return task

    def cancel_timers(self) -> None:
        for task in list(self._timers):
            task.cancel()
        self._timers.clear()

    def cancel(self) -> None:
        """Abandon the job. No state is mutated on its behalf afterwards."""
        if self.finished:
            return
        self.status = JobStatus.CANCELLED
        self.cancel_timers()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the job finishes, fails or is cancelled."""
        if self._task is not None:
            await asyncio.wait([self._task])


class GenerationOrchestrator:
    """Drives the "create playlist" workflow into the PlaybackMachine.

    Revealed songs go through the same machine operations as user actions.
    """

    def __init__(
        self,
        machine: PlaybackMachine,
        api: GenerationApi,
        *,
        target_count: int = 30,
        batch_size: int = 3,
        progress_interval: float = 0.3,
        reveal_interval: float = 0.12,
        on_created: Callable[[GeneratedPlaylist], None] | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive: {batch_size}")
        self._machine = machine
        self._api = api
        self._target_count = target_count
        self._batch_size = batch_size
        self._progress_interval = progress_interval
        self._reveal_interval = reveal_interval
        self._on_created = on_created

        self.step = WizardStep.IDLE
        self.mode = GenerationMode.INDIVIDUAL
        self.name = ""
        self.error: str | None = None
        self.job: GenerationJob | None = None
        self._artists: list[Artist] = []

    @property
    def selected_artists(self) -> tuple[Artist, ...]:
        return tuple(self._artists)

    @property
    def max_artists(self) -> int:
        return self.mode.value

    @property
    def progress(self) -> float:
        return self.job.display_progress if self.job else 0.0

    # Wizard inputs

    def open(self) -> None:
        """Start a fresh wizard, abandoning any previous run."""
        self.close()
        self.step = WizardStep.AWAITING_ARTISTS
        self.mode = GenerationMode.INDIVIDUAL
        self.name = ""
        self.error = None
        self.job = None
        self._artists = []

    def choose_mode(self, mode: GenerationMode) -> None:
        self.mode = mode
        del self._artists[mode.value :]

    def select_artist(self, artist: Artist) -> bool:
        """Add a seed artist. Refused when full or already selected."""
        if len(self._artists) >= self.max_artists:
            return False
        if any(a.artist_id == artist.artist_id for a in self._artists):
            return False
        self._artists.append(artist)
        return True

    def remove_artist(self, artist_id: int) -> None:
        self._artists = [a for a in self._artists if a.artist_id != artist_id]

    # Generation

    def start(self, name: str | None = None) -> GenerationJob:
        """Clear the queue, pause playback and send the generation request.

        Raises:
            ValueError: No name was given or no artist is selected.
        """
        playlist_name = (name if name is not None else self.name).strip()
        if not playlist_name:
            raise ValueError("A playlist name is required")
        if not self._artists:
            raise ValueError("Select at least one artist")

        if self.job is not None:
            self.job.cancel()

        self.name = playlist_name
        self.error = None
        self.step = WizardStep.GENERATING
        job = GenerationJob(
            GenerationRequest(playlist_name, tuple(self._artists), self._target_count)
        )
        self.job = job

        self._machine.begin_generation()
        job._task = asyncio.get_running_loop().create_task(self._run(job))
        logger.info(
            f"Generating playlist {playlist_name!r} from {len(self._artists)} artist(s)"
        )
        return job

    def close(self) -> None:
        """Close the wizard, cancelling all pending work."""
        if self.job is not None:
            self.job.cancel()
        self._machine.end_generation()
        self.step = WizardStep.IDLE

    async def _run(self, job: GenerationJob) -> None:
        factor = constants.PROGRESS_SPEED.get(
            len(job.request.artists), constants.DEFAULT_PROGRESS_SPEED
        )
        job.start_timer(self._tick_progress(job, factor))

        try:
            result = await self._api.generate(job.request)
        except Exception as e:
            job.cancel_timers()
            if job.status == JobStatus.CANCELLED:
                return
            logger.error(f"Failed to generate playlist {job.request.name!r}: {e}")
            job.status = JobStatus.FAILED
            job.error = constants.GENERATION_ERROR_MESSAGE
            self.error = job.error
            self._machine.end_generation()
            self.step = WizardStep.AWAITING_ARTISTS
            return

        job.cancel_timers()
        if job.status == JobStatus.CANCELLED:
            logger.info(f"Discarding playlist {result.playlist_id} generated after cancel")
            return

        job.result = result
        if self._on_created is not None:
            self._on_created(result)
        self._machine.set_selection(Selection.playlist(result.playlist_id))

        songs = sort_by_order(list(result.songs))
        if not songs:
            self._finish(job)
            return

        job.status = JobStatus.REVEALING
        self.step = WizardStep.REVEALING
        reveal = job.start_timer(self._reveal(job, songs))
        await asyncio.wait([reveal])

    async def _tick_progress(self, job: GenerationJob, factor: float) -> None:
        while True:
            await asyncio.sleep(self._progress_interval)
            job.advance_progress(factor)

    async def _reveal(self, job: GenerationJob, songs: list[Track]) -> None:
        batches = [
            songs[i : i + self._batch_size]
            for i in range(0, len(songs), self._batch_size)
        ]
        for number, batch in enumerate(batches):
            if number:
                await asyncio.sleep(self._reveal_interval)
            self._machine.append_tracks(batch)
            job.revealed_count += len(batch)
            job.reveal_progress(job.revealed_count, len(songs))

        self._finish(job)

    def _finish(self, job: GenerationJob) -> None:
        job.display_progress = constants.PROGRESS_COMPLETE
        job.status = JobStatus.DONE
        self._machine.end_generation()
        self.step = WizardStep.DONE
        logger.info(
            f"Generated playlist {job.request.name!r} with {job.revealed_count} songs"
        )
