"""Data models for a playback session."""

from dataclasses import dataclass
from enum import Enum, auto

from jukebox.config import constants
from jukebox.track import Artist, Track


class ViewMode(Enum):
    """How the current track is presented."""

    DISC = auto()  # Spinning vinyl, audio only
    VIDEO = auto()  # Embedded video player


class Direction(Enum):
    """Direction for advancing through the queue."""

    NEXT = 1
    PREVIOUS = -1


class SourceKind(Enum):
    """Which catalog the queue was loaded from."""

    NONE = auto()
    ARTIST = auto()
    PLAYLIST = auto()


@dataclass(frozen=True)
class Selection:
    """The active catalog source. At most one source is active at a time."""

    kind: SourceKind = SourceKind.NONE
    source_id: int | None = None

    @staticmethod
    def artist(artist_id: int) -> "Selection":
        return Selection(SourceKind.ARTIST, artist_id)

    @staticmethod
    def playlist(playlist_id: int) -> "Selection":
        return Selection(SourceKind.PLAYLIST, playlist_id)

    @property
    def artist_id(self) -> int | None:
        return self.source_id if self.kind == SourceKind.ARTIST else None

    @property
    def playlist_id(self) -> int | None:
        return self.source_id if self.kind == SourceKind.PLAYLIST else None


NO_SELECTION = Selection()


@dataclass(frozen=True)
class PlaybackState:
    """Immutable snapshot of playback. Each transition replaces it wholesale."""

    queue: tuple[Track, ...] = ()
    current_index: int | None = None
    is_playing: bool = False
    view_mode: ViewMode = ViewMode.DISC
    muted: bool = False
    selection: Selection = NO_SELECTION
    generation_in_progress: bool = False

    @property
    def current_track(self) -> Track | None:
        """Derived from the queue position, never stored separately."""
        if self.current_index is None or not 0 <= self.current_index < len(self.queue):
            return None
        return self.queue[self.current_index]

    @property
    def has_next(self) -> bool:
        """True when a track follows the current one without wrapping."""
        return (
            self.current_index is not None
            and self.current_index < len(self.queue) - 1
        )


@dataclass(frozen=True)
class CoinLedger:
    """Coin balance and play counters."""

    balance: int
    total_plays: int = 0
    # Bumped on every spend attempted against an empty balance
    starvation_signal: int = 0

    def __post_init__(self) -> None:
        if self.balance < 0:
            raise ValueError(f"Coin balance cannot be negative: {self.balance}")


@dataclass(frozen=True)
class Transition:
    """A committed state machine transition, delivered to listeners."""

    action: str
    before: PlaybackState
    after: PlaybackState
    ledger_before: CoinLedger
    ledger_after: CoinLedger

    @property
    def debited(self) -> bool:
        return self.ledger_after.balance < self.ledger_before.balance

    @property
    def track_changed(self) -> bool:
        return (
            self.before.current_index != self.after.current_index
            or self.before.current_track != self.after.current_track
        )


@dataclass(frozen=True)
class Page:
    """One page of a paginated catalog response."""

    items: list[Track]
    total_items: int


@dataclass(frozen=True)
class Profile:
    """Authoritative ledger values held by the backend."""

    coins: int
    total_songs_played: int


@dataclass(frozen=True)
class GenerationRequest:
    """Parameters of a playlist generation."""

    name: str
    artists: tuple[Artist, ...]
    target_count: int

    @property
    def artist_ids(self) -> list[int]:
        return [artist.artist_id for artist in self.artists]

    @property
    def description(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @property
    def category(self) -> str | None:
        genres = list(dict.fromkeys(a.genre for a in self.artists if a.genre))
        return ", ".join(genres)[: constants.CATEGORY_CHAR_LIMIT] or None


@dataclass(frozen=True)
class GeneratedPlaylist:
    """Result of a finished generation request."""

    playlist_id: int
    name: str
    songs: tuple[Track, ...]


class PlayerEvent(Enum):
    """State changes reported by the external player runtime."""

    UNSTARTED = auto()
    CUED = auto()
    PLAYING = auto()
    PAUSED = auto()
    BUFFERING = auto()
    ENDED = auto()
