"""Catalog data models - pure data representation of songs, artists and playlists."""

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Track:
    """Pure data representation of a song, independent of the REST payload."""

    track_id: int
    title: str
    duration: int
    player_ref: str | None = None
    artist_name: str | None = None
    order: int | None = None

    @property
    def playable_as_video(self) -> bool:
        """Tracks without an external player reference only show in lists."""
        return bool(self.player_ref)

    @property
    def formatted_duration(self) -> str:
        if not self.duration:
            return "0:00"
        minutes, seconds = divmod(int(self.duration), 60)
        return f"{minutes}:{seconds:02d}"

    @staticmethod
    def from_api(data: Mapping[str, Any]) -> "Track":
        """Build a Track from a song payload returned by the backend."""
        return Track(
            track_id=int(data["songId"]),
            title=str(data.get("title") or ""),
            duration=int(data.get("duration") or 0),
            player_ref=data.get("youtubeId") or None,
            artist_name=data.get("artistName"),
            order=data.get("order"),
        )


@dataclass(frozen=True)
class Artist:
    """An artist that can seed a generated playlist."""

    artist_id: int
    name: str
    genre: str | None = None

    @staticmethod
    def from_api(data: Mapping[str, Any]) -> "Artist":
        return Artist(
            artist_id=int(data["artistId"]),
            name=str(data.get("name") or ""),
            genre=data.get("genre") or None,
        )


@dataclass(frozen=True)
class Playlist:
    """A user playlist, either hand-made or generated."""

    playlist_id: int
    name: str
    songs_count: int = 0
    is_generated: bool = False

    @staticmethod
    def from_api(data: Mapping[str, Any]) -> "Playlist":
        songs = data.get("songs") or []
        return Playlist(
            playlist_id=int(data["playlistId"]),
            name=str(data.get("name") or ""),
            songs_count=int(data.get("songsCount") or len(songs)),
            is_generated=bool(data.get("isGenerated", False)),
        )


def sort_by_order(tracks: list[Track]) -> list[Track]:
    """Return tracks sorted by their server-provided order field.

    Tracks without an order keep their relative position after ordered ones.
    """
    return sorted(
        tracks, key=lambda track: (track.order is None, track.order or 0)
    )
