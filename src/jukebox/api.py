"""REST client for the jukebox backend.

Implements the ArtistApi, CatalogApi, GenerationApi and LedgerApi protocols.
Requests are made with `requests` on a worker thread so the event loop never blocks.
"""

import asyncio
import logging
from typing import Any

import requests

from jukebox.config import constants
from jukebox.config.settings import JukeboxSettings
from jukebox.player.models import (
    GeneratedPlaylist,
    GenerationRequest,
    Page,
    Profile,
    Selection,
    SourceKind,
)
from jukebox.track import Artist, Playlist, Track, sort_by_order

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend request failed at the network or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JukeboxApi:
    """Client for the jukebox REST API."""

    def __init__(
        self, settings: JukeboxSettings, session: requests.Session | None = None
    ) -> None:
        self._base_url = settings.api_base_url.rstrip("/")
        self._token = settings.api_token
        self._timeout = settings.request_timeout
        self._session = session or requests.Session()
        self._playlist_cache: tuple[int | None, list[Track]] | None = None

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method, url, headers=headers, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            logger.warning("Backend rejected the API token")
        if not response.ok:
            raise ApiError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON") from e

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    # Catalog

    async def get_page(
        self, source: Selection, page_number: int, page_size: int
    ) -> Page:
        if source.kind == SourceKind.ARTIST:
            data = await self._call(
                "GET",
                "/song",
                params={
                    "ArtistId": source.source_id,
                    "PageNumber": page_number,
                    "PageSize": page_size,
                },
            )
            items = [Track.from_api(item) for item in (data or {}).get("items") or []]
            return Page(items=items, total_items=int((data or {}).get("totalItems") or 0))

        if source.kind == SourceKind.PLAYLIST:
            songs = await self._playlist_songs(source.source_id, refresh=page_number == 1)
            start = (page_number - 1) * page_size
            return Page(items=songs[start : start + page_size], total_items=len(songs))

        raise ValueError("Cannot list songs without an artist or playlist")

    async def _playlist_songs(self, playlist_id: int | None, refresh: bool) -> list[Track]:
        # Playlists come back whole, with songs carrying their order. Later
        # pages of the same listing are served from the first fetch.
        cached = self._playlist_cache
        if not refresh and cached is not None and cached[0] == playlist_id:
            return cached[1]

        data = await self._call("GET", f"/playlist/{playlist_id}")
        songs = sort_by_order(
            [Track.from_api(item) for item in (data or {}).get("songs") or []]
        )
        self._playlist_cache = (playlist_id, songs)
        return songs

    async def get_artist(self, artist_id: int) -> Artist:
        return Artist.from_api(await self._call("GET", f"/artist/{artist_id}"))

    async def search_artists(
        self, name: str | None = None, page_size: int = constants.ARTIST_PAGE_SIZE
    ) -> list[Artist]:
        """Browse artists, or search them by name when `name` is given."""
        params: dict[str, Any] = {"PageNumber": 1, "PageSize": page_size}
        if name:
            params["Name"] = name
        data = await self._call("GET", "/artist", params=params)
        return [Artist.from_api(item) for item in (data or {}).get("items") or []]

    async def get_my_playlists(self) -> list[Playlist]:
        data = await self._call("GET", "/playlist/my")
        items = data if isinstance(data, list) else []
        return [Playlist.from_api(item) for item in items]

    # Generation

    async def generate(self, request: GenerationRequest) -> GeneratedPlaylist:
        data = await self._call(
            "POST",
            "/playlist/generate",
            json={
                "playlistName": request.name,
                "description": request.description,
                "category": request.category,
                "songsCount": request.target_count,
                "artists": [{"artistId": a} for a in request.artist_ids],
            },
        )
        return GeneratedPlaylist(
            playlist_id=int(data["playlistId"]),
            name=str(data.get("name") or request.name),
            songs=tuple(Track.from_api(item) for item in data.get("songs") or []),
        )

    # Ledger

    async def record_spend(self, amount: int) -> None:
        await self._call("POST", "/user/spend-coins", params={"amount": amount})

    async def record_play(self, track_id: int) -> None:
        await self._call("POST", f"/song/{track_id}/play")

    async def get_profile(self) -> Profile:
        data = await self._call("GET", "/user/profile") or {}
        return Profile(
            coins=int(data.get("coins") or 0),
            total_songs_played=int(data.get("totalSongsPlayed") or 0),
        )
