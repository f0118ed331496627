import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from async_lru import alru_cache
from cachetools import TTLCache
from loguru import logger
from pydantic import ValidationError

from musicalert.core.clock import Clock, system_clock
from musicalert.core.constants import (
    ARTIST_RELEASES_LISTING_LIMIT,
    MAX_RECOMMENDED_ARTISTS,
    MAX_SEED_ARTISTS,
    RELATED_ARTISTS_LIMIT,
    RELEASE_GROUPS,
)
from musicalert.core.events import EventEmitter, EventType
from musicalert.core.exceptions import ApiError, CatalogError, ReleaseDetailsError
from musicalert.models.catalog import AlbumDetail, Artist, Release
from musicalert.models.status import ApiStats
from musicalert.services.releases.dedupe import deduplicate_releases
from musicalert.services.spotify.auth import TokenManager
from musicalert.services.spotify.executor import RequestDescriptor
from musicalert.services.spotify.gate import RateLimitGate
from musicalert.services.spotify.rate_limit import RateLimitWindow

T = TypeVar("T")

# Status reported when a 2xx body does not have the expected shape
MALFORMED_RESPONSE_STATUS = 502


def _artists(items: list[dict]) -> list[Artist]:
    return [Artist.model_validate(item) for item in items if item]


def _recommended_ids(data: dict, exclude: list[str]) -> list[str]:
    """Artist ids from recommended tracks, first seen first, minus the seeds."""
    recommended: list[str] = []
    for track in data.get("tracks", []):
        for artist in track.get("artists", []):
            artist_id = artist.get("id")
            if artist_id and artist_id not in exclude and artist_id not in recommended:
                recommended.append(artist_id)
    return recommended


class CatalogClient:
    """
    Public surface of the Spotify catalog.

    Lookups the user can live without (search, related artists, genres,
    recommendations) degrade to an empty list. Direct lookups and release
    listings raise, since their callers have no fallback. A body that does
    not match the expected shape is reported as an ApiError like any other
    failed call.
    """

    def __init__(
        self,
        gate: RateLimitGate,
        token_manager: TokenManager,
        window: RateLimitWindow,
        market: str = "NL",
        clock: Clock | None = None,
        events: EventEmitter | None = None,
    ):
        self.gate = gate
        self.token_manager = token_manager
        self.window = window
        self.market = market
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self._artist_cache: TTLCache = TTLCache(maxsize=1000, ttl=3600)
        # Per instance, so the cache never outlives the event loop of its client
        self._fetch_genres = alru_cache(maxsize=1, ttl=21600)(self._load_genres)

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        shape: Callable[[Any], T] | None = None,
    ) -> T:
        data = await self.gate.schedule(RequestDescriptor(method="GET", path=path, params=params or {}))
        if shape is None:
            return data
        try:
            return shape(data)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.warning(f"Malformed response from GET {path}: {e}")
            raise ApiError(MALFORMED_RESPONSE_STATUS, "Malformed response", details={"path": path}) from e

    def _report_failure(self, operation: str, error: CatalogError) -> None:
        self.events.emit(EventType.REQUEST_FAILED, str(error), operation=operation, error=type(error).__name__)

    async def search_artists(self, query: str, limit: int = 10) -> list[Artist]:
        query = query.strip()
        if not query:
            return []

        with self.events.loading("Searching artists..."):
            try:
                return await self._get(
                    "/search",
                    {"q": query, "type": "artist", "limit": limit},
                    shape=lambda data: _artists(data.get("artists", {}).get("items", [])),
                )
            except CatalogError as e:
                logger.warning(f"Error searching artists for '{query}': {e}")
                self._report_failure("search_artists", e)
                return []

    async def get_genres(self) -> list[str]:
        try:
            return await self._fetch_genres()
        except CatalogError as e:
            logger.warning(f"Error fetching genre seeds: {e}")
            self._report_failure("get_genres", e)
            return []

    async def _load_genres(self) -> list[str]:
        return await self._get(
            "/recommendations/available-genre-seeds",
            shape=lambda data: [str(genre) for genre in data.get("genres", [])],
        )

    async def get_artist(self, artist_id: str) -> Artist:
        cached = self._artist_cache.get(artist_id)
        if cached is not None:
            return cached

        try:
            artist = await self._get(f"/artists/{artist_id}", shape=Artist.model_validate)
        except CatalogError as e:
            logger.error(f"Error fetching artist {artist_id}: {e}")
            self._report_failure("get_artist", e)
            raise

        self._artist_cache[artist_id] = artist
        return artist

    async def get_related_artists(self, artist_id: str) -> list[Artist]:
        try:
            return await self._get(
                f"/artists/{artist_id}/related-artists",
                shape=lambda data: _artists(data.get("artists", [])[:RELATED_ARTISTS_LIMIT]),
            )
        except CatalogError as e:
            logger.warning(f"Error fetching related artists for {artist_id}: {e}")
            self._report_failure("get_related_artists", e)
            return []

    async def get_artist_albums(self, artist_id: str, limit: int = ARTIST_RELEASES_LISTING_LIMIT) -> list[Release]:
        """Raw album/single listing of an artist, without detail or deduplication."""
        return await self._get(
            f"/artists/{artist_id}/albums",
            {"include_groups": RELEASE_GROUPS, "limit": limit, "market": self.market},
            shape=lambda data: [Release.model_validate(item) for item in data.get("items", []) if item],
        )

    async def get_album(self, album_id: str) -> AlbumDetail:
        return await self._get(f"/albums/{album_id}", shape=AlbumDetail.model_validate)

    async def get_artist_releases(self, artist_id: str, limit: int = 6) -> list[AlbumDetail]:
        """
        Latest distinct releases of an artist with their track lists.

        Albums whose detail fetch fails are left out. Raises
        ReleaseDetailsError only when every detail fetch failed.
        """
        with self.events.loading("Fetching releases..."):
            try:
                listing = await self.get_artist_albums(artist_id, ARTIST_RELEASES_LISTING_LIMIT)
                latest = deduplicate_releases(listing)[:limit]
                logger.debug(
                    f"Found {len(listing)} releases for artist {artist_id}, "
                    f"{len(latest)} kept after deduplication"
                )
                return await self._fetch_album_details(latest)
            except CatalogError as e:
                logger.error(f"Error fetching releases for artist {artist_id}: {e}")
                self._report_failure("get_artist_releases", e)
                raise

    async def _fetch_album_details(self, releases: list[Release]) -> list[AlbumDetail]:
        if not releases:
            return []

        results = await asyncio.gather(*(self.get_album(r.id) for r in releases), return_exceptions=True)

        albums: list[AlbumDetail] = []
        errors: list[BaseException] = []
        for release, result in zip(releases, results):
            if isinstance(result, BaseException):
                logger.warning(f"Dropping album {release.id} ({release.name}): {result}")
                errors.append(result)
            else:
                albums.append(result)

        if not albums:
            raise ReleaseDetailsError(errors)
        return albums

    async def get_recommendations(self, artist_ids: list[str], limit: int = 6) -> list[Artist]:
        if not artist_ids:
            return []

        seeds = artist_ids[:MAX_SEED_ARTISTS]
        with self.events.loading("Loading recommendations..."):
            try:
                recommended = await self._get(
                    "/recommendations",
                    {"seed_artists": ",".join(seeds), "limit": limit, "market": self.market},
                    shape=lambda data: _recommended_ids(data, artist_ids),
                )
                return list(
                    await asyncio.gather(*(self.get_artist(a) for a in recommended[:MAX_RECOMMENDED_ARTISTS]))
                )
            except CatalogError as e:
                logger.warning(f"Error fetching recommendations for {seeds}: {e}")
                self._report_failure("get_recommendations", e)
                return []

    def get_api_stats(self) -> ApiStats:
        now = self.clock.time()
        rate_limited_for = int(self.window.remaining(now))
        initial = self.window.initial_duration_seconds or 1
        pct_complete = 100 - (rate_limited_for / initial * 100)

        return ApiStats(
            token_expires_in=self.token_manager.seconds_until_expiry(),
            rate_limited_for=rate_limited_for,
            queued_requests=self.gate.queued_requests,
            is_rate_limited=self.window.is_active(now),
            initial_rate_limit=self.window.initial_duration_seconds,
            rate_limit_pct_complete=round(min(100.0, max(0.0, pct_complete)), 1),
        )
