from datetime import datetime, timezone
from typing import Protocol

from loguru import logger

from musicalert.core.clock import Clock, system_clock
from musicalert.core.constants import MILLIS_PER_DAY, NEW_RELEASES_LISTING_LIMIT
from musicalert.core.events import EventEmitter
from musicalert.core.exceptions import CatalogError
from musicalert.models.catalog import AggregatedRelease, Artist, CollaborationInfo, Release
from musicalert.services.spotify.catalog import CatalogClient


class ScheduleRecorder(Protocol):
    async def set_last_release_check(self, timestamp_ms: int) -> bool: ...


class ReleaseAggregator:
    """
    Builds the "new releases" feed for a list of followed artists.

    Artists are processed in batches with pacing delays so a large follow
    list stays below the practical rate ceiling without relying on 429s.
    Every album is emitted once per run, credited to whichever of its
    artists comes first in the caller's follow order.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        state_store: ScheduleRecorder | None = None,
        clock: Clock | None = None,
        events: EventEmitter | None = None,
        batch_size: int = 5,
        intra_batch_delay: float = 0.1,
        inter_batch_delay: float = 0.5,
        listing_limit: int = NEW_RELEASES_LISTING_LIMIT,
    ):
        self.catalog = catalog
        self.state_store = state_store
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self.batch_size = batch_size
        self.intra_batch_delay = intra_batch_delay
        self.inter_batch_delay = inter_batch_delay
        self.listing_limit = listing_limit

    async def find_new_releases(
        self,
        followed: list[Artist],
        lookback_days: int,
        record_check: bool = True,
    ) -> list[AggregatedRelease]:
        """
        Releases of the followed artists newer than ``lookback_days``.

        Per-artist failures are logged and skipped. The last-check timestamp
        is stored only after a run that got through every artist.
        """
        if not followed:
            return []

        now_ms = self.clock.time_ms()
        cutoff_ms = now_ms - lookback_days * MILLIS_PER_DAY
        cutoff_date = datetime.fromtimestamp(cutoff_ms / 1000, tz=timezone.utc).date()
        logger.info(f"Checking {len(followed)} artists for releases since {cutoff_date} ({lookback_days} days)")

        follow_order = {}
        for index, artist in enumerate(followed):
            follow_order.setdefault(artist.id, index)

        releases: list[AggregatedRelease] = []
        emitted: set[str] = set()

        with self.events.loading("Checking for new releases..."):
            for start in range(0, len(followed), self.batch_size):
                batch = followed[start : start + self.batch_size]

                for position, artist in enumerate(batch):
                    if position > 0:
                        await self.clock.sleep(self.intra_batch_delay)
                    try:
                        albums = await self.catalog.get_artist_albums(artist.id, self.listing_limit)
                    except CatalogError as e:
                        logger.error(f"Error processing artist {artist.name} ({artist.id}): {e}")
                        continue

                    recent = [a for a in albums if self._is_recent(a, cutoff_ms) and a.id not in emitted]
                    logger.debug(f"Found {len(recent)} recent releases for {artist.name}")

                    for album in recent:
                        emitted.add(album.id)
                        releases.append(self._attribute(album, artist, followed, follow_order))

                if start + self.batch_size < len(followed):
                    await self.clock.sleep(self.inter_batch_delay)

        logger.info(f"Found a total of {len(releases)} new releases within the last {lookback_days} days")
        if record_check and self.state_store is not None:
            await self.state_store.set_last_release_check(now_ms)
        return releases

    @staticmethod
    def _is_recent(album: Release, cutoff_ms: int) -> bool:
        released_at = album.released_at_ms
        return released_at is not None and released_at > cutoff_ms

    @staticmethod
    def _attribute(
        album: Release,
        artist: Artist,
        followed: list[Artist],
        follow_order: dict[str, int],
    ) -> AggregatedRelease:
        # First followed, first credited
        candidates = [follow_order[a.id] for a in album.artists if a.id in follow_order]
        candidates.append(follow_order[artist.id])
        primary = followed[min(candidates)]

        collaboration = None
        if len(album.artists) > 1:
            others = [a.name for a in album.artists if a.id != primary.id]
            if others:
                collaboration = CollaborationInfo(is_collaboration=True, collaborating_artists=others)

        return AggregatedRelease(artist=primary, album=album, collaboration_info=collaboration)
