from collections.abc import Iterable
from typing import Literal

from musicalert.models.catalog import AggregatedRelease, Release

SortOrder = Literal["date-desc", "date-asc", "artist-asc", "artist-desc"]

# Unparseable dates sort after every real date
_UNDATED = -1


def normalize_title(title: str) -> str:
    return title.strip().lower()


def _release_key(release: Release) -> int:
    released_at = release.released_at_ms
    return released_at if released_at is not None else _UNDATED


def _supersedes(candidate: Release, current: Release) -> bool:
    """Newer date wins; on equal dates a single beats an album."""
    candidate_date, current_date = _release_key(candidate), _release_key(current)
    if candidate_date != current_date:
        return candidate_date > current_date
    return candidate.album_type == "single" and current.album_type == "album"


def deduplicate_releases(releases: Iterable[Release]) -> list[Release]:
    """
    Collapse releases that share a title (case-insensitive, trimmed).

    Regional re-releases and singles that also appear on an album show up
    as separate entries with the same title; one representative is kept per
    title. The result is sorted newest first.
    """
    unique: dict[str, Release] = {}
    for release in releases:
        title = normalize_title(release.name)
        current = unique.get(title)
        if current is None or _supersedes(release, current):
            unique[title] = release

    return sorted(unique.values(), key=_release_key, reverse=True)


def sort_releases(releases: Iterable[AggregatedRelease], order: SortOrder = "date-desc") -> list[AggregatedRelease]:
    """Return a new, sorted list of aggregated releases."""
    items = list(releases)
    if order == "date-asc":
        return sorted(items, key=lambda r: _release_key(r.album))
    if order == "artist-asc":
        return sorted(items, key=lambda r: r.artist.name.casefold())
    if order == "artist-desc":
        return sorted(items, key=lambda r: r.artist.name.casefold(), reverse=True)
    return sorted(items, key=lambda r: _release_key(r.album), reverse=True)
