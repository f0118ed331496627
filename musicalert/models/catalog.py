from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Spotify release dates come as "YYYY", "YYYY-MM" or "YYYY-MM-DD"
_DATE_FORMATS = {4: "%Y", 7: "%Y-%m", 10: "%Y-%m-%d"}


def parse_release_date(value: str | None) -> int | None:
    """Return the release date as epoch millis (UTC midnight), or None if unparseable."""
    if not value:
        return None
    value = value.strip()
    fmt = _DATE_FORMATS.get(len(value))
    if fmt is None:
        return None
    try:
        parsed = datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return int(parsed.timestamp() * 1000)


class CatalogModel(BaseModel):
    # Remote payloads pass through untouched, and nobody mutates them in place
    model_config = ConfigDict(extra="allow", frozen=True)


class Image(CatalogModel):
    url: str
    height: int | None = None
    width: int | None = None


class Followers(CatalogModel):
    total: int = 0


class ArtistRef(CatalogModel):
    """Simplified artist object embedded in albums and tracks."""

    id: str
    name: str = ""


class Artist(ArtistRef):
    genres: list[str] = Field(default_factory=list)
    popularity: int = 0
    images: list[Image] = Field(default_factory=list)
    followers: Followers = Field(default_factory=Followers)


class Track(CatalogModel):
    id: str | None = None
    name: str = ""
    track_number: int | None = None
    duration_ms: int | None = None
    preview_url: str | None = None
    artists: list[ArtistRef] = Field(default_factory=list)


class Release(CatalogModel):
    id: str
    name: str = ""
    release_date: str = ""
    release_date_precision: str = "day"
    album_type: str = "album"
    total_tracks: int | None = None
    artists: list[ArtistRef] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)

    @property
    def released_at_ms(self) -> int | None:
        return parse_release_date(self.release_date)


class AlbumDetail(Release):
    tracks: list[Track] = Field(default_factory=list)

    @field_validator("tracks", mode="before")
    @classmethod
    def _flatten_paging(cls, value: Any) -> Any:
        # The album endpoint nests tracks in a paging object
        if isinstance(value, dict):
            return value.get("items", [])
        return value


class CollaborationInfo(BaseModel):
    is_collaboration: bool = True
    collaborating_artists: list[str] = Field(default_factory=list)


class AggregatedRelease(BaseModel):
    artist: Artist
    album: Release
    collaboration_info: CollaborationInfo | None = None
