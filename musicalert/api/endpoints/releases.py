from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field

from musicalert.api.deps import get_bundle
from musicalert.core.config import clamp_lookback_days, settings
from musicalert.models.catalog import AggregatedRelease, Artist
from musicalert.services.releases.dedupe import SortOrder, sort_releases
from musicalert.services.spotify.service import SpotifyBundle

router = APIRouter(prefix="/releases", tags=["releases"])


class NewReleasesRequest(BaseModel):
    followed: list[Artist] = Field(default_factory=list, description="Followed artists, in follow order")
    lookback_days: int | None = Field(default=None, description="Clamped to 1-14 days; defaults to the configured value")
    sort: SortOrder | None = Field(default=None, description="Optional ordering; processing order when omitted")


@router.post("/new", response_model=list[AggregatedRelease])
async def find_new_releases(
    payload: NewReleasesRequest, bundle: SpotifyBundle = Depends(get_bundle)
) -> list[AggregatedRelease]:
    requested = payload.lookback_days or settings.DEFAULT_RELEASE_LOOKBACK_DAYS
    lookback_days = clamp_lookback_days(requested)
    if lookback_days != requested:
        logger.debug(f"Lookback of {requested} days clamped to {lookback_days}")

    releases = await bundle.releases.find_new_releases(payload.followed, lookback_days)
    if payload.sort:
        return sort_releases(releases, payload.sort)
    return releases
