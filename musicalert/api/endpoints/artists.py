from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from musicalert.api.deps import get_bundle
from musicalert.models.catalog import AlbumDetail, Artist
from musicalert.services.spotify.service import SpotifyBundle

router = APIRouter(tags=["artists"])


class RecommendationsRequest(BaseModel):
    artist_ids: list[str] = Field(default_factory=list, description="Seed artists; only the first 5 are used")
    limit: int = Field(default=6, ge=1, le=100)


@router.get("/artists/search", response_model=list[Artist])
async def search_artists(
    q: str = Query(..., min_length=1),
    limit: int = Query(default=10, ge=1, le=50),
    bundle: SpotifyBundle = Depends(get_bundle),
) -> list[Artist]:
    return await bundle.catalog.search_artists(q, limit)


@router.get("/artists/{artist_id}", response_model=Artist)
async def get_artist(artist_id: str, bundle: SpotifyBundle = Depends(get_bundle)) -> Artist:
    return await bundle.catalog.get_artist(artist_id)


@router.get("/artists/{artist_id}/related", response_model=list[Artist])
async def get_related_artists(artist_id: str, bundle: SpotifyBundle = Depends(get_bundle)) -> list[Artist]:
    return await bundle.catalog.get_related_artists(artist_id)


@router.get("/artists/{artist_id}/releases", response_model=list[AlbumDetail])
async def get_artist_releases(
    artist_id: str,
    limit: int = Query(default=6, ge=1, le=20),
    bundle: SpotifyBundle = Depends(get_bundle),
) -> list[AlbumDetail]:
    return await bundle.catalog.get_artist_releases(artist_id, limit)


@router.get("/genres", response_model=list[str])
async def get_genres(bundle: SpotifyBundle = Depends(get_bundle)) -> list[str]:
    return await bundle.catalog.get_genres()


@router.post("/recommendations", response_model=list[Artist])
async def get_recommendations(
    payload: RecommendationsRequest, bundle: SpotifyBundle = Depends(get_bundle)
) -> list[Artist]:
    return await bundle.catalog.get_recommendations(payload.artist_ids, payload.limit)
