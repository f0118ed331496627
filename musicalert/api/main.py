from fastapi import APIRouter

from .endpoints.artists import router as artists_router
from .endpoints.health import router as health_router
from .endpoints.releases import router as releases_router
from .endpoints.status import router as status_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "MusicAlert API is running"}


api_router.include_router(health_router)
api_router.include_router(artists_router)
api_router.include_router(releases_router)
api_router.include_router(status_router)
