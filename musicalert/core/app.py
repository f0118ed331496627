import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from musicalert.api.main import api_router
from musicalert.core.events import EventRecorder
from musicalert.core.exceptions import ApiError, AuthError, CatalogError, NetworkError
from musicalert.core.settings import ClientConfig
from musicalert.services.spotify.service import SpotifyBundle
from musicalert.services.state_store import StateStore

from .config import settings
from .version import __version__


def configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())


def _status_for(error: CatalogError) -> int:
    if isinstance(error, AuthError):
        return 503
    if isinstance(error, NetworkError):
        return 504
    if isinstance(error, ApiError) and error.status == 404:
        return 404
    return 502


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=_status_for(exc), content={"detail": exc.message, "error": type(exc).__name__})


def create_app(bundle: SpotifyBundle | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifespan events (startup/shutdown).
        """
        active = bundle
        state_store = None
        if active is None:
            configure_logging()
            if not settings.SPOTIFY_CLIENT_ID or not settings.SPOTIFY_CLIENT_SECRET:
                logger.warning("SPOTIFY_CLIENT_ID/SPOTIFY_CLIENT_SECRET are not set. Catalog calls will fail.")
            state_store = StateStore()
            active = SpotifyBundle(ClientConfig.from_settings(settings), state_store=state_store)

        recorder = EventRecorder()
        unsubscribe = active.events.subscribe(recorder)
        app.state.bundle = active
        app.state.events = recorder
        await active.load_state()

        yield

        unsubscribe()
        try:
            await active.close()
            logger.info("Spotify clients closed")
        except Exception as exc:
            logger.warning(f"Failed to close Spotify clients: {exc}")
        if state_store is not None:
            await state_store.close()

    app = FastAPI(
        title="MusicAlert",
        description="New releases from the artists you follow, on top of a rate-limit aware Spotify client",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.APP_ENV != "development" else "/docs",
        redoc_url=None if settings.APP_ENV != "development" else "/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.include_router(api_router)
    return app


app = create_app()
