from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from musicalert.api.deps import get_bundle, get_event_recorder
from musicalert.core.events import EventRecorder
from musicalert.models.catalog import Artist
from musicalert.models.status import ApiStats, DiagnosticsReport, ScheduleState, StatusReport
from musicalert.services.diagnostics import DEFAULT_ARTIST_ID, Diagnostics
from musicalert.services.spotify.service import SpotifyBundle

router = APIRouter(tags=["status"])


class DiagnosticsRequest(BaseModel):
    artist_id: str = Field(default=DEFAULT_ARTIST_ID)
    followed: list[Artist] = Field(default_factory=list)


@router.get("/stats", response_model=ApiStats)
async def get_stats(bundle: SpotifyBundle = Depends(get_bundle)) -> ApiStats:
    return bundle.catalog.get_api_stats()


@router.get("/status", response_model=StatusReport)
async def get_status(
    bundle: SpotifyBundle = Depends(get_bundle),
    recorder: EventRecorder = Depends(get_event_recorder),
) -> StatusReport:
    """Token and rate-limit state, last release check and the latest client events."""
    schedule = await bundle.state_store.get_schedule_state() if bundle.state_store else ScheduleState()
    return StatusReport(stats=bundle.catalog.get_api_stats(), schedule=schedule, events=recorder.recent())


@router.post("/diagnostics", response_model=DiagnosticsReport)
async def run_diagnostics(
    payload: DiagnosticsRequest, bundle: SpotifyBundle = Depends(get_bundle)
) -> DiagnosticsReport:
    return await Diagnostics(bundle).run(payload.artist_id, payload.followed)


@router.post("/diagnostics/reset-token")
async def reset_token(bundle: SpotifyBundle = Depends(get_bundle)) -> dict[str, str]:
    Diagnostics(bundle).reset_token()
    return {"status": "token reset"}
