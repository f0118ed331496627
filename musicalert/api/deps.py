from fastapi import Request

from musicalert.core.events import EventRecorder
from musicalert.services.spotify.service import SpotifyBundle


def get_bundle(request: Request) -> SpotifyBundle:
    return request.app.state.bundle


def get_event_recorder(request: Request) -> EventRecorder:
    return request.app.state.events
