"""Test configuration and fixtures"""

import asyncio
from collections.abc import Callable

import httpx
import pytest

from musicalert.core.clock import Clock
from musicalert.core.constants import DEFAULT_RETRY_AFTER_SECONDS
from musicalert.core.events import EventRecorder
from musicalert.core.settings import ClientConfig
from musicalert.models.status import ScheduleState
from musicalert.services.spotify.service import SpotifyBundle

# 2024-01-01T00:00:00Z
START_TIME = 1_704_067_200.0

Reply = Callable[[httpx.Request], httpx.Response] | Exception


def reply(status: int = 200, json=None, headers: dict | None = None) -> Callable[[httpx.Request], httpx.Response]:
    """Build a fresh response for every matching request."""

    def build(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=json, headers=headers)

    return build


class FakeClock(Clock):
    """Clock whose sleeps return at once and move time forward."""

    def __init__(self, start: float = START_TIME):
        self.now = start
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)
        await asyncio.sleep(0)


class FakeStateStore:
    def __init__(self):
        self.last_release_check: int | None = None
        self.initial_rate_limit: int | None = None

    async def get_schedule_state(self) -> ScheduleState:
        return ScheduleState(last_check_at=self.last_release_check)

    async def set_last_release_check(self, timestamp_ms: int) -> bool:
        self.last_release_check = timestamp_ms
        return True

    async def get_initial_rate_limit(self) -> int:
        return self.initial_rate_limit or DEFAULT_RETRY_AFTER_SECONDS

    async def set_initial_rate_limit(self, seconds: int) -> bool:
        self.initial_rate_limit = seconds
        return True


class FakeSpotify:
    """
    In-memory stand-in for the accounts service and the Web API.

    Routes map an API path (without /v1) to a list of replies; replies are
    consumed in order and the last one repeats.
    """

    def __init__(self):
        self.routes: dict[str, list[Reply]] = {}
        self.token_replies: list[Reply] = []
        self.token_calls = 0
        self.token_delay = 0.0
        self.api_requests: list[httpx.Request] = []

    def add(self, path: str, *replies: Reply) -> None:
        self.routes[path] = list(replies)

    def api_paths(self) -> list[str]:
        return [r.url.path.removeprefix("/v1") for r in self.api_requests]

    @staticmethod
    def _next(replies: list[Reply]) -> Reply:
        return replies.pop(0) if len(replies) > 1 else replies[0]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "accounts.spotify.com":
            self.token_calls += 1
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            if self.token_replies:
                result = self._next(self.token_replies)
            else:
                result = reply(200, {"access_token": f"token-{self.token_calls}", "expires_in": 3600})
        else:
            self.api_requests.append(request)
            replies = self.routes.get(request.url.path.removeprefix("/v1"))
            if not replies:
                return httpx.Response(404, json={"error": {"status": 404, "message": "Non existing id"}})
            result = self._next(replies)

        if isinstance(result, Exception):
            raise result
        return result(request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_store():
    return FakeStateStore()


@pytest.fixture
def spotify():
    return FakeSpotify()


@pytest.fixture
def config():
    return ClientConfig(client_id="test-client", client_secret="test-secret")


@pytest.fixture
def bundle(config, spotify, clock, state_store):
    return SpotifyBundle(config, state_store=state_store, clock=clock, transport=httpx.MockTransport(spotify.handler))


@pytest.fixture
def events(bundle):
    recorder = EventRecorder()
    bundle.events.subscribe(recorder)
    return recorder


def artist_json(artist_id: str, name: str | None = None, **extra) -> dict:
    return {
        "id": artist_id,
        "name": name or artist_id.upper(),
        "genres": extra.pop("genres", ["techno"]),
        "popularity": extra.pop("popularity", 50),
        "images": [],
        "followers": {"href": None, "total": extra.pop("followers", 1000)},
        **extra,
    }


def album_json(album_id: str, name: str, release_date: str, album_type: str = "album", artists=None) -> dict:
    return {
        "id": album_id,
        "name": name,
        "release_date": release_date,
        "release_date_precision": "day",
        "album_type": album_type,
        "total_tracks": 1,
        "artists": artists or [{"id": "a1", "name": "A1"}],
        "images": [],
    }
