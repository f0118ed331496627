import asyncio

import httpx
import pytest
from conftest import reply

from musicalert.core.clock import Clock
from musicalert.core.events import EventType
from musicalert.core.exceptions import ApiError, NetworkError
from musicalert.services.spotify.executor import RequestDescriptor
from musicalert.services.spotify.service import SpotifyBundle


def get(path: str) -> RequestDescriptor:
    return RequestDescriptor(path=path)


class StalledClock(Clock):
    """Sleeps never finish, so queued requests stay queued."""

    def __init__(self):
        self._never = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        await self._never.wait()


class TestRateLimitGate:
    @pytest.mark.asyncio
    async def test_passes_through_when_not_limited(self, bundle, spotify, clock):
        spotify.add("/artists/a", reply(200, {"id": "a"}))

        assert await bundle.gate.schedule(get("/artists/a")) == {"id": "a"}
        assert bundle.gate.queued_requests == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limited_request_is_replayed_after_window(self, bundle, spotify, clock, events):
        spotify.add("/artists/a", reply(429, {}, headers={"Retry-After": "4"}), reply(200, {"id": "a"}))

        assert await bundle.gate.schedule(get("/artists/a")) == {"id": "a"}

        assert clock.sleeps == [5.0]
        assert spotify.api_paths() == ["/artists/a", "/artists/a"]
        types = [e.type for e in events.recent()]
        assert types.index(EventType.RATE_LIMITED) < types.index(EventType.RATE_LIMIT_CLEARED)

    @pytest.mark.asyncio
    async def test_queued_requests_run_in_arrival_order(self, bundle, spotify, clock):
        for name in "abc":
            spotify.add(f"/artists/{name}", reply(200, {"id": name}))
        bundle.window.open(clock.time(), 10)

        results = await asyncio.gather(*(bundle.gate.schedule(get(f"/artists/{n}")) for n in "abc"))

        assert [r["id"] for r in results] == ["a", "b", "c"]
        assert spotify.api_paths() == ["/artists/a", "/artists/b", "/artists/c"]
        assert clock.sleeps == [11.0]

    @pytest.mark.asyncio
    async def test_request_limited_again_stays_at_head(self, bundle, spotify, clock, state_store):
        spotify.add("/artists/a", reply(429, {}, headers={"Retry-After": "5"}), reply(200, {"id": "a"}))
        spotify.add("/artists/b", reply(200, {"id": "b"}))
        bundle.window.open(clock.time(), 10)

        results = await asyncio.gather(bundle.gate.schedule(get("/artists/a")), bundle.gate.schedule(get("/artists/b")))

        assert [r["id"] for r in results] == ["a", "b"]
        assert spotify.api_paths() == ["/artists/a", "/artists/a", "/artists/b"]
        assert clock.sleeps == [11.0, 6.0]
        assert state_store.initial_rate_limit == 5
        assert bundle.gate.queued_requests == 0

    @pytest.mark.asyncio
    async def test_new_requests_queue_behind_waiting_ones(self, bundle, spotify, clock):
        spotify.add("/artists/a", reply(200, {"id": "a"}))
        spotify.add("/artists/b", reply(200, {"id": "b"}))
        bundle.window.open(clock.time(), 10)

        first = asyncio.create_task(bundle.gate.schedule(get("/artists/a")))
        await asyncio.sleep(0)
        # Window over, but the queue is not empty yet
        clock.advance(20)
        second = asyncio.create_task(bundle.gate.schedule(get("/artists/b")))

        await asyncio.gather(first, second)
        assert spotify.api_paths() == ["/artists/a", "/artists/b"]

    @pytest.mark.asyncio
    async def test_queued_error_reaches_its_caller(self, bundle, spotify, clock):
        spotify.add("/artists/b", reply(200, {"id": "b"}))
        bundle.window.open(clock.time(), 3)

        results = await asyncio.gather(
            bundle.gate.schedule(get("/artists/missing")),
            bundle.gate.schedule(get("/artists/b")),
            return_exceptions=True,
        )

        assert isinstance(results[0], ApiError)
        assert results[0].status == 404
        assert results[1] == {"id": "b"}

    @pytest.mark.asyncio
    async def test_abandoned_request_still_runs_in_order(self, bundle, spotify, clock):
        spotify.add("/artists/a", reply(200, {"id": "a"}))
        spotify.add("/artists/b", reply(200, {"id": "b"}))
        bundle.window.open(clock.time(), 10)

        first = asyncio.create_task(bundle.gate.schedule(get("/artists/a")))
        second = asyncio.create_task(bundle.gate.schedule(get("/artists/b")))
        await asyncio.sleep(0)
        first.cancel()

        assert await second == {"id": "b"}
        assert first.cancelled()
        assert spotify.api_paths() == ["/artists/a", "/artists/b"]

    @pytest.mark.asyncio
    async def test_close_fails_pending_requests(self, config, spotify):
        clock = StalledClock()
        bundle = SpotifyBundle(config, clock=clock, transport=httpx.MockTransport(spotify.handler))
        bundle.window.open(clock.time(), 60)

        pending = asyncio.create_task(bundle.gate.schedule(get("/artists/a")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert bundle.gate.queued_requests == 1

        await bundle.close()

        with pytest.raises(NetworkError, match="closed"):
            await pending
        assert bundle.gate.queued_requests == 0
        assert spotify.api_requests == []
