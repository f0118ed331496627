from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from musicalert.services.state_store import StateStore


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    client.set.return_value = True
    return client


@pytest.fixture
def store(redis_client):
    return StateStore(redis_url="redis://unused", key_prefix="test:", client=redis_client)


class TestStateStore:
    @pytest.mark.asyncio
    async def test_last_release_check_roundtrip_keys(self, store, redis_client):
        assert await store.set_last_release_check(1_704_067_200_000)
        redis_client.set.assert_awaited_once_with("test:lastReleaseCheck", "1704067200000")

        redis_client.get.return_value = "1704067200000"
        state = await store.get_schedule_state()

        redis_client.get.assert_awaited_with("test:lastReleaseCheck")
        assert state.last_check_at == 1_704_067_200_000

    @pytest.mark.asyncio
    async def test_missing_schedule_state(self, store):
        assert (await store.get_schedule_state()).last_check_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored,expected", [(None, 30), ("45", 45), ("0", 30), ("-5", 30), ("junk", 30)])
    async def test_initial_rate_limit(self, store, redis_client, stored, expected):
        redis_client.get.return_value = stored

        assert await store.get_initial_rate_limit() == expected

    @pytest.mark.asyncio
    async def test_set_initial_rate_limit(self, store, redis_client):
        await store.set_initial_rate_limit(12)

        redis_client.set.assert_awaited_once_with("test:initialRateLimit", "12")

    @pytest.mark.asyncio
    async def test_redis_failures_are_absorbed(self, store, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("down")
        redis_client.set.side_effect = redis.ConnectionError("down")

        assert (await store.get_schedule_state()).last_check_at is None
        assert await store.get_initial_rate_limit() == 30
        assert await store.set_last_release_check(1) is False

    @pytest.mark.asyncio
    async def test_close(self, store, redis_client):
        await store.close()

        redis_client.aclose.assert_awaited_once()
        # Safe to call twice
        await store.close()
