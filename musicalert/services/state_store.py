import redis.asyncio as redis
from loguru import logger

from musicalert.core.config import settings
from musicalert.core.constants import DEFAULT_RETRY_AFTER_SECONDS
from musicalert.models.status import ScheduleState

LAST_RELEASE_CHECK = "lastReleaseCheck"
INITIAL_RATE_LIMIT = "initialRateLimit"


class StateStore:
    """
    Redis-backed store for the two values that survive restarts:
    the last completed release check and the last observed rate-limit length.

    Redis failures are logged and reported as "no value"; they never break
    a catalog call.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        key_prefix: str | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        self.redis_url = redis_url if redis_url is not None else settings.REDIS_URL
        self.key_prefix = key_prefix if key_prefix is not None else settings.REDIS_STATE_KEY
        self._client = client
        if client is None and not self.redis_url:
            logger.warning("REDIS_URL is not set. State will not survive restarts until Redis is configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for StateStore")
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=getattr(settings, "REDIS_MAX_CONNECTIONS", 20),
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def _format_key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    async def _get_int(self, name: str) -> int | None:
        key = self._format_key(name)
        try:
            client = await self.get_client()
            value = await client.get(key)
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to get key '{key}' from Redis: {exc}")
            return None
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Ignoring non-integer value {value!r} stored under '{key}'")
            return None

    async def _set_int(self, name: str, value: int) -> bool:
        key = self._format_key(name)
        try:
            client = await self.get_client()
            return bool(await client.set(key, str(int(value))))
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to set key '{key}' in Redis: {exc}")
            return False

    async def get_schedule_state(self) -> ScheduleState:
        return ScheduleState(last_check_at=await self._get_int(LAST_RELEASE_CHECK))

    async def set_last_release_check(self, timestamp_ms: int) -> bool:
        return await self._set_int(LAST_RELEASE_CHECK, timestamp_ms)

    async def get_initial_rate_limit(self) -> int:
        """Last observed rate-limit window in seconds, for progress displays only."""
        value = await self._get_int(INITIAL_RATE_LIMIT)
        return value if value and value > 0 else DEFAULT_RETRY_AFTER_SECONDS

    async def set_initial_rate_limit(self, seconds: int) -> bool:
        return await self._set_int(INITIAL_RATE_LIMIT, seconds)

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("StateStore Redis client closed")
            except (redis.RedisError, OSError) as exc:
                logger.warning(f"Failed to close StateStore Redis client: {exc}")
            finally:
                self._client = None
