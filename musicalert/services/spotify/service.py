import httpx
from loguru import logger

from musicalert.core.clock import Clock, system_clock
from musicalert.core.events import EventEmitter
from musicalert.core.settings import ClientConfig
from musicalert.services.releases.aggregator import ReleaseAggregator
from musicalert.services.spotify.auth import TokenManager
from musicalert.services.spotify.catalog import CatalogClient
from musicalert.services.spotify.client import SpotifyClient
from musicalert.services.spotify.executor import RequestExecutor
from musicalert.services.spotify.gate import RateLimitGate
from musicalert.services.spotify.rate_limit import RateLimitWindow
from musicalert.services.state_store import StateStore


class SpotifyBundle:
    """
    A unified bundle of the Spotify client components.
    Built from an explicit ClientConfig; every instance owns its own token,
    rate-limit window and request queue.
    """

    def __init__(
        self,
        config: ClientConfig,
        state_store: StateStore | None = None,
        clock: Clock | None = None,
        events: EventEmitter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self.state_store = state_store

        self._api_client = SpotifyClient(
            config.api_base_url, config.timeout, config.retry_policy, self.clock, transport
        )
        self._accounts_client = SpotifyClient(
            config.accounts_base_url, config.timeout, config.retry_policy, self.clock, transport
        )

        self.window = RateLimitWindow(initial_duration_seconds=config.default_retry_after)
        self.tokens = TokenManager(
            self._accounts_client,
            config.client_id,
            config.client_secret,
            token_path=config.token_path,
            safety_margin=config.token_safety_margin,
            clock=self.clock,
            events=self.events,
        )
        self.executor = RequestExecutor(
            self._api_client,
            self.tokens,
            self.window,
            clock=self.clock,
            events=self.events,
            state_store=state_store,
            default_retry_after=config.default_retry_after,
        )
        self.gate = RateLimitGate(
            self.executor, self.window, clock=self.clock, events=self.events, safety_buffer=config.queue_safety_buffer
        )
        self.catalog = CatalogClient(
            self.gate, self.tokens, self.window, market=config.market, clock=self.clock, events=self.events
        )
        self.releases = ReleaseAggregator(
            self.catalog,
            state_store=state_store,
            clock=self.clock,
            events=self.events,
            batch_size=config.batch_size,
            intra_batch_delay=config.intra_batch_delay,
            inter_batch_delay=config.inter_batch_delay,
        )

    async def load_state(self) -> None:
        """Restore the last observed rate-limit length for status displays."""
        if self.state_store is None:
            return
        self.window.initial_duration_seconds = await self.state_store.get_initial_rate_limit()
        logger.debug(f"Restored initial rate limit of {self.window.initial_duration_seconds}s")

    async def close(self):
        """Fail queued requests and close all underlying HTTP clients."""
        await self.gate.close()
        await self._api_client.close()
        await self._accounts_client.close()
