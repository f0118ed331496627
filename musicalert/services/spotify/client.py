import httpx

from musicalert.core.base_client import BaseClient
from musicalert.core.clock import Clock
from musicalert.core.retry import RetryPolicy
from musicalert.core.version import __version__


class SpotifyClient(BaseClient):
    """
    HTTP transport for one Spotify host (Web API or accounts service).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {
            "User-Agent": f"MusicAlert/{__version__}",
            "Accept": "application/json",
        }
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            retry_policy=retry_policy,
            headers=headers,
            clock=clock,
            transport=transport,
        )

    async def send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a request; transport failures are retried, statuses are left to the caller."""
        return await self._request(method, url, **kwargs)
