import httpx
from loguru import logger

from musicalert.core.clock import Clock, system_clock
from musicalert.core.exceptions import NetworkError
from musicalert.core.retry import RetryPolicy


class BaseClient:
    """
    Base asynchronous HTTP client with network-level retry and logging.

    Only transport failures (connection errors, timeouts) are retried here.
    Any HTTP response, whatever its status, is returned to the caller for
    classification.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        headers: dict[str, str] | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.headers = headers or {}
        self.clock = clock or system_clock
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx.AsyncClient instance."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a request, retrying transport failures with exponential backoff."""
        client = await self.get_client()
        retry = 0

        while True:
            try:
                return await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                retry += 1
                if not self.retry_policy.should_retry(retry):
                    logger.error(f"Request failed after {retry} attempts ({method} {url}): {e!r}")
                    raise NetworkError(f"Network error on {method} {url}: {e!r}", e) from e
                wait_time = self.retry_policy.delay_for(retry)
                logger.warning(
                    f"Network error ({method} {url}): {e!r}. "
                    f"Retrying in {wait_time}s... (Attempt {retry}/{self.retry_policy.max_retries})"
                )
                await self.clock.sleep(wait_time)
