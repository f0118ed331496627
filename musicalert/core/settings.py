from pydantic import BaseModel, Field

from musicalert.core.config import Settings
from musicalert.core.constants import (
    DEFAULT_RETRY_AFTER_SECONDS,
    QUEUE_SAFETY_BUFFER_SECONDS,
    TOKEN_SAFETY_MARGIN_SECONDS,
)
from musicalert.core.retry import RetryPolicy


class ClientConfig(BaseModel):
    """Everything a SpotifyBundle needs, injected instead of read from globals."""

    client_id: str | None = None
    client_secret: str | None = None
    api_base_url: str = "https://api.spotify.com/v1"
    accounts_base_url: str = "https://accounts.spotify.com"
    token_path: str = "/api/token"
    market: str = "NL"
    timeout: float = 10.0
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)

    token_safety_margin: float = TOKEN_SAFETY_MARGIN_SECONDS
    default_retry_after: int = DEFAULT_RETRY_AFTER_SECONDS
    queue_safety_buffer: float = QUEUE_SAFETY_BUFFER_SECONDS

    batch_size: int = Field(default=5, ge=1)
    intra_batch_delay: float = Field(default=0.1, ge=0)
    inter_batch_delay: float = Field(default=0.5, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClientConfig":
        return cls(
            client_id=settings.SPOTIFY_CLIENT_ID,
            client_secret=settings.SPOTIFY_CLIENT_SECRET,
            api_base_url=settings.SPOTIFY_API_BASE_URL,
            accounts_base_url=settings.SPOTIFY_ACCOUNTS_BASE_URL,
            market=settings.SPOTIFY_MARKET,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            retry_policy=RetryPolicy(max_retries=settings.MAX_NETWORK_RETRIES),
            batch_size=settings.RELEASE_BATCH_SIZE,
            intra_batch_delay=settings.INTRA_BATCH_DELAY_SECONDS,
            inter_batch_delay=settings.INTER_BATCH_DELAY_SECONDS,
        )
