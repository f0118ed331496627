from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from musicalert.core.constants import MAX_LOOKBACK_DAYS, MIN_LOOKBACK_DAYS


def clamp_lookback_days(days: int) -> int:
    """Clamp a release lookback period to the supported range."""
    return max(MIN_LOOKBACK_DAYS, min(MAX_LOOKBACK_DAYS, int(days)))


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    # Client credentials must come from the environment, never from source
    SPOTIFY_CLIENT_ID: str | None = None
    SPOTIFY_CLIENT_SECRET: str | None = None
    SPOTIFY_API_BASE_URL: str = "https://api.spotify.com/v1"
    SPOTIFY_ACCOUNTS_BASE_URL: str = "https://accounts.spotify.com"
    SPOTIFY_MARKET: str = "NL"
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    MAX_NETWORK_RETRIES: int = 3

    PORT: int = 8000
    APP_ENV: Literal["development", "production"] = "production"
    LOG_LEVEL: str = "INFO"

    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_STATE_KEY: str = "musicalert:state:"

    DEFAULT_RELEASE_LOOKBACK_DAYS: int = 7
    RELEASE_BATCH_SIZE: int = 5
    # Pacing keeps the release check below the practical rate ceiling
    INTRA_BATCH_DELAY_SECONDS: float = 0.1
    INTER_BATCH_DELAY_SECONDS: float = 0.5

    @field_validator("DEFAULT_RELEASE_LOOKBACK_DAYS")
    @classmethod
    def _clamp_lookback(cls, value: int) -> int:
        return clamp_lookback_days(value)


settings = Settings()
