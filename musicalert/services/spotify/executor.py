from typing import Any, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from musicalert.core.clock import Clock, system_clock
from musicalert.core.constants import DEFAULT_RETRY_AFTER_SECONDS
from musicalert.core.events import EventEmitter, EventType
from musicalert.core.exceptions import ApiError, AuthError, RateLimitOutcome
from musicalert.models.token import AccessToken
from musicalert.services.spotify.auth import TokenManager
from musicalert.services.spotify.client import SpotifyClient
from musicalert.services.spotify.rate_limit import RateLimitWindow, parse_retry_after


class RateLimitRecorder(Protocol):
    async def set_initial_rate_limit(self, seconds: int) -> bool: ...


class RequestDescriptor(BaseModel):
    """A fully formed API call, minus the Authorization header."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    path: str
    params: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


class RequestExecutor:
    """
    Issues a single authenticated call and classifies the response.

    - 2xx: decoded JSON body
    - 401: token refreshed, request retried exactly once
    - 429: rate-limit window opened, RateLimitOutcome raised for the gate
    - other: ApiError
    Network failures are retried with backoff by the transport.
    """

    def __init__(
        self,
        client: SpotifyClient,
        token_manager: TokenManager,
        window: RateLimitWindow,
        clock: Clock | None = None,
        events: EventEmitter | None = None,
        state_store: RateLimitRecorder | None = None,
        default_retry_after: int = DEFAULT_RETRY_AFTER_SECONDS,
    ):
        self.client = client
        self.token_manager = token_manager
        self.window = window
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self.state_store = state_store
        self.default_retry_after = default_retry_after

    async def execute(self, request: RequestDescriptor) -> Any:
        token, response = await self._send(request)

        if response.status_code == 401:
            logger.info(f"Token rejected for {request}. Getting a new one...")
            self.token_manager.invalidate(token)
            token, response = await self._send(request)
            if response.status_code == 401:
                logger.error(f"Token rejected again after refresh for {request}")
                raise AuthError(
                    "Access token rejected after refresh",
                    details={"path": request.path, "message": self._error_message(response)},
                )

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"), self.default_retry_after)
            raise await self._defer(retry_after)

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(f"{request} failed with status {response.status_code}: {message}")
            raise ApiError(response.status_code, message, details={"path": request.path})

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, "Response body is not valid JSON") from e

    async def _send(self, request: RequestDescriptor) -> tuple[AccessToken, httpx.Response]:
        try:
            token = await self.token_manager.get_valid_token()
        except RateLimitOutcome as outcome:
            raise await self._defer(outcome.retry_after) from outcome

        headers = {**request.headers, "Authorization": f"Bearer {token.value}"}
        logger.debug(f"-> {request}")
        response = await self.client.send(
            request.method,
            request.path,
            params=request.params or None,
            data=request.data,
            headers=headers,
        )
        return token, response

    async def _defer(self, duration: int) -> RateLimitOutcome:
        """Record a rate-limit window; the caller raises the returned outcome."""
        self.window.open(self.clock.time(), duration)
        logger.warning(f"Rate limited by Spotify API. Retry after {duration} seconds.")
        self.events.emit(
            EventType.RATE_LIMITED,
            f"Spotify API limit reached. Waiting {duration} seconds.",
            retry_after=duration,
            until=self.window.until,
        )
        if self.state_store is not None:
            await self.state_store.set_initial_rate_limit(duration)
        return RateLimitOutcome(duration)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("message") or "Unknown error"
        if isinstance(error, str) and error:
            return error
        return "Unknown error"
