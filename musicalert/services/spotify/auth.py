import asyncio

import httpx
from loguru import logger

from musicalert.core.clock import Clock, system_clock
from musicalert.core.constants import TOKEN_SAFETY_MARGIN_SECONDS
from musicalert.core.events import EventEmitter, EventType
from musicalert.core.exceptions import AuthError, RateLimitOutcome
from musicalert.core.security import redact_token
from musicalert.models.token import AccessToken
from musicalert.services.spotify.client import SpotifyClient
from musicalert.services.spotify.rate_limit import parse_retry_after


class TokenManager:
    """
    Owns the client-credentials token and its expiry.

    Concurrent callers that find the token expired all await the same
    in-flight refresh task, so at most one credential request runs at a time.
    """

    def __init__(
        self,
        client: SpotifyClient,
        client_id: str | None,
        client_secret: str | None,
        token_path: str = "/api/token",
        safety_margin: float = TOKEN_SAFETY_MARGIN_SECONDS,
        clock: Clock | None = None,
        events: EventEmitter | None = None,
    ):
        self.client = client
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_path = token_path
        self.safety_margin = safety_margin
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self._token: AccessToken | None = None
        self._refresh_task: asyncio.Task | None = None

    @property
    def token(self) -> AccessToken | None:
        return self._token

    def seconds_until_expiry(self) -> int:
        if self._token is None:
            return 0
        return self._token.expires_in(self.clock.time())

    def invalidate(self, stale: AccessToken | None = None) -> None:
        """
        Drop the cached token so the next call refreshes.

        When ``stale`` is given, only drop the cache if it still holds that
        token; a concurrent refresh may already have replaced it.
        """
        if stale is not None and self._token is not stale:
            return
        self._token = None

    async def get_valid_token(self) -> AccessToken:
        token = self._token
        if token is not None and token.is_usable(self.clock.time(), self.safety_margin):
            return token

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._refresh())
        # shield: one impatient caller must not cancel the refresh for everyone else
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> AccessToken:
        try:
            return await self._fetch_token()
        finally:
            # Cleared before the task settles, so a late caller starts a fresh refresh
            if self._refresh_task is asyncio.current_task():
                self._refresh_task = None

    async def _fetch_token(self) -> AccessToken:
        if not self.client_id or not self.client_secret:
            raise AuthError("Spotify client credentials are not configured")

        logger.info("Requesting new Spotify access token")
        response = await self.client.send(
            "POST",
            self.token_path,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if response.status_code == 429:
            raise RateLimitOutcome(parse_retry_after(response.headers.get("Retry-After")))

        payload = self._decode(response)
        if payload.get("error") or not response.is_success:
            error = payload.get("error") or f"status {response.status_code}"
            description = payload.get("error_description")
            message = f"Authentication error: {error}" + (f" ({description})" if description else "")
            logger.error(message)
            raise AuthError(message, details={"status": response.status_code})

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthError("Authentication error: response carried no access token")

        try:
            expires_in = int(payload.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise AuthError(f"Authentication error: invalid expires_in {payload.get('expires_in')!r}") from e
        token = AccessToken(value=access_token, expires_at=self.clock.time() + expires_in)
        self._token = token

        logger.info(f"Obtained access token {redact_token(access_token)} valid for {expires_in}s")
        self.events.emit(EventType.TOKEN_REFRESHED, "Connected to Spotify", expires_in=expires_in)
        return token

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
