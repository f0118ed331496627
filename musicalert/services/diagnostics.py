from loguru import logger

from musicalert.core.exceptions import CatalogError, RateLimitOutcome
from musicalert.core.security import redact_token
from musicalert.models.catalog import Artist
from musicalert.models.status import CheckResult, DiagnosticsReport
from musicalert.services.spotify.service import SpotifyBundle

DEFAULT_ARTIST_ID = "4q3ewBCX7sLwd24euuV69X"
# Wider than the normal lookback so a healthy check usually finds something
DIAGNOSTIC_LOOKBACK_DAYS = 30


class Diagnostics:
    """Smoke checks against the live API, for troubleshooting a deployment."""

    def __init__(self, bundle: SpotifyBundle):
        self.bundle = bundle

    async def check_auth(self) -> CheckResult:
        try:
            token = await self.bundle.tokens.get_valid_token()
        except (CatalogError, RateLimitOutcome) as e:
            logger.error(f"API authentication check failed: {e}")
            return CheckResult(name="auth", ok=False, detail=str(e))
        return CheckResult(name="auth", ok=True, detail=f"token {redact_token(token.value)}")

    async def check_artist(self, artist_id: str = DEFAULT_ARTIST_ID) -> CheckResult:
        try:
            artist = await self.bundle.catalog.get_artist(artist_id)
        except CatalogError as e:
            return CheckResult(name="artist_fetch", ok=False, detail=str(e))
        return CheckResult(name="artist_fetch", ok=True, detail=artist.name)

    async def check_releases(self, artist_id: str = DEFAULT_ARTIST_ID) -> CheckResult:
        try:
            releases = await self.bundle.catalog.get_artist_releases(artist_id)
        except CatalogError as e:
            return CheckResult(name="releases_fetch", ok=False, detail=str(e))
        first = f", first: {releases[0].name}" if releases else ""
        return CheckResult(name="releases_fetch", ok=True, detail=f"{len(releases)} releases{first}")

    async def check_new_releases(self, followed: list[Artist]) -> CheckResult:
        if not followed:
            return CheckResult(name="new_releases", ok=True, detail="skipped: no followed artists given")
        try:
            releases = await self.bundle.releases.find_new_releases(
                followed, DIAGNOSTIC_LOOKBACK_DAYS, record_check=False
            )
        except CatalogError as e:
            return CheckResult(name="new_releases", ok=False, detail=str(e))
        return CheckResult(name="new_releases", ok=True, detail=f"{len(releases)} new releases")

    async def run(self, artist_id: str = DEFAULT_ARTIST_ID, followed: list[Artist] | None = None) -> DiagnosticsReport:
        report = DiagnosticsReport(
            checks=[
                await self.check_auth(),
                await self.check_artist(artist_id),
                await self.check_releases(artist_id),
                await self.check_new_releases(followed or []),
            ]
        )
        summary = ", ".join(f"{c.name}={'OK' if c.ok else 'FAILED'}" for c in report.checks)
        logger.info(f"Diagnostics finished: {summary}")
        return report

    def reset_token(self) -> None:
        """Drop the cached token; the next call requests a new one."""
        self.bundle.tokens.invalidate()
        logger.info("API token reset. Next API call will request a new token.")
