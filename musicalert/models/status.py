from pydantic import BaseModel, Field

from musicalert.core.events import ClientEvent


class ApiStats(BaseModel):
    """Snapshot of token and rate-limit state for status displays."""

    token_expires_in: int = 0
    rate_limited_for: int = 0
    queued_requests: int = 0
    is_rate_limited: bool = False
    # Display heuristic only: length of the last observed rate-limit window
    initial_rate_limit: int = 30
    rate_limit_pct_complete: float = 100.0


class ScheduleState(BaseModel):
    last_check_at: int | None = Field(default=None, description="Epoch millis of the last completed release check")


class StatusReport(BaseModel):
    stats: ApiStats
    schedule: ScheduleState
    events: list[ClientEvent] = Field(default_factory=list)


class CheckResult(BaseModel):
    name: str
    ok: bool
    detail: str = ""


class DiagnosticsReport(BaseModel):
    checks: list[CheckResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)
