from dataclasses import dataclass

from musicalert.core.constants import DEFAULT_RETRY_AFTER_SECONDS


def parse_retry_after(value: str | None, default: int = DEFAULT_RETRY_AFTER_SECONDS) -> int:
    """Seconds to wait from a Retry-After header; missing, invalid or negative values fall back to default."""
    if value is None:
        return default
    try:
        seconds = int(value.strip())
    except ValueError:
        return default
    return seconds if seconds >= 0 else default


@dataclass
class RateLimitWindow:
    """
    The "not available until" state of the remote API.

    Only the request executor opens a window; the gate and status reporting
    read it.
    """

    until: float = 0.0
    initial_duration_seconds: int = DEFAULT_RETRY_AFTER_SECONDS

    def open(self, now: float, duration: int) -> None:
        self.until = now + duration
        self.initial_duration_seconds = duration

    def is_active(self, now: float) -> bool:
        return now < self.until

    def remaining(self, now: float) -> float:
        return max(0.0, self.until - now)
