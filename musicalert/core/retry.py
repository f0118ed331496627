from pydantic import BaseModel, Field


class RetryPolicy(BaseModel):
    """
    Exponential backoff for network-level failures.

    The n-th retry (1-based) waits ``base_delay * multiplier ** n`` seconds,
    so the defaults give 2s, 4s and 8s.
    """

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)

    def delay_for(self, retry: int) -> float:
        return self.base_delay * (self.multiplier**retry)

    def should_retry(self, retry: int) -> bool:
        return retry <= self.max_retries
