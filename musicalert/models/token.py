from pydantic import BaseModel, ConfigDict


class AccessToken(BaseModel):
    """Bearer token for the catalog API. Replaced as a whole, never updated in place."""

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: float

    def is_usable(self, now: float, safety_margin: float) -> bool:
        return now < self.expires_at - safety_margin

    def expires_in(self, now: float) -> int:
        return max(0, int(self.expires_at - now))
