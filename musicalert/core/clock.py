import asyncio
import time


class Clock:
    """Wall-clock time and cooperative sleeping, injectable for tests."""

    def time(self) -> float:
        """Current time in seconds since the epoch."""
        return time.time()

    def time_ms(self) -> int:
        return round(self.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


system_clock = Clock()
