import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any

from loguru import logger

from musicalert.core.clock import Clock, system_clock
from musicalert.core.constants import QUEUE_SAFETY_BUFFER_SECONDS
from musicalert.core.events import EventEmitter, EventType
from musicalert.core.exceptions import NetworkError, RateLimitOutcome
from musicalert.services.spotify.executor import RequestDescriptor, RequestExecutor
from musicalert.services.spotify.rate_limit import RateLimitWindow


@dataclass
class QueuedRequest:
    request: RequestDescriptor
    future: asyncio.Future

    def settle(self, result: Any = None, error: BaseException | None = None) -> None:
        # The caller may have stopped waiting; the result is then simply unobserved
        if self.future.done():
            return
        if error is not None:
            self.future.set_exception(error)
        else:
            self.future.set_result(result)


class RateLimitGate:
    """
    Holds requests back while the API is rate limited.

    Requests arriving during a window (or behind already queued ones) join a
    FIFO queue. A single drain task waits for the window to close and replays
    the queue through the executor, head first. A request that gets rate
    limited again goes back to the head and the drain keeps waiting.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        window: RateLimitWindow,
        clock: Clock | None = None,
        events: EventEmitter | None = None,
        safety_buffer: float = QUEUE_SAFETY_BUFFER_SECONDS,
    ):
        self.executor = executor
        self.window = window
        self.clock = clock or system_clock
        self.events = events or EventEmitter()
        self.safety_buffer = safety_buffer
        self._queue: deque[QueuedRequest] = deque()
        self._draining = False
        self._drain_task: asyncio.Task | None = None

    @property
    def queued_requests(self) -> int:
        return len(self._queue)

    async def schedule(self, request: RequestDescriptor) -> Any:
        if self.window.is_active(self.clock.time()) or self._queue:
            wait_time = self.window.remaining(self.clock.time())
            logger.warning(f"Rate limited. Queueing {request} ({wait_time:.0f}s left in window)")
            return await self._enqueue(request)

        try:
            return await self.executor.execute(request)
        except RateLimitOutcome:
            return await self._enqueue(request)

    async def close(self) -> None:
        """Stop draining and fail whatever is still queued."""
        if self._drain_task is not None:
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
        # A task cancelled before its first step never runs its finally block
        self._draining = False
        self._drain_task = None
        while self._queue:
            self._queue.popleft().settle(error=NetworkError("Client closed before the request could be sent"))

    def _enqueue(self, request: RequestDescriptor) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._queue.append(QueuedRequest(request=request, future=future))
        self._start_drain()
        return future

    def _start_drain(self) -> None:
        if self._draining:
            return
        self._draining = True
        self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        deferred = False
        try:
            while self._queue:
                wait_time = self.window.remaining(self.clock.time())
                if wait_time > 0 or deferred:
                    logger.info(f"Waiting {wait_time:.0f}s for rate limit; {len(self._queue)} request(s) queued")
                    await self.clock.sleep(wait_time + self.safety_buffer)

                entry = self._queue[0]
                try:
                    result = await self.executor.execute(entry.request)
                except RateLimitOutcome:
                    deferred = True
                    continue
                except Exception as e:
                    self._queue.popleft()
                    entry.settle(error=e)
                else:
                    self._queue.popleft()
                    entry.settle(result=result)
                deferred = False
        finally:
            self._draining = False
            self._drain_task = None

        logger.info("Request queue drained")
        self.events.emit(EventType.RATE_LIMIT_CLEARED, "Spotify API available again")
