import time
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field


class EventType(str, Enum):
    LOADING_STARTED = "loading_started"
    LOADING_FINISHED = "loading_finished"
    TOKEN_REFRESHED = "token_refreshed"
    RATE_LIMITED = "rate_limited"
    RATE_LIMIT_CLEARED = "rate_limit_cleared"
    REQUEST_FAILED = "request_failed"


class ClientEvent(BaseModel):
    """A state change of the client that a presentation layer may display."""

    type: EventType
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)


Subscriber = Callable[[ClientEvent], None]


class EventEmitter:
    """
    Observer registry for client state changes.

    Subscribers are plain callables; a failing subscriber is logged and
    never affects the client or the other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event_type: EventType, message: str = "", **data: Any) -> ClientEvent:
        event = ClientEvent(type=event_type, message=message, data=data)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.exception(f"Event subscriber failed on {event_type.value}: {e}")
        return event

    @contextmanager
    def loading(self, message: str) -> Iterator[None]:
        """Bracket a long-running operation with loading started/finished events."""
        self.emit(EventType.LOADING_STARTED, message)
        try:
            yield
        finally:
            self.emit(EventType.LOADING_FINISHED, message)


class EventRecorder:
    """Subscriber keeping the most recent events in memory for status reporting."""

    def __init__(self, maxlen: int = 50) -> None:
        self._events: deque[ClientEvent] = deque(maxlen=maxlen)

    def __call__(self, event: ClientEvent) -> None:
        self._events.append(event)

    def recent(self, limit: int = 20) -> list[ClientEvent]:
        return list(self._events)[-limit:]
