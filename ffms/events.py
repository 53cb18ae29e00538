"""
Client notifications.

Consumers either register callbacks by event name (push) or iterate a
Subscription of typed event values (pull).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger("ffms")

INITIALIZED = "initialized"
FLAG_UPDATED = "flag_updated"
DISCONNECTED = "disconnected"
ERROR = "error"

EVENT_NAMES = (INITIALIZED, FLAG_UPDATED, DISCONNECTED, ERROR)


@dataclass(frozen=True)
class Initialized:
    """The bulk fetch completed; carries a snapshot of the whole cache."""

    flags: Dict[str, bool] = field(default_factory=dict)

    kind = INITIALIZED

    def args(self) -> Tuple[Any, ...]:
        return (dict(self.flags),)


@dataclass(frozen=True)
class FlagUpdated:
    """A live update was applied to the cache."""

    flag: str
    state: bool

    kind = FLAG_UPDATED

    def args(self) -> Tuple[Any, ...]:
        return (self.flag, self.state)


@dataclass(frozen=True)
class Disconnected:
    """The live channel closed."""

    kind = DISCONNECTED

    def args(self) -> Tuple[Any, ...]:
        return ()


@dataclass(frozen=True)
class ErrorEvent:
    """The live channel reported an error."""

    error: BaseException

    kind = ERROR

    def args(self) -> Tuple[Any, ...]:
        return (self.error,)


Event = Union[Initialized, FlagUpdated, Disconnected, ErrorEvent]

_CLOSED = object()


class Subscription:
    """
    Pull-style view of client events.

    Example:
        ```python
        async with client.subscribe() as events:
            async for event in events:
                if isinstance(event, FlagUpdated):
                    ...
        ```
    """

    def __init__(self, emitter: "EventEmitter", max_size: int = 0):
        self._emitter = emitter
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._closed = False

    def _put(self, event: Event) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event subscription is full, dropping {event.kind} event")

    async def get(self) -> Event:
        """Wait for the next event. Raises StopAsyncIteration once closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the sentinel for any other waiter
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def get_nowait(self) -> Optional[Event]:
        """Return the next queued event, or None if nothing is pending."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop receiving events and wake any waiting consumer."""
        if self._closed:
            return
        self._closed = True
        self._emitter._unsubscribe(self)
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                break
            except asyncio.QueueFull:
                self._queue.get_nowait()

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class EventEmitter:
    """Dispatches typed events to callbacks and subscriptions."""

    def __init__(self):
        self._callbacks: Dict[str, List[Callable]] = {name: [] for name in EVENT_NAMES}
        self._subscriptions: List[Subscription] = []

    def on(self, event: str, callback: Callable) -> "EventEmitter":
        """
        Register an event callback.

        Args:
            event: Event name
            callback: Callback function

        Returns:
            Self for chaining
        """
        if event not in self._callbacks:
            raise ValueError(f"Unknown event: {event!r}")
        self._callbacks[event].append(callback)
        return self

    def off(self, event: str, callback: Callable) -> "EventEmitter":
        """
        Remove an event callback.

        Args:
            event: Event name
            callback: Callback function

        Returns:
            Self for chaining
        """
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)
        return self

    def subscribe(self, max_size: int = 0) -> Subscription:
        """
        Open a pull subscription. Must be called from within the event loop.

        Args:
            max_size: Queue bound; 0 means unbounded. Events are dropped when full.
        """
        subscription = Subscription(self, max_size)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def emit(self, event: Event) -> None:
        """Deliver an event to every callback and subscription."""
        for callback in list(self._callbacks.get(event.kind, [])):
            try:
                callback(*event.args())
            except Exception as e:
                logger.warning(f"Error in {event.kind} callback: {e}")

        for subscription in list(self._subscriptions):
            subscription._put(event)

    def close(self) -> None:
        """Close all subscriptions."""
        for subscription in list(self._subscriptions):
            subscription.close()
