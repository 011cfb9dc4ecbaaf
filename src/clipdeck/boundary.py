"""Interfaces the engine consumes from the capture process, the history store and settings.

Every call across these boundaries is a coroutine that may fail; implementations raise
``BoundaryError`` for rejected requests.
"""

import asyncio
from typing import Protocol

from clipdeck.models import ActionDescriptor, ClipboardEntry


class BoundaryError(Exception):
    """An external call was rejected or could not be delivered."""


class CaptureCommands(Protocol):
    async def start_capture(self) -> None: ...

    async def stop_capture(self) -> None: ...

    async def query_active(self) -> bool: ...

    async def write_system_clipboard(self, text: str) -> None: ...

    async def open_external_url(self, url: str) -> None: ...


class HistoryStore(Protocol):
    async def fetch_history(self, limit: int) -> list[ClipboardEntry]: ...


class ActionSource(Protocol):
    async def load_actions(self) -> list[ActionDescriptor]: ...


_CLOSED = object()


class Subscription:
    """In-order stream of entries from an EventChannel, ended by close()."""

    def __init__(self, channel: "EventChannel"):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, entry: ClipboardEntry) -> None:
        if not self._closed:
            self._queue.put_nowait(entry)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ClipboardEntry:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel._unsubscribe(self)
        self._queue.put_nowait(_CLOSED)


class EventChannel:
    """Fan-out of captured entries to every live subscription."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    async def publish(self, entry: ClipboardEntry) -> None:
        for subscription in list(self._subscriptions):
            subscription._deliver(entry)

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
