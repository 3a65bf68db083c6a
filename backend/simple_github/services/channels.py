"""Single-producer, multi-consumer notification channels.

``StateChannel`` replays its latest value to every new subscriber, which is
what consumers of tokens, loading flags and result lists need. ``EventChannel``
delivers each event only to consumers subscribed at publish time, for
transient things like error messages.

Publishing must happen on the event loop that owns the subscribers.
"""

import asyncio
from typing import Generic, List, TypeVar

T = TypeVar("T")

_CLOSED = object()
_UNSET = object()


class Subscription(Generic[T]):
    """One consumer's view of a channel. Iterate it, ``aclose()`` to detach."""

    def __init__(self, channel: "_Channel[T]", queue: asyncio.Queue):
        self._channel = channel
        self._queue = queue
        self._done = False

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            await self.aclose()
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self._done = True
        self._channel._detach(self._queue)


class _Channel(Generic[T]):
    def __init__(self):
        self._queues: List[asyncio.Queue] = []
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def _broadcast(self, item) -> None:
        for queue in list(self._queues):
            queue.put_nowait(item)

    def _detach(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._broadcast(_CLOSED)


class StateChannel(_Channel[T]):
    def __init__(self, initial=_UNSET):
        super().__init__()
        self._value = initial

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> T:
        if self._value is _UNSET:
            raise LookupError("channel has no value yet")
        return self._value

    def publish(self, value: T) -> None:
        self._value = value
        if not self._closed:
            self._broadcast(value)

    def subscribe(self) -> "Subscription[T]":
        queue: asyncio.Queue = asyncio.Queue()
        if self._value is not _UNSET:
            queue.put_nowait(self._value)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)
        return Subscription(self, queue)


class EventChannel(_Channel[T]):
    def publish(self, event: T) -> None:
        if not self._closed:
            self._broadcast(event)

    def subscribe(self) -> "Subscription[T]":
        queue: asyncio.Queue = asyncio.Queue()
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)
        return Subscription(self, queue)
