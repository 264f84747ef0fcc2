"""
Event Hub
=========
Broadcast channels for ticks, status transitions and errors.

Every listener receives each event published after it attached; there is
no replay for late listeners. Listeners are either plain callbacks or
async streams. A stream buffers into a bounded queue and drops the oldest
event when a slow consumer lets it fill up.

Example:
    hub = EventHub()
    detach = hub.ticks.listen(lambda tick: print(tick.symbol, tick.quote))

    async for status in hub.status.stream():
        print(status)
"""

import asyncio
import logging
from typing import Callable, Generic, List, TypeVar

from .models import ConnectionStatus, Tick
from .exceptions import FeedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STREAM_SIZE = 1000

_CLOSED = object()


class ChannelStream(Generic[T]):
    """Async iterator over the events of one channel."""

    def __init__(self, channel: "EventChannel[T]", maxsize: int):
        self._channel = channel
        self._maxsize = maxsize
        # maxsize is enforced in _put; the end marker does not count against it
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False
        self.dropped = 0

    def _put(self, item) -> None:
        if self._maxsize > 0 and self._queue.qsize() >= self._maxsize:
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(item)

    def _end(self) -> None:
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Detach from the channel and end iteration once the buffer drains."""
        self._channel._remove_stream(self)
        self._end()

    def __aiter__(self) -> "ChannelStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item


class EventChannel(Generic[T]):
    """One broadcast channel with any number of listeners."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[[T], None]] = []
        self._streams: List[ChannelStream[T]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        return len(self._callbacks) + len(self._streams)

    def listen(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback for every future event.

        Returns:
            A function that detaches the callback
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

        def detach() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return detach

    def stream(self, maxsize: int = DEFAULT_STREAM_SIZE) -> ChannelStream[T]:
        """Open an async stream of future events (ends when the channel closes)."""
        stream: ChannelStream[T] = ChannelStream(self, maxsize)
        if self._closed:
            stream._end()
        else:
            self._streams.append(stream)
        return stream

    def publish(self, event: T) -> bool:
        """
        Deliver an event to all listeners in registration order.

        Returns:
            False if the channel is closed and nothing was delivered
        """
        if self._closed:
            logger.debug(f"Dropped {self.name} event on closed channel")
            return False

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"{self.name} callback error: {e}")

        for stream in list(self._streams):
            stream._put(event)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._callbacks.clear()
        for stream in list(self._streams):
            stream._end()
        self._streams.clear()

    def _remove_stream(self, stream: ChannelStream[T]) -> None:
        if stream in self._streams:
            self._streams.remove(stream)


class EventHub:
    """The tick, status and error channels of one market feed."""

    def __init__(self):
        self.ticks: EventChannel[Tick] = EventChannel("tick")
        self.status: EventChannel[ConnectionStatus] = EventChannel("status")
        self.errors: EventChannel[FeedError] = EventChannel("error")

    @property
    def closed(self) -> bool:
        return self.ticks.closed

    def close(self) -> None:
        for channel in (self.ticks, self.status, self.errors):
            channel.close()
        logger.debug("Event hub closed")
