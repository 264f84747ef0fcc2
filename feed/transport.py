"""
Socket transport for the market feed.

MarketFeed talks to the socket only through ``Transport.connect``, which
returns a connection supporting ``await send(text)``, ``await close(code)``
and ``async for frame in connection``. The websockets client connection
already has that shape; tests substitute an in-memory fake.
"""

import logging
from typing import AsyncIterator, Protocol, Union

import websockets

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]


class Connection(Protocol):
    async def send(self, message: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    def __aiter__(self) -> AsyncIterator[Frame]: ...


class Transport(Protocol):
    async def connect(self, url: str) -> Connection: ...


class WebSocketTransport:
    """Opens connections with the websockets client."""

    # Heartbeat configuration
    PING_INTERVAL = 30  # seconds
    PING_TIMEOUT = 10
    CLOSE_TIMEOUT = 5
    OPEN_TIMEOUT = 10
    MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10MB, the full catalog is large

    async def connect(self, url: str) -> Connection:
        logger.info(f"Connecting to WebSocket: {url[:50]}...")
        return await websockets.connect(
            url,
            open_timeout=self.OPEN_TIMEOUT,
            ping_interval=self.PING_INTERVAL,
            ping_timeout=self.PING_TIMEOUT,
            close_timeout=self.CLOSE_TIMEOUT,
            max_size=self.MAX_MESSAGE_SIZE,
        )
