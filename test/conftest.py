"""
Shared fixtures for the feed and explorer tests.

The fake transport stands in for the websockets client: each connection
records the frames sent to it, and the test pushes inbound frames or ends
the stream to simulate the server.
"""

import sys
import json
import asyncio
from collections import deque
from pathlib import Path
from typing import Any, Callable, List, Union

import pytest
import pytest_asyncio

# Add project root
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from feed.market_feed import MarketFeed
from feed.models import ConnectionStatus

WS_URL = "wss://ws.example.com/websockets/v3?app_id=TEST_APP_ID"

_END = object()


# ==================== Fake transport ====================


class FakeConnection:
    """In-memory connection with the send / close / async-iteration shape."""

    def __init__(self, url: str):
        self.url = url
        self.sent: List[str] = []
        self.closed = False
        self.close_code = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    @property
    def requests(self) -> List[dict]:
        return [json.loads(text) for text in self.sent]

    async def send(self, message: str) -> None:
        if self.closed:
            raise OSError("connection is closed")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self._inbox.put_nowait(_END)

    def push(self, payload: Union[dict, str, bytes]) -> None:
        """Deliver one inbound frame."""
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self._inbox.put_nowait(payload)

    def drop(self) -> None:
        """Server closes the stream."""
        self.closed = True
        self._inbox.put_nowait(_END)

    def fail(self, error: BaseException) -> None:
        """Stream raises the given error on the next read."""
        self._inbox.put_nowait(error)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeTransport:
    """Hands out FakeConnections; can be told to fail the next opens."""

    def __init__(self):
        self.attempts: List[str] = []
        self.connections: List[FakeConnection] = []
        self._failures: deque = deque()

    def fail_next(self, count: int = 1, error: Exception = None) -> None:
        for _ in range(count):
            self._failures.append(error or OSError("connection refused"))

    async def connect(self, url: str) -> FakeConnection:
        self.attempts.append(url)
        await asyncio.sleep(0)
        if self._failures:
            raise self._failures.popleft()
        connection = FakeConnection(url)
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


class Recorder:
    """Collects everything a feed publishes."""

    def __init__(self, feed: MarketFeed):
        self.ticks: List[Any] = []
        self.statuses: List[ConnectionStatus] = []
        self.errors: List[Exception] = []
        feed.on_tick(self.ticks.append)
        feed.on_status_change(self.statuses.append)
        feed.on_error(self.errors.append)

    def errors_of(self, kind: type) -> List[Exception]:
        return [error for error in self.errors if isinstance(error, kind)]


# ==================== Sample data ====================


@pytest.fixture
def ws_url() -> str:
    return WS_URL


@pytest.fixture
def catalog_records() -> List[dict]:
    """Active symbols in server order (markets deliberately interleaved)."""
    return [
        {
            "symbol": "frxEURUSD", "display_name": "EUR/USD", "symbol_type": "forex",
            "market": "forex", "market_display_name": "Forex",
            "submarket": "major_pairs", "submarket_display_name": "Major Pairs",
            "pip": 0.00001, "exchange_is_open": 1, "is_trading_suspended": 0,
        },
        {
            "symbol": "OTC_SPC", "display_name": "US 500", "symbol_type": "stockindex",
            "market": "indices", "market_display_name": "Stock Indices",
            "submarket": "americas_OTC", "submarket_display_name": "American indices",
            "pip": 0.01, "exchange_is_open": 0, "is_trading_suspended": 0,
        },
        {
            "symbol": "frxAUDJPY", "display_name": "AUD/JPY", "symbol_type": "forex",
            "market": "forex", "market_display_name": "Forex",
            "submarket": "major_pairs", "submarket_display_name": "Major Pairs",
            "pip": 0.001, "exchange_is_open": 1, "is_trading_suspended": 0,
        },
        {
            "symbol": "cryBTCUSD", "display_name": "BTC/USD", "symbol_type": "cryptocurrency",
            "market": "cryptocurrency", "market_display_name": "Cryptocurrencies",
            "submarket": "non_stable_coin", "submarket_display_name": "Cryptocurrencies",
            "pip": 0.001, "exchange_is_open": 1, "is_trading_suspended": 0,
        },
        {
            "symbol": "frxEURGBP", "display_name": "EUR/GBP", "symbol_type": "forex",
            "market": "forex", "market_display_name": "Forex",
            "submarket": "minor_pairs", "submarket_display_name": "Minor Pairs",
            "pip": 0.00001, "exchange_is_open": 1, "is_trading_suspended": 1,
        },
        {
            "symbol": "frxUSDMXN", "display_name": "USD/MXN", "symbol_type": "forex",
            "market": "forex", "market_display_name": "Forex",
            "submarket": "exotic_pairs", "submarket_display_name": "Exotic Pairs",
            "pip": 0.0001, "exchange_is_open": 1, "is_trading_suspended": 0,
        },
        {
            "symbol": "frxXAUUSD", "display_name": "Gold/USD", "symbol_type": "commodities",
            "market": "commodities", "market_display_name": "Commodities",
            "submarket": "metals", "submarket_display_name": "Metals",
            "pip": 0.01, "exchange_is_open": 1, "is_trading_suspended": 0,
        },
    ]


@pytest.fixture
def catalog_message(catalog_records) -> dict:
    return {"msg_type": "active_symbols", "active_symbols": catalog_records}


@pytest.fixture
def tick_message() -> dict:
    return {
        "msg_type": "tick",
        "echo_req": {"ticks": "frxEURUSD", "subscribe": 1},
        "subscription": {"id": "b4c3a2f1"},
        "tick": {
            "symbol": "frxEURUSD",
            "quote": 1.08953,
            "ask": 1.08955,
            "bid": 1.08951,
            "epoch": 1699876543,
            "id": "abc123",
            "pip_size": 5,
        },
    }


# ==================== Feed fixtures ====================


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def wait_until() -> Callable:
    """Poll a predicate on the running loop until it holds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met within timeout")
            await asyncio.sleep(0.005)

    return _wait_until


@pytest_asyncio.fixture
async def feed(transport):
    """Feed with a fast retry schedule and no settle delay."""
    market_feed = MarketFeed(
        max_reconnect_attempts=3,
        reconnect_delay=0.01,
        settle_delay=0,
        transport=transport,
    )
    yield market_feed
    await market_feed.dispose()


@pytest_asyncio.fixture
async def recorder(feed) -> Recorder:
    return Recorder(feed)


@pytest_asyncio.fixture
async def connected_feed(feed, recorder, transport, ws_url, catalog_message, wait_until):
    """Feed that is connected and has its catalog loaded."""
    assert await feed.connect(ws_url)
    transport.latest.push(catalog_message)
    await wait_until(lambda: feed.catalog.is_fetched)
    return feed
