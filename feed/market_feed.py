"""
Market Feed Client

This module owns the single WebSocket connection to the quote API,
multiplexes tick subscriptions over it, and recovers from drops.

Features:
    - One physical connection, guarded against duplicate sockets
    - Active-symbols catalog fetched once per connection
    - Tick subscriptions tracked locally and re-sent after reconnect
    - Bounded automatic reconnection with a fixed delay
    - Tick, status and error broadcast channels

Example Usage:
    import asyncio
    from feed.market_feed import MarketFeed

    def on_tick(tick):
        print(f"Tick: {tick.symbol} @ {tick.formatted_quote}")

    feed = MarketFeed()
    feed.on_tick(on_tick)

    async def main():
        await feed.connect("wss://ws.derivws.com/websockets/v3?app_id=1089")
        await feed.wait_for_catalog()
        await feed.subscribe_by_submarket("major_pairs")
        await asyncio.sleep(30)
        await feed.dispose()

    asyncio.run(main())
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from websockets.exceptions import ConnectionClosed, WebSocketException

from . import codec
from .catalog import InstrumentCatalog
from .events import EventHub
from .exceptions import (
    ConnectionFailedError,
    FeedError,
    FeedStateError,
    ParseError,
    ProtocolError,
    ReconnectExhaustedError,
)
from .models import ConnectionStatus, Instrument, Tick
from .subscriptions import SubscriptionTracker, SymbolSelector
from .transport import Connection, Transport, WebSocketTransport

# Configure logging
logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000


class MarketFeed:
    """
    WebSocket market data feed with subscription tracking and reconnection.

    Status moves disconnected -> connecting -> connected; any state may go
    to error, and error/disconnected go back to connecting on a manual or
    automatic retry. Automatic retry is armed by a successful open and
    disarmed by disconnect() or by spending the attempt budget.

    Attributes:
        max_reconnect_attempts: Automatic retries allowed after a drop
        reconnect_delay: Seconds to wait before each automatic retry
        settle_delay: Seconds between forget-all and the next subscribe
        events: Tick, status and error channels

    Example:
        >>> feed = MarketFeed(max_reconnect_attempts=3)
        >>> feed.on_status_change(lambda s: print(s.value))
        >>> await feed.connect(url)
        >>> await feed.switch_to_market("forex")
    """

    # Reconnection configuration
    MAX_RECONNECT_ATTEMPTS = 5
    RECONNECT_DELAY = 3.0  # seconds

    # Pause between forget_all and the next subscribe
    SETTLE_DELAY = 0.1  # seconds

    def __init__(
        self,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = RECONNECT_DELAY,
        settle_delay: float = SETTLE_DELAY,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize the Market Feed client.

        Args:
            max_reconnect_attempts: Retry budget after an unexpected drop
            reconnect_delay: Fixed delay between retries in seconds
            settle_delay: Delay inside switch_to() in seconds
            transport: Socket factory. If None, uses WebSocketTransport
        """
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.settle_delay = settle_delay
        self._transport: Transport = transport or WebSocketTransport()

        # Connection state
        self._status = ConnectionStatus.DISCONNECTED
        self._connection: Optional[Connection] = None
        self._current_url: Optional[str] = None
        self._configured_url: Optional[str] = None
        self._should_reconnect = False
        self._reconnect_attempts = 0
        self._disposed = False

        # Subscriptions and catalog
        self._subscriptions = SubscriptionTracker()
        self._catalog = InstrumentCatalog()
        self._catalog_ready = asyncio.Event()

        self.events = EventHub()

        # Tasks
        self._receive_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

        # Timing
        self._last_tick_time: float = 0

        logger.info(
            f"MarketFeed initialized (max_reconnect_attempts={max_reconnect_attempts}, "
            f"reconnect_delay={reconnect_delay}s)"
        )

    @classmethod
    def from_config(cls, config: Any, transport: Optional[Transport] = None) -> "MarketFeed":
        """Build a feed from an object carrying the reconnect settings."""
        return cls(
            max_reconnect_attempts=config.max_reconnect_attempts,
            reconnect_delay=config.reconnect_delay,
            transport=transport,
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def status(self) -> ConnectionStatus:
        """Get current connection status."""
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED and self._connection is not None

    @property
    def subscribed_symbols(self) -> List[str]:
        """Symbols currently tracked as subscribed, in subscription order."""
        return self._subscriptions.symbols

    @property
    def catalog(self) -> InstrumentCatalog:
        return self._catalog

    @property
    def active_symbols(self) -> Mapping[str, Instrument]:
        """Read-only map of the fetched instruments keyed by symbol."""
        return self._catalog.instruments

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def current_url(self) -> Optional[str]:
        return self._current_url

    def _update_status(self, new_status: ConnectionStatus) -> None:
        """Set connection status and broadcast it if it changed."""
        old_status = self._status
        if old_status == new_status:
            return
        self._status = new_status
        logger.info(f"Feed status changed: {old_status.value} -> {new_status.value}")
        self.events.status.publish(new_status)

    def _emit_error(self, error: FeedError) -> None:
        logger.warning(f"Feed error: {error}")
        self.events.errors.publish(error)

    # =========================================================================
    # Listener registration
    # =========================================================================

    def on_tick(self, callback: Callable[[Tick], None]) -> Callable[[], None]:
        """
        Register a callback for tick updates.

        Example:
            >>> def handle_tick(tick):
            ...     print(f"{tick.symbol}: {tick.formatted_quote}")
            >>> feed.on_tick(handle_tick)
        """
        return self.events.ticks.listen(callback)

    def on_status_change(self, callback: Callable[[ConnectionStatus], None]) -> Callable[[], None]:
        """Register a callback for status transitions."""
        return self.events.status.listen(callback)

    def on_error(self, callback: Callable[[FeedError], None]) -> Callable[[], None]:
        """Register a callback for errors."""
        return self.events.errors.listen(callback)

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self, url: str) -> bool:
        """
        Open the connection to the quote API.

        A no-op when already connecting or connected. Otherwise the retry
        budget is reset, any pending automatic retry is cancelled and the
        socket is opened. On success the catalog is requested if it is
        still empty, and symbols still tracked from an earlier connection
        are subscribed again.

        Args:
            url: Complete WebSocket URL, including the app_id query parameter

        Returns:
            True if the connection is open
        """
        self._check_not_disposed()
        if self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return self.is_connected

        self._configured_url = url
        self._reconnect_attempts = 0
        await self._cancel_reconnect()
        connected = await self._open(url)
        if connected and self._subscriptions:
            await self.resubscribe_tracked()
        return connected

    async def _open(self, url: str) -> bool:
        if self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return self.is_connected

        self._update_status(ConnectionStatus.CONNECTING)
        self._current_url = url

        try:
            connection = await self._transport.connect(url)
        except Exception as e:
            self._connection = None
            self._emit_error(ConnectionFailedError(f"Connection failed: {e}"))
            self._update_status(ConnectionStatus.ERROR)
            self._after_failed_attempt()
            return False

        self._connection = connection
        self._update_status(ConnectionStatus.CONNECTED)
        self._reconnect_attempts = 0
        self._should_reconnect = True
        self._last_tick_time = time.time()

        self._receive_task = asyncio.create_task(self._receive_loop(connection))
        logger.info("WebSocket connected successfully")

        if self._catalog.is_empty:
            await self.fetch_catalog()

        return True

    async def disconnect(self) -> None:
        """
        Close the connection for good.

        Disarms automatic retry, closes the socket with a normal-closure
        code, and forgets both the tracked subscriptions and the URL.
        """
        logger.info("Disconnecting from market feed...")
        await self._teardown()
        self._subscriptions.clear()
        self._current_url = None
        self._update_status(ConnectionStatus.DISCONNECTED)
        logger.info("Disconnected from market feed")

    async def reconnect(self, url: Optional[str] = None) -> bool:
        """
        Drop the current connection and open a new one.

        Unlike disconnect(), the tracked subscriptions survive and are sent
        again once the new connection is open. The retry budget is reset.

        Args:
            url: Endpoint to use. Defaults to the last configured URL

        Returns:
            True if the new connection is open

        Raises:
            FeedStateError: If no URL is known
        """
        self._check_not_disposed()
        target = url or self._current_url or self._configured_url
        if target is None:
            raise FeedStateError("No WebSocket URL known; call connect(url) first")

        logger.info("Manual reconnect requested")
        await self._teardown()
        self._update_status(ConnectionStatus.DISCONNECTED)

        return await self.connect(target)

    async def reset(self) -> None:
        """Disconnect and return the retry machinery to its initial state."""
        await self.disconnect()
        self._reconnect_attempts = 0
        self._should_reconnect = False

    async def dispose(self) -> None:
        """Disconnect and close all event channels. The feed is unusable afterwards."""
        if self._disposed:
            return
        await self.disconnect()
        self.events.close()
        self._disposed = True
        logger.info("MarketFeed disposed")

    async def _teardown(self) -> None:
        self._should_reconnect = False
        await self._cancel_reconnect()

        receive_task, self._receive_task = self._receive_task, None
        await self._cancel_task(receive_task)

        connection, self._connection = self._connection, None
        if connection is not None:
            try:
                await connection.close(code=NORMAL_CLOSURE)
            except Exception as e:
                logger.warning(f"Error closing WebSocket: {e}")

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise FeedStateError("MarketFeed has been disposed")

    # =========================================================================
    # Receiving
    # =========================================================================

    async def _receive_loop(self, connection: Connection) -> None:
        """
        Read frames until the stream ends.

        Stream errors and normal completion both end in the disconnection
        handler, unless this connection has already been replaced.
        """
        logger.debug("Starting receive loop")
        try:
            async for message in connection:
                try:
                    self._process_message(message)
                except Exception as e:
                    logger.error(f"Receive error: {e}")
                    self._emit_error(FeedError(f"Receive error: {e}"))
        except (ConnectionClosed, WebSocketException, OSError) as e:
            if connection is self._connection:
                self._emit_error(ConnectionFailedError(f"Stream error: {e}"))
        logger.debug("Receive loop ended")

        if connection is self._connection:
            self._handle_disconnection()

    def _process_message(self, raw: Any) -> None:
        try:
            message = codec.decode(raw)
        except ParseError as e:
            self._emit_error(ParseError(f"Failed to parse message: {e}", raw=e.raw))
            return

        if isinstance(message, codec.CatalogMessage):
            self._handle_catalog(message)
        elif isinstance(message, codec.ErrorMessage):
            self._emit_error(ProtocolError(message.message, code=message.code, msg_type=message.msg_type))
        elif isinstance(message, codec.TickMessage):
            self._last_tick_time = time.time()
            self.events.ticks.publish(message.tick)
        else:
            logger.debug(f"Ignoring {message.msg_type} message")

    def _handle_catalog(self, message: codec.CatalogMessage) -> None:
        if message.error:
            self._emit_error(ProtocolError(f"Failed to fetch active symbols: {message.error}",
                                           msg_type=codec.MSG_TYPE_ACTIVE_SYMBOLS))
        self._catalog.ingest(message.instruments)
        self._catalog_ready.set()

    # =========================================================================
    # Reconnection
    # =========================================================================

    def _handle_disconnection(self) -> None:
        """Handle an unexpected end of the stream."""
        if self._status == ConnectionStatus.DISCONNECTED:
            return

        self._connection = None
        self._receive_task = None
        self._update_status(ConnectionStatus.DISCONNECTED)

        if self._should_reconnect and self._reconnect_attempts < self.max_reconnect_attempts:
            if self._current_url is not None:
                self._schedule_reconnect(self._current_url)
        elif self._reconnect_attempts >= self.max_reconnect_attempts:
            self._give_up()

    def _after_failed_attempt(self) -> None:
        if not self._should_reconnect:
            return
        if self._reconnect_attempts < self.max_reconnect_attempts:
            self._schedule_reconnect(self._current_url)
        else:
            self._give_up()

    def _give_up(self) -> None:
        logger.error(f"Giving up after {self._reconnect_attempts} reconnection attempts")
        self._should_reconnect = False
        self._emit_error(ReconnectExhaustedError(self._reconnect_attempts))
        self._update_status(ConnectionStatus.DISCONNECTED)

    def _schedule_reconnect(self, url: str) -> None:
        """Arm the single retry timer, replacing any pending one."""
        pending = self._reconnect_task
        if pending is not None and pending is not asyncio.current_task() and not pending.done():
            logger.debug("Replacing pending reconnection task")
            pending.cancel()

        logger.info(
            f"Reconnection attempt {self._reconnect_attempts + 1}/{self.max_reconnect_attempts} "
            f"in {self.reconnect_delay:.1f}s..."
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(url))

    async def _reconnect_after_delay(self, url: str) -> None:
        await asyncio.sleep(self.reconnect_delay)
        self._reconnect_attempts += 1

        try:
            connected = await self._open(url)
            if connected and self._subscriptions:
                await self.resubscribe_tracked()
                logger.info("Reconnected successfully")
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        await self._cancel_task(task)

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # Catalog
    # =========================================================================

    async def fetch_catalog(self) -> bool:
        """
        Request the full active-symbols list.

        Returns:
            True if the request was handed to the socket. The catalog is
            filled when the response arrives.
        """
        return await self._send(codec.active_symbols_request(), "Failed to fetch active symbols")

    async def refresh_catalog(self) -> bool:
        """Invalidate the catalog and request it again."""
        self._catalog.invalidate()
        self._catalog_ready.clear()
        return await self.fetch_catalog()

    async def wait_for_catalog(self, timeout: Optional[float] = 10.0) -> bool:
        """
        Wait until a catalog response has been ingested.

        Returns:
            False if the timeout expired first
        """
        if self._catalog.is_fetched:
            return True
        self._catalog_ready.clear()
        try:
            await asyncio.wait_for(self._catalog_ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Catalog not received within {timeout}s")
            return False
        return True

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscribe_to_ticks(self, symbols: Iterable[str]) -> bool:
        """
        Subscribe to tick updates for the given symbols.

        If the feed is not connected, one connection attempt is made with
        the last known URL. Symbols already tracked stay tracked once.

        Args:
            symbols: Symbol ids, e.g. ['frxEURUSD', 'frxGBPUSD']

        Returns:
            True if the subscription request was handed to the socket
        """
        symbols = list(dict.fromkeys(symbols))
        if not symbols:
            logger.warning("No symbols provided for subscription")
            return False

        if not self.is_connected:
            if self._current_url is None:
                logger.warning("Cannot subscribe: not connected and no URL known")
                return False
            if not await self.connect(self._current_url):
                return False

        if not await self._send(codec.subscribe_request(symbols), "Subscription failed"):
            return False

        self._subscriptions.add(symbols)
        logger.info(f"Subscribed to {len(symbols)} symbols: {symbols[:5]}...")
        return True

    async def subscribe(self, selector: SymbolSelector) -> bool:
        """Subscribe to every catalog symbol matched by the selector."""
        symbols = selector.resolve(self._catalog)
        if not symbols:
            logger.warning(f"No symbols found for {selector}")
            return False
        return await self.subscribe_to_ticks(symbols)

    async def subscribe_by_market(self, market: str) -> bool:
        return await self.subscribe(SymbolSelector.market(market))

    async def subscribe_by_submarket(self, submarket: str) -> bool:
        return await self.subscribe(SymbolSelector.submarket(submarket))

    async def subscribe_by_type(self, symbol_type: str) -> bool:
        return await self.subscribe(SymbolSelector.symbol_type(symbol_type))

    async def subscribe_to_tradeable(self) -> bool:
        """Subscribe to symbols whose exchange is open and not suspended."""
        return await self.subscribe(SymbolSelector.tradeable())

    async def subscribe_to_all(self) -> bool:
        """
        Subscribe to every symbol in the catalog.

        Warning: this may be several hundred symbols. Prefer a market or
        submarket subscription.
        """
        return await self.subscribe(SymbolSelector.all())

    async def resubscribe_tracked(self) -> bool:
        """Send one subscribe request carrying every tracked symbol."""
        symbols = self._subscriptions.symbols
        if not symbols:
            return True
        logger.info(f"Resubscribing to {len(symbols)} tracked symbols")
        return await self._send(codec.subscribe_request(symbols), "Resubscription failed")

    async def unsubscribe_all(self) -> bool:
        """
        Forget every tick subscription.

        Returns:
            True if the forget_all request was handed to the socket
        """
        if not self.is_connected:
            return False
        if not await self._send(codec.forget_all_request(), "Unsubscribe all failed"):
            return False
        self._subscriptions.clear()
        logger.info("Unsubscribed from all ticks")
        return True

    async def unsubscribe_from_ticks(self, symbols: Iterable[str]) -> bool:
        """
        Stop tracking specific symbols.

        The protocol has no per-symbol forget, so this sends forget_all:
        every server-side subscription stops, while only the given symbols
        leave the tracked set. Resubscribe to the remainder explicitly.
        """
        symbols = list(symbols)
        if not self.is_connected:
            return False
        if not await self._send(codec.forget_all_request(), "Unsubscription failed"):
            return False
        self._subscriptions.remove(symbols)
        logger.warning(
            f"Unsubscribed from {len(symbols)} symbols; all server subscriptions were dropped, "
            f"{len(self._subscriptions)} remain tracked"
        )
        return True

    async def switch_to(self, selector: SymbolSelector) -> bool:
        """
        Replace the current subscriptions with the selector's symbols.

        Sends forget_all, waits the settle delay, then subscribes. If the
        subscribe fails the tracked set is left empty.
        """
        if not await self.unsubscribe_all():
            # A dead connection holds no server-side subscriptions
            self._subscriptions.clear()
        await asyncio.sleep(self.settle_delay)
        return await self.subscribe(selector)

    async def switch_to_market(self, market: str) -> bool:
        return await self.switch_to(SymbolSelector.market(market))

    async def switch_to_submarket(self, submarket: str) -> bool:
        return await self.switch_to(SymbolSelector.submarket(submarket))

    async def switch_to_type(self, symbol_type: str) -> bool:
        return await self.switch_to(SymbolSelector.symbol_type(symbol_type))

    async def send_message(self, message: Dict[str, Any]) -> bool:
        """Send a custom API request."""
        return await self._send(message, "Failed to send message")

    async def _send(self, request: Dict[str, Any], failure: str) -> bool:
        if not self.is_connected:
            return False
        try:
            await self._connection.send(codec.encode(request))
        except (ConnectionClosed, WebSocketException, OSError) as e:
            self._emit_error(ConnectionFailedError(f"{failure}: {e}"))
            return False
        return True

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """
        Get feed statistics.

        Returns:
            Dictionary with feed statistics
        """
        return {
            'status': self._status.value,
            'subscribed_symbols': len(self._subscriptions),
            'catalog_size': len(self._catalog),
            'catalog_fetched': self._catalog.is_fetched,
            'tick_listeners': self.events.ticks.listener_count,
            'reconnect_attempts': self._reconnect_attempts,
            'auto_reconnect': self._should_reconnect,
            'last_tick_age_seconds': time.time() - self._last_tick_time if self._last_tick_time else None,
        }
