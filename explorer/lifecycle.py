"""
Explorer Lifecycle
==================
Process-wide entry point: one configuration and one market feed.

ExploreMarkets is a plain context object and can be created and passed
around directly. The module-level functions keep a single instance per
process for applications that want a global.

Usage:
    from explorer import lifecycle
    from explorer.core import ExploreMarketsConfig, build_ws_url

    await lifecycle.initialize(ExploreMarketsConfig(web_socket_url=build_ws_url("1089")))
    feed = lifecycle.get_websocket_service()
    await feed.switch_to_market("forex")
    ...
    await lifecycle.dispose()
"""

from typing import Any, Optional

from feed.exceptions import FeedStateError
from feed.market_feed import MarketFeed
from feed.transport import Transport

from .core.config import ExploreMarketsConfig
from .core.logging_config import get_logger

logger = get_logger("lifecycle")

NOT_INITIALIZED = (
    "ExploreMarkets has not been initialized. "
    "Call lifecycle.initialize() before using the package."
)


class ExploreMarkets:
    """
    Owns one configuration and the market feed built from it.

    Attributes:
        config: Current configuration
        feed: The market feed (WebSocket service)
    """

    def __init__(self, config: ExploreMarketsConfig, feed: Optional[MarketFeed] = None,
                 transport: Optional[Transport] = None):
        self._config = config
        self.feed = feed or MarketFeed.from_config(config, transport=transport)

    @property
    def config(self) -> ExploreMarketsConfig:
        return self._config

    @property
    def default_theme(self) -> Optional[Any]:
        return self._config.default_theme

    async def start(self) -> bool:
        """Connect if the configuration asks for it. Returns connected-ness."""
        if not self._config.auto_connect:
            logger.info("Auto connect disabled; call reconnect() to connect")
            return False
        return await self.feed.connect(self._config.web_socket_url)

    async def reconnect(self) -> bool:
        """Reconnect with the configured URL, keeping tracked subscriptions."""
        return await self.feed.reconnect(self._config.web_socket_url)

    async def disconnect(self) -> None:
        await self.feed.disconnect()

    def update_config(self, config: ExploreMarketsConfig) -> None:
        """
        Replace the configuration.

        Does not reconnect; a new URL takes effect on the next reconnect().
        Retry settings apply to the feed immediately.
        """
        self._config = config
        self.feed.max_reconnect_attempts = config.max_reconnect_attempts
        self.feed.reconnect_delay = config.reconnect_delay
        logger.info("Configuration updated")

    async def close(self) -> None:
        await self.feed.dispose()


# Singleton instance
_instance: Optional[ExploreMarkets] = None


async def initialize(
    config: ExploreMarketsConfig,
    feed: Optional[MarketFeed] = None,
    transport: Optional[Transport] = None,
) -> ExploreMarkets:
    """
    Create the process-wide instance and connect if auto_connect is set.

    Calling this twice is not an error: the second call logs a warning and
    returns the existing instance. Call dispose() first to reinitialize.
    """
    global _instance
    if _instance is not None:
        logger.warning(
            "ExploreMarkets is already initialized. "
            "Call dispose() first if you want to reinitialize."
        )
        return _instance

    _instance = ExploreMarkets(config, feed=feed, transport=transport)
    logger.info("ExploreMarkets initialized")
    await _instance.start()
    return _instance


async def dispose() -> None:
    """Dispose the instance and all its resources. No-op if not initialized."""
    global _instance
    if _instance is None:
        return
    instance, _instance = _instance, None
    await instance.close()
    logger.info("ExploreMarkets disposed")


def is_initialized() -> bool:
    return _instance is not None


def get_instance() -> ExploreMarkets:
    if _instance is None:
        raise FeedStateError(NOT_INITIALIZED)
    return _instance


def get_config() -> ExploreMarketsConfig:
    """Get the current configuration."""
    return get_instance().config


def get_websocket_service() -> MarketFeed:
    """Get the shared market feed."""
    return get_instance().feed


def get_default_theme() -> Optional[Any]:
    """Default theme from the configuration, or None if not initialized."""
    if _instance is None:
        return None
    return _instance.default_theme


async def reconnect() -> bool:
    """Reconnect the shared feed with the current configuration."""
    return await get_instance().reconnect()


async def disconnect() -> None:
    """Disconnect without disposing. No-op if not initialized."""
    if _instance is None:
        return
    await _instance.disconnect()


def update_config(config: ExploreMarketsConfig) -> None:
    """Replace the configuration. Call reconnect() for a new URL to take effect."""
    get_instance().update_config(config)
