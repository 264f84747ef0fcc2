# Explorer Core Module
# ====================
# Configuration, constants and logging

from .config import ExploreMarketsConfig, build_ws_url
from .constants import (
    DEFAULT_WS_ENDPOINT,
    ConnectionDefaults,
    Timeouts,
    MARKET_CATEGORIES,
    FOREX_SUBCATEGORIES,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "ExploreMarketsConfig",
    "build_ws_url",
    "DEFAULT_WS_ENDPOINT",
    "ConnectionDefaults",
    "Timeouts",
    "MARKET_CATEGORIES",
    "FOREX_SUBCATEGORIES",
    "setup_logging",
    "get_logger",
]
