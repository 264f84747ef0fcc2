# Market Explorer
# ===============
# Client layer for live market data: one WebSocket connection, a catalog of
# tradeable instruments, tick subscriptions and reconnect handling.

"""
PROJECT STRUCTURE
=================

feed/                        # Connection and subscription core
├── __init__.py
├── codec.py                 # JSON requests and inbound frame decoding
├── models.py                # ConnectionStatus, Tick, Instrument
├── catalog.py               # Active-symbols catalog and its queries
├── subscriptions.py         # Tracked symbol set and symbol selectors
├── events.py                # Tick / status / error broadcast channels
├── transport.py             # websockets-based socket transport
├── exceptions.py            # Error taxonomy
└── market_feed.py           # MarketFeed: connection, retry, subscriptions

explorer/                    # Package entry points
├── __init__.py
├── lifecycle.py             # initialize() / dispose() singleton facade
├── main.py                  # Command line streamer
└── core/
    ├── config.py            # ExploreMarketsConfig (.env aware)
    ├── constants.py         # Endpoint, defaults, market categories
    └── logging_config.py    # Centralized logging setup


USAGE
=====
    # Stream forex major pairs
    python -m explorer.main --app-id 1089 --submarket major_pairs

    # With debug logging
    python -m explorer.main --app-id 1089 --debug
"""

__version__ = "1.0.0"

from .core.config import ExploreMarketsConfig, build_ws_url
from .lifecycle import (
    ExploreMarkets,
    initialize,
    dispose,
    is_initialized,
    get_config,
    get_websocket_service,
)

__all__ = [
    "ExploreMarketsConfig",
    "build_ws_url",
    "ExploreMarkets",
    "initialize",
    "dispose",
    "is_initialized",
    "get_config",
    "get_websocket_service",
]
