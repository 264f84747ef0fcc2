# Feed module for the Market Explorer client
# Contains the wire codec, instrument catalog, subscription tracking,
# event hub and the WebSocket market feed

from .catalog import InstrumentCatalog
from .codec import (
    CatalogMessage,
    ErrorMessage,
    OtherMessage,
    TickMessage,
    decode,
    encode,
)
from .events import EventChannel, EventHub
from .exceptions import (
    ConnectionFailedError,
    FeedError,
    FeedStateError,
    ParseError,
    ProtocolError,
    ReconnectExhaustedError,
)
from .market_feed import MarketFeed
from .models import ConnectionStatus, Instrument, Tick
from .subscriptions import SelectorKind, SubscriptionTracker, SymbolSelector
from .transport import WebSocketTransport

__all__ = [
    # Feed
    'MarketFeed',
    'WebSocketTransport',
    # Models
    'ConnectionStatus',
    'Instrument',
    'Tick',
    # Catalog and subscriptions
    'InstrumentCatalog',
    'SubscriptionTracker',
    'SymbolSelector',
    'SelectorKind',
    # Events
    'EventHub',
    'EventChannel',
    # Codec
    'decode',
    'encode',
    'TickMessage',
    'CatalogMessage',
    'ErrorMessage',
    'OtherMessage',
    # Exceptions
    'FeedError',
    'ConnectionFailedError',
    'ParseError',
    'ProtocolError',
    'ReconnectExhaustedError',
    'FeedStateError',
]
