"""
Feed Exceptions
===============
Error taxonomy for the market feed.

Transport and protocol problems are never raised across the public API of
MarketFeed; they are published on the error channel as instances of the
classes below. Only API misuse (FeedStateError) is raised directly.
"""

from typing import Optional


class FeedError(Exception):
    """Base exception for market feed errors."""
    pass


class ConnectionFailedError(FeedError):
    """Socket could not be opened, or the stream failed while open."""
    pass


class ParseError(FeedError):
    """Raised when an inbound frame cannot be decoded."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class ProtocolError(FeedError):
    """Error reported by the server in a response's ``error`` field."""

    def __init__(self, message: str, code: Optional[str] = None, msg_type: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.msg_type = msg_type


class ReconnectExhaustedError(FeedError):
    """Automatic reconnection gave up after the configured number of attempts."""

    def __init__(self, attempts: int):
        super().__init__("Max reconnection attempts reached")
        self.attempts = attempts


class FeedStateError(FeedError, RuntimeError):
    """Raised when the feed or the facade is used in the wrong state."""
    pass
