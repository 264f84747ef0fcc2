"""
Feed Models
===========
Value types shared by the codec, the catalog and the market feed.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ConnectionStatus(Enum):
    """Market feed connection states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class Tick:
    """
    One real-time price update for a symbol.

    Attributes:
        symbol: Instrument identifier (e.g. 'frxEURUSD')
        quote: Current market price
        epoch: Unix timestamp in seconds
        id: Server-assigned tick identifier
        pip_size: Decimal places used to display the price
        ask: Best ask price, if the symbol has a spread
        bid: Best bid price, if the symbol has a spread
    """
    symbol: str
    quote: float
    epoch: int
    id: str
    pip_size: int
    ask: Optional[float] = None
    bid: Optional[float] = None

    @property
    def spread(self) -> Optional[float]:
        """Ask minus bid, or None when either side is missing."""
        if self.ask is None or self.bid is None:
            return None
        return self.ask - self.bid

    @property
    def formatted_quote(self) -> str:
        return f"{self.quote:.{self.pip_size}f}"

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.epoch, tz=timezone.utc)

    def replace(self, **changes: Any) -> "Tick":
        """Return a copy of this tick with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert tick to its wire dictionary (ask/bid only when present)."""
        data: Dict[str, Any] = {
            'symbol': self.symbol,
            'quote': self.quote,
            'epoch': self.epoch,
            'id': self.id,
            'pip_size': self.pip_size,
        }
        if self.ask is not None:
            data['ask'] = self.ask
        if self.bid is not None:
            data['bid'] = self.bid
        return data


@dataclass(frozen=True)
class Instrument:
    """
    Metadata for a tradeable symbol, as listed by the active-symbols call.

    ``exchange_is_open`` and ``is_trading_suspended`` keep the 0/1 integer
    flags used on the wire.
    """
    symbol: str
    display_name: str
    symbol_type: str
    market: str
    market_display_name: str
    pip: float
    exchange_is_open: int
    is_trading_suspended: int
    submarket: Optional[str] = None
    submarket_display_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instrument":
        """
        Build an Instrument from a raw active-symbols record.

        Accepts the alternative field names some API versions use
        (``underlying_symbol``, ``underlying_symbol_type``, ``pip_size``).

        Raises:
            KeyError: If a mandatory field is missing
        """
        symbol = data.get('symbol') or data.get('underlying_symbol')
        if not symbol:
            raise KeyError('symbol')
        market = data['market']
        pip = data.get('pip')
        if pip is None:
            pip = data.get('pip_size')
        return cls(
            symbol=symbol,
            display_name=data.get('display_name') or symbol,
            symbol_type=data.get('symbol_type') or data.get('underlying_symbol_type') or '',
            market=market,
            market_display_name=data.get('market_display_name') or market,
            submarket=data.get('submarket'),
            submarket_display_name=data.get('submarket_display_name'),
            pip=float(pip) if pip is not None else 0.001,
            exchange_is_open=int(data['exchange_is_open']),
            is_trading_suspended=int(data['is_trading_suspended']),
        )

    @property
    def is_tradeable(self) -> bool:
        """Exchange open and trading not suspended."""
        return self.exchange_is_open == 1 and self.is_trading_suspended == 0

    @property
    def description(self) -> str:
        """Submarket display name if set, otherwise the market display name."""
        if self.submarket_display_name:
            return self.submarket_display_name
        return self.market_display_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'display_name': self.display_name,
            'symbol_type': self.symbol_type,
            'market': self.market,
            'market_display_name': self.market_display_name,
            'submarket': self.submarket,
            'submarket_display_name': self.submarket_display_name,
            'pip': self.pip,
            'exchange_is_open': self.exchange_is_open,
            'is_trading_suspended': self.is_trading_suspended,
        }
