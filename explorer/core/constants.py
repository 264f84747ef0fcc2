"""
Explorer Constants
==================
Endpoint, connection defaults and the market categories shown to users.
"""

from dataclasses import dataclass
from typing import Dict, Final

from feed.subscriptions import SymbolSelector

# ============================================================================
# ENDPOINT
# ============================================================================
DEFAULT_WS_ENDPOINT: Final[str] = "wss://ws.derivws.com/websockets/v3"


@dataclass(frozen=True)
class ConnectionDefaults:
    """Defaults for the connection settings of ExploreMarketsConfig"""

    AUTO_CONNECT: bool = True
    MAX_RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY: float = 3.0  # seconds


@dataclass(frozen=True)
class Timeouts:
    """Waits used by the command line runner, in seconds"""

    CATALOG: float = 15.0  # Full active-symbols list can take a while
    RUN_DURATION: float = 60.0


# ============================================================================
# MARKET CATEGORIES
# ============================================================================

FOREX_MARKET: Final[str] = "forex"
MAJOR_PAIRS: Final[str] = "major_pairs"
MINOR_PAIRS: Final[str] = "minor_pairs"

MARKET_CATEGORIES: Final[Dict[str, SymbolSelector]] = {
    "Forex": SymbolSelector.market(FOREX_MARKET),
    "Stock indices": SymbolSelector.market("indices"),
    "Crypto": SymbolSelector.market("cryptocurrency"),
    "Commodities": SymbolSelector.market("commodities"),
}

# Exotic pairs are whatever forex is left after the major and minor pairs
FOREX_SUBCATEGORIES: Final[Dict[str, SymbolSelector]] = {
    "All": SymbolSelector.market(FOREX_MARKET),
    "Major": SymbolSelector.submarket(MAJOR_PAIRS),
    "Minor": SymbolSelector.submarket(MINOR_PAIRS),
    "Exotic": SymbolSelector.market(FOREX_MARKET, exclude_submarkets=(MAJOR_PAIRS, MINOR_PAIRS)),
}
