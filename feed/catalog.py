"""
Instrument Catalog
==================
Holds the active-symbols list fetched from the server and answers
market / submarket / type queries.

All filters return symbol ids in the order the server listed them, and an
empty list for keys that are not present.

Usage:
    catalog = InstrumentCatalog()
    catalog.ingest(message.instruments)
    catalog.by_submarket("major_pairs")  # ['frxAUDJPY', 'frxEURUSD', ...]
"""

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Union
from types import MappingProxyType

import pandas as pd

from .models import Instrument

logger = logging.getLogger(__name__)

CATALOG_COLUMNS = [
    'symbol',
    'display_name',
    'symbol_type',
    'market',
    'market_display_name',
    'submarket',
    'submarket_display_name',
    'pip',
    'exchange_is_open',
    'is_trading_suspended',
]


class InstrumentCatalog:
    """
    Symbol-id keyed catalog of instruments for the current connection.

    The catalog is populated at most once per connection unless it is
    explicitly invalidated.
    """

    def __init__(self):
        self._instruments: Dict[str, Instrument] = {}
        self._fetched = False

    def ingest(self, records: Iterable[Union[Instrument, Dict[str, Any]]]) -> "InstrumentCatalog":
        """
        Replace the catalog content.

        Args:
            records: Instrument values or raw active-symbols dictionaries

        Returns:
            The catalog itself

        Raises:
            KeyError: If a raw record is missing a mandatory field
        """
        instruments: Dict[str, Instrument] = {}
        for record in records:
            instrument = record if isinstance(record, Instrument) else Instrument.from_dict(record)
            instruments[instrument.symbol] = instrument

        self._instruments = instruments
        self._fetched = True
        logger.info(f"Catalog loaded with {len(instruments)} instruments")
        return self

    def invalidate(self) -> None:
        """Drop all instruments so the next connection fetches them again."""
        self._instruments = {}
        self._fetched = False
        logger.debug("Catalog invalidated")

    @property
    def is_fetched(self) -> bool:
        return self._fetched

    @property
    def is_empty(self) -> bool:
        return not self._instruments

    @property
    def instruments(self) -> Mapping[str, Instrument]:
        """Read-only view of the catalog keyed by symbol id."""
        return MappingProxyType(self._instruments)

    def by_id(self, symbol: str) -> Optional[Instrument]:
        return self._instruments.get(symbol)

    def by_market(self, market: str) -> List[str]:
        return self._select(lambda i: i.market == market)

    def by_submarket(self, submarket: str) -> List[str]:
        return self._select(lambda i: i.submarket == submarket)

    def by_type(self, symbol_type: str) -> List[str]:
        return self._select(lambda i: i.symbol_type == symbol_type)

    def tradeable(self) -> List[str]:
        """Symbols whose exchange is open and trading is not suspended."""
        return self._select(lambda i: i.is_tradeable)

    def all_ids(self) -> List[str]:
        return list(self._instruments)

    def markets(self) -> List[str]:
        """Distinct market names, in first-seen order."""
        return list(dict.fromkeys(i.market for i in self._instruments.values()))

    def to_frame(self) -> pd.DataFrame:
        """Snapshot of the catalog as a DataFrame, one row per instrument."""
        rows = [instrument.to_dict() for instrument in self._instruments.values()]
        return pd.DataFrame(rows, columns=CATALOG_COLUMNS)

    def _select(self, predicate: Callable[[Instrument], bool]) -> List[str]:
        return [symbol for symbol, instrument in self._instruments.items() if predicate(instrument)]

    def __len__(self) -> int:
        return len(self._instruments)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._instruments

    def __iter__(self) -> Iterator[Instrument]:
        return iter(list(self._instruments.values()))
