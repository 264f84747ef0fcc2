"""
Subscription Tracking
=====================
Local record of the symbols the client believes are streaming, and
selectors that resolve a group of symbols against the catalog.

The wire operations that change the tracked set live on MarketFeed; this
module holds state only.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Tuple

from .catalog import InstrumentCatalog


class SubscriptionTracker:
    """Insertion-ordered set of subscribed symbol ids."""

    def __init__(self, symbols: Iterable[str] = ()):
        self._symbols: Dict[str, None] = dict.fromkeys(symbols)

    def add(self, symbols: Iterable[str]) -> None:
        for symbol in symbols:
            self._symbols.setdefault(symbol, None)

    def remove(self, symbols: Iterable[str]) -> None:
        for symbol in symbols:
            self._symbols.pop(symbol, None)

    def clear(self) -> None:
        self._symbols.clear()

    def replace(self, symbols: Iterable[str]) -> None:
        self._symbols = dict.fromkeys(symbols)

    @property
    def symbols(self) -> List[str]:
        return list(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def __bool__(self) -> bool:
        return bool(self._symbols)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._symbols))


class SelectorKind(Enum):
    MARKET = "market"
    SUBMARKET = "submarket"
    TYPE = "type"
    TRADEABLE = "tradeable"
    ALL = "all"


@dataclass(frozen=True)
class SymbolSelector:
    """
    A named group of symbols, resolved against the catalog at use time.

    Example:
        >>> SymbolSelector.market("forex").resolve(catalog)
        >>> SymbolSelector.market("forex", exclude_submarkets=("major_pairs", "minor_pairs"))
    """
    kind: SelectorKind
    value: str = ""
    exclude_submarkets: Tuple[str, ...] = ()

    @classmethod
    def market(cls, market: str, exclude_submarkets: Iterable[str] = ()) -> "SymbolSelector":
        return cls(SelectorKind.MARKET, market, tuple(exclude_submarkets))

    @classmethod
    def submarket(cls, submarket: str) -> "SymbolSelector":
        return cls(SelectorKind.SUBMARKET, submarket)

    @classmethod
    def symbol_type(cls, symbol_type: str) -> "SymbolSelector":
        return cls(SelectorKind.TYPE, symbol_type)

    @classmethod
    def tradeable(cls) -> "SymbolSelector":
        return cls(SelectorKind.TRADEABLE)

    @classmethod
    def all(cls) -> "SymbolSelector":
        return cls(SelectorKind.ALL)

    def resolve(self, catalog: InstrumentCatalog) -> List[str]:
        """Symbol ids matching this selector, in catalog order."""
        if self.kind is SelectorKind.MARKET:
            symbols = catalog.by_market(self.value)
        elif self.kind is SelectorKind.SUBMARKET:
            symbols = catalog.by_submarket(self.value)
        elif self.kind is SelectorKind.TYPE:
            symbols = catalog.by_type(self.value)
        elif self.kind is SelectorKind.TRADEABLE:
            symbols = catalog.tradeable()
        else:
            symbols = catalog.all_ids()

        if not self.exclude_submarkets:
            return symbols

        excluded = set()
        for submarket in self.exclude_submarkets:
            excluded.update(catalog.by_submarket(submarket))
        return [symbol for symbol in symbols if symbol not in excluded]

    def __str__(self) -> str:
        if self.kind in (SelectorKind.TRADEABLE, SelectorKind.ALL):
            return self.kind.value
        return f"{self.kind.value}={self.value}"
