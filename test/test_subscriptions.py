"""
Unit Tests for Subscription Tracking and Symbol Selectors

Test Coverage:
    - Tracker keeps each symbol once, in first-added order
    - Selector resolution for every selector kind
    - Submarket exclusion (exotic forex)
    - Market categories shown to users
"""

import sys
from pathlib import Path

import pytest

# Add project root
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from feed.catalog import InstrumentCatalog
from feed.subscriptions import SelectorKind, SubscriptionTracker, SymbolSelector
from explorer.core.constants import FOREX_SUBCATEGORIES, MARKET_CATEGORIES

# ==================== Fixtures ====================


@pytest.fixture
def catalog(catalog_records):
    return InstrumentCatalog().ingest(catalog_records)


# ==================== Test: Tracker ====================


class TestSubscriptionTracker:
    """Tests for the local subscribed-symbol set"""

    def test_add_is_idempotent(self):
        tracker = SubscriptionTracker()
        tracker.add(["frxEURUSD", "frxAUDJPY"])
        tracker.add(["frxEURUSD"])

        assert tracker.symbols == ["frxEURUSD", "frxAUDJPY"]
        assert len(tracker) == 2

    def test_remove_ignores_unknown(self):
        tracker = SubscriptionTracker(["a", "b", "c"])
        tracker.remove(["b", "zzz"])

        assert tracker.symbols == ["a", "c"]

    def test_clear_and_bool(self):
        tracker = SubscriptionTracker(["a"])
        assert tracker

        tracker.clear()
        assert not tracker
        assert tracker.symbols == []

    def test_replace(self):
        tracker = SubscriptionTracker(["a", "b"])
        tracker.replace(["c", "c", "d"])

        assert tracker.symbols == ["c", "d"]

    def test_symbols_is_a_copy(self):
        tracker = SubscriptionTracker(["a"])
        tracker.symbols.append("b")

        assert "b" not in tracker

    def test_iterating_while_mutating(self):
        tracker = SubscriptionTracker(["a", "b"])
        for symbol in tracker:
            tracker.remove([symbol])

        assert len(tracker) == 0


# ==================== Test: Selectors ====================


class TestSymbolSelector:
    """Selectors resolve against the catalog at use time"""

    def test_market(self, catalog):
        assert SymbolSelector.market("commodities").resolve(catalog) == ["frxXAUUSD"]

    def test_submarket(self, catalog):
        assert SymbolSelector.submarket("major_pairs").resolve(catalog) == ["frxEURUSD", "frxAUDJPY"]

    def test_symbol_type(self, catalog):
        assert SymbolSelector.symbol_type("stockindex").resolve(catalog) == ["OTC_SPC"]

    def test_tradeable(self, catalog):
        assert SymbolSelector.tradeable().resolve(catalog) == catalog.tradeable()

    def test_all(self, catalog):
        assert SymbolSelector.all().resolve(catalog) == catalog.all_ids()

    def test_exclude_submarkets(self, catalog):
        selector = SymbolSelector.market("forex", exclude_submarkets=("major_pairs", "minor_pairs"))
        assert selector.resolve(catalog) == ["frxUSDMXN"]

    def test_unresolved_is_empty(self, catalog):
        assert SymbolSelector.market("nope").resolve(catalog) == []
        assert SymbolSelector.all().resolve(InstrumentCatalog()) == []

    def test_str(self):
        assert str(SymbolSelector.market("forex")) == "market=forex"
        assert str(SymbolSelector.symbol_type("forex")) == "type=forex"
        assert str(SymbolSelector.tradeable()) == "tradeable"

    def test_selectors_are_hashable_values(self):
        assert SymbolSelector.market("forex") == SymbolSelector(SelectorKind.MARKET, "forex")
        assert len({SymbolSelector.all(), SymbolSelector.all()}) == 1


# ==================== Test: Market Categories ====================


class TestMarketCategories:

    def test_category_names(self):
        assert list(MARKET_CATEGORIES) == ["Forex", "Stock indices", "Crypto", "Commodities"]
        assert list(FOREX_SUBCATEGORIES) == ["All", "Major", "Minor", "Exotic"]

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Forex", ["frxEURUSD", "frxAUDJPY", "frxEURGBP", "frxUSDMXN"]),
            ("Stock indices", ["OTC_SPC"]),
            ("Crypto", ["cryBTCUSD"]),
            ("Commodities", ["frxXAUUSD"]),
        ],
    )
    def test_categories_resolve(self, catalog, name, expected):
        assert MARKET_CATEGORIES[name].resolve(catalog) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Major", ["frxEURUSD", "frxAUDJPY"]),
            ("Minor", ["frxEURGBP"]),
            ("Exotic", ["frxUSDMXN"]),
        ],
    )
    def test_forex_subcategories_resolve(self, catalog, name, expected):
        assert FOREX_SUBCATEGORIES[name].resolve(catalog) == expected
