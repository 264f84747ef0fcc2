"""
Market Explorer
===============
Command line entry point: connect, pick a group of symbols and print
their ticks.

Usage:
    # Forex major pairs for a minute
    python -m explorer.main --app-id 1089 --submarket major_pairs

    # A named category, with debug logging
    python -m explorer.main --category "Stock indices" --debug

    # URL and app id can also come from MARKETS_WS_URL / MARKETS_APP_ID in .env
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from feed.exceptions import FeedError
from feed.models import ConnectionStatus, Tick
from feed.subscriptions import SymbolSelector

from . import lifecycle
from .core.config import ExploreMarketsConfig, build_ws_url
from .core.constants import DEFAULT_WS_ENDPOINT, MARKET_CATEGORIES, Timeouts
from .core.logging_config import setup_logging, get_logger

# Configure logging
logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Stream live ticks from the quote API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m explorer.main --app-id 1089 --market forex
  python -m explorer.main --submarket major_pairs --duration 30
  python -m explorer.main --category Crypto
        """,
    )

    parser.add_argument("--url", type=str, help="Full WebSocket URL including app_id")
    parser.add_argument("--app-id", type=str, help="Application id, used to build the URL")
    parser.add_argument(
        "--endpoint",
        type=str,
        default=DEFAULT_WS_ENDPOINT,
        help=f"WebSocket endpoint used with --app-id (default: {DEFAULT_WS_ENDPOINT})",
    )

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--market", type=str, help="Subscribe to a market, e.g. forex")
    selection.add_argument("--submarket", type=str, help="Subscribe to a submarket, e.g. major_pairs")
    selection.add_argument("--type", dest="symbol_type", type=str, help="Subscribe to a symbol type")
    selection.add_argument(
        "--category",
        type=str,
        choices=sorted(MARKET_CATEGORIES),
        help="Subscribe to a named category",
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=Timeouts.RUN_DURATION,
        help="Seconds to stream before exiting (default: %(default)s)",
    )
    parser.add_argument("--log-dir", type=Path, help="Write rotating log files to this directory")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def selector_from_args(args: argparse.Namespace) -> SymbolSelector:
    if args.market:
        return SymbolSelector.market(args.market)
    if args.submarket:
        return SymbolSelector.submarket(args.submarket)
    if args.symbol_type:
        return SymbolSelector.symbol_type(args.symbol_type)
    if args.category:
        return MARKET_CATEGORIES[args.category]
    return MARKET_CATEGORIES["Forex"]


def config_from_args(args: argparse.Namespace) -> ExploreMarketsConfig:
    config = ExploreMarketsConfig.from_env()
    if args.url:
        config = config.copy_with(web_socket_url=args.url)
    elif args.app_id:
        config = config.copy_with(web_socket_url=build_ws_url(args.app_id, args.endpoint))
    return config.copy_with(auto_connect=True)


def print_tick(tick: Tick) -> None:
    spread = f" spread={tick.spread:.{tick.pip_size}f}" if tick.spread is not None else ""
    print(f"{tick.timestamp:%H:%M:%S} {tick.symbol:<14} {tick.formatted_quote}{spread}")


async def run(config: ExploreMarketsConfig, selector: SymbolSelector, duration: float) -> int:
    """Stream ticks for the selection. Returns a process exit code."""
    instance = await lifecycle.initialize(config)
    feed = instance.feed
    feed.on_tick(print_tick)
    feed.on_status_change(lambda status: logger.info(f"Status: {status.value}"))
    feed.on_error(lambda error: logger.warning(f"{type(error).__name__}: {error}"))

    try:
        if feed.status != ConnectionStatus.CONNECTED:
            logger.error(f"Could not connect to {config.web_socket_url}")
            return 1

        if not await feed.wait_for_catalog(timeout=Timeouts.CATALOG):
            logger.error("Active symbols were not received")
            return 1
        logger.info(f"Catalog has {len(feed.catalog)} instruments in markets: {feed.catalog.markets()}")

        if not await feed.switch_to(selector):
            logger.error(f"No symbols to stream for {selector}")
            return 1

        logger.info(f"Streaming {len(feed.subscribed_symbols)} symbols for {duration:.0f}s")
        await asyncio.sleep(duration)
        logger.info(f"Stats: {feed.get_stats()}")
        return 0
    finally:
        await lifecycle.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    setup_logging(
        log_dir=args.log_dir,
        console_level=logging.DEBUG if args.debug else logging.INFO,
    )

    config = config_from_args(args)
    valid, issues = config.validate()
    if not valid:
        for issue in issues:
            logger.error(f"Configuration: {issue}")
        return 2

    print(config.get_summary())

    try:
        return asyncio.run(run(config, selector_from_args(args), args.duration))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except FeedError as e:
        logger.exception(f"Feed failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
