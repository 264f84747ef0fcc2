"""
Logging Configuration
=====================
Centralized logging setup for the feed and the explorer.
"""

import os
import sys
import logging
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional


# Default log format
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Logger trees configured by setup_logging
ROOT_LOGGERS = ("feed", "explorer")

# Log levels for different components
COMPONENT_LOG_LEVELS = {
    "feed": logging.INFO,
    "feed.market_feed": logging.INFO,
    "feed.codec": logging.INFO,
    "explorer": logging.INFO,
}


class ColorFormatter(logging.Formatter):
    """Colored log formatter for console output"""

    COLORS = {
        logging.DEBUG: "\033[36m",     # Cyan
        logging.INFO: "\033[32m",      # Green
        logging.WARNING: "\033[33m",   # Yellow
        logging.ERROR: "\033[31m",     # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        # Format a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    log_dir: Optional[Path] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
) -> None:
    """
    Set up logging for the feed and explorer packages.

    Args:
        log_dir: Directory for log files. If None, logs go to console only
        console_level: Logging level for console output
        file_level: Logging level for file output
        max_bytes: Max size of each log file
        backup_count: Number of backup files to keep
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    if sys.platform != "win32" or os.getenv("TERM"):
        console_handler.setFormatter(ColorFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
    else:
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    handlers: list[logging.Handler] = [console_handler]

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")

        # Main log file (rotating by size)
        file_handler = RotatingFileHandler(
            log_dir / f"explorer_{today}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handlers.append(file_handler)

        # Error log (separate file for errors only)
        error_handler = RotatingFileHandler(
            log_dir / f"errors_{today}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handlers.append(error_handler)

    for name in ROOT_LOGGERS:
        root_logger = logging.getLogger(name)
        root_logger.setLevel(logging.DEBUG)  # Capture all, handlers will filter
        root_logger.handlers.clear()
        for handler in handlers:
            root_logger.addHandler(handler)

    # Set levels for specific components
    for component, level in COMPONENT_LOG_LEVELS.items():
        logging.getLogger(component).setLevel(min(level, console_level))

    # Suppress noisy third-party loggers
    for noisy_logger in ["websockets", "asyncio"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger("explorer").info("Logging initialized: %s", log_dir or "console only")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a component.

    Args:
        name: Component name (e.g., "lifecycle", "main")

    Returns:
        Logger instance with proper hierarchy
    """
    if not name.startswith(ROOT_LOGGERS):
        name = f"explorer.{name}"
    return logging.getLogger(name)
