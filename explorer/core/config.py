"""
Central Configuration
=====================
Package configuration for the market explorer, loadable from environment
variables and the project's .env file.
"""

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode, urlsplit

from dotenv import load_dotenv

from .constants import DEFAULT_WS_ENDPOINT, ConnectionDefaults


# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def build_ws_url(app_id: str, endpoint: str = DEFAULT_WS_ENDPOINT) -> str:
    """
    Build a WebSocket URL carrying the application id.

    Example:
        >>> build_ws_url("1089")
        'wss://ws.derivws.com/websockets/v3?app_id=1089'
    """
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode({'app_id': app_id})}"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ExploreMarketsConfig:
    """
    Package-level settings.

    Usage:
        config = ExploreMarketsConfig(web_socket_url=build_ws_url("1089"))
        config = ExploreMarketsConfig.from_env()
        print(config.max_reconnect_attempts)
    """
    # Complete URL including the app_id query parameter
    web_socket_url: str
    # Passed through untouched for UI layers
    default_theme: Optional[Any] = None
    auto_connect: bool = ConnectionDefaults.AUTO_CONNECT
    max_reconnect_attempts: int = ConnectionDefaults.MAX_RECONNECT_ATTEMPTS
    reconnect_delay: float = ConnectionDefaults.RECONNECT_DELAY  # seconds

    @classmethod
    def from_env(cls) -> "ExploreMarketsConfig":
        """
        Load configuration from environment.

        MARKETS_WS_URL wins; otherwise the URL is built from MARKETS_APP_ID
        and MARKETS_WS_ENDPOINT.
        """
        url = os.getenv("MARKETS_WS_URL", "")
        app_id = os.getenv("MARKETS_APP_ID", "")
        if not url and app_id:
            url = build_ws_url(app_id, os.getenv("MARKETS_WS_ENDPOINT", DEFAULT_WS_ENDPOINT))

        return cls(
            web_socket_url=url,
            auto_connect=_env_bool("MARKETS_AUTO_CONNECT", ConnectionDefaults.AUTO_CONNECT),
            max_reconnect_attempts=int(os.getenv(
                "MARKETS_MAX_RECONNECT_ATTEMPTS", str(ConnectionDefaults.MAX_RECONNECT_ATTEMPTS))),
            reconnect_delay=float(os.getenv(
                "MARKETS_RECONNECT_DELAY", str(ConnectionDefaults.RECONNECT_DELAY))),
        )

    def copy_with(self, **changes: Any) -> "ExploreMarketsConfig":
        """Return a new configuration with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def validate(self) -> tuple[bool, list[str]]:
        """Check the configuration for obvious mistakes"""
        issues = []
        if not self.web_socket_url:
            issues.append("MARKETS_WS_URL or MARKETS_APP_ID not set")
        else:
            parts = urlsplit(self.web_socket_url)
            if parts.scheme not in ("ws", "wss"):
                issues.append(f"web_socket_url must use ws:// or wss://, got '{parts.scheme}'")
            if "app_id=" not in parts.query:
                issues.append("web_socket_url has no app_id query parameter")

        if self.max_reconnect_attempts < 0:
            issues.append("max_reconnect_attempts must not be negative")

        if self.reconnect_delay < 0:
            issues.append("reconnect_delay must not be negative")

        return len(issues) == 0, issues

    def get_summary(self) -> str:
        """Get configuration summary"""
        url = self.web_socket_url or "(not set)"
        return (
            "Market Explorer configuration\n"
            f"  WebSocket URL:      {url}\n"
            f"  Auto connect:       {self.auto_connect}\n"
            f"  Reconnect attempts: {self.max_reconnect_attempts}\n"
            f"  Reconnect delay:    {self.reconnect_delay:.1f}s\n"
            f"  Default theme:      {'set' if self.default_theme is not None else 'none'}"
        )
