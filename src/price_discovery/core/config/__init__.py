"""Configuration module with YAML and environment variable support."""

from .settings import (
    AIProvider,
    MarketDataProvider,
    Settings,
    get_settings,
)


__all__ = [
    "AIProvider",
    "MarketDataProvider",
    "Settings",
    "get_settings",
]
