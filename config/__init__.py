"""Configuration module."""

from config.settings import (
    DatabaseType,
    MarketSettings,
    PricingSettings,
    RetrySettings,
    Settings,
    settings,
)

__all__ = [
    "DatabaseType",
    "MarketSettings",
    "PricingSettings",
    "RetrySettings",
    "Settings",
    "settings",
]
