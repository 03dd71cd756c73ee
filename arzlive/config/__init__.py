"""Configuration management."""

from arzlive.config.settings import (
    MarketSettings,
    UnitThresholds,
    clear_settings_cache,
    get_settings,
)

__all__ = ["MarketSettings", "UnitThresholds", "clear_settings_cache", "get_settings"]
