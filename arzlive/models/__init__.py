"""Catalog and collaborator data models."""

from arzlive.models.analysis import (
    MarketAnalysis,
    MarketTrend,
    build_market_digest,
    parse_market_analysis,
)
from arzlive.models.asset import (
    Asset,
    AssetType,
    CurrencyMode,
    HistoryPoint,
    PollResult,
)

__all__ = [
    "Asset",
    "AssetType",
    "CurrencyMode",
    "HistoryPoint",
    "MarketAnalysis",
    "MarketTrend",
    "PollResult",
    "build_market_digest",
    "parse_market_analysis",
]
