"""Upstream market-data feed access.

Exports:
    - AsyncMarketClient: httpx client (single attempt, FeedError mapping)
    - MarketFetcher: endpoint fetch + payload unwrapping
    - FeedEndpoint, DEFAULT_ENDPOINTS, extract_sections
"""

from arzlive.feed.client import AsyncMarketClient
from arzlive.feed.fetcher import (
    DEFAULT_ENDPOINTS,
    FeedEndpoint,
    MarketFetcher,
    extract_sections,
)

__all__ = [
    "DEFAULT_ENDPOINTS",
    "AsyncMarketClient",
    "FeedEndpoint",
    "MarketFetcher",
    "extract_sections",
]
