"""Core module - shared exceptions and logging setup."""

from arzlive.core.exceptions import (
    ArzLiveError,
    FeedError,
    FeedHTTPError,
    FeedParseError,
    FeedTransportError,
    InfrastructureError,
    StorageError,
)

__all__ = [
    "ArzLiveError",
    "FeedError",
    "FeedHTTPError",
    "FeedParseError",
    "FeedTransportError",
    "InfrastructureError",
    "StorageError",
]
