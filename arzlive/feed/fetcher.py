"""Market feed fetcher — endpoint definitions and payload unwrapping.

Endpoints:
    gold_currency: Gold_Currency.php (currency + gold, sometimes one array)
    crypto:        Cryptocurrency.php

Payload shapes tolerated:
    [ {...}, ... ]                                  bare array
    {"currency": [...], "gold": [...], ...}          tagged sections
    {"data": [...]} / {"data": {"currency": ...}}    envelope

Anything else (e.g. {"error": "invalid key"}) fails the feed with
FeedParseError.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from arzlive.core.exceptions import FeedParseError
from arzlive.market.catalog import FeedSection

if TYPE_CHECKING:
    from arzlive.feed.client import AsyncMarketClient

# Payload keys -> section they carry
SECTION_KEYS: dict[str, FeedSection] = {
    "currency": FeedSection.CURRENCY,
    "currencies": FeedSection.CURRENCY,
    "gold": FeedSection.GOLD,
    "coin": FeedSection.GOLD,
    "cryptocurrency": FeedSection.CRYPTO,
    "crypto": FeedSection.CRYPTO,
}
# Envelope keys wrapping the actual payload
ENVELOPE_KEYS: tuple[str, ...] = ("data", "result", "items")
_MAX_ENVELOPE_DEPTH = 3


class FeedEndpoint(BaseModel):
    """One upstream endpoint.

    Attributes:
        name: Short name used in logs and error messages
        path: Path relative to the API base URL
        default_section: Section assumed for untagged arrays
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    default_section: FeedSection


DEFAULT_ENDPOINTS: tuple[FeedEndpoint, ...] = (
    FeedEndpoint(
        name="gold_currency",
        path="Gold_Currency.php",
        default_section=FeedSection.COMBINED,
    ),
    FeedEndpoint(
        name="crypto",
        path="Cryptocurrency.php",
        default_section=FeedSection.CRYPTO,
    ),
)


Section = tuple[FeedSection, list[dict[str, Any]]]


def _items(value: list[Any]) -> list[dict[str, Any]]:
    return [item for item in value if isinstance(item, dict)]


def extract_sections(payload: Any, default_section: FeedSection, _depth: int = 0) -> list[Section]:
    """Split a decoded payload into ``(section, items)`` pairs.

    Unknown shapes yield an empty list; MarketFetcher rejects them
    beforehand via :func:`has_known_shape`.

    Example:
        >>> extract_sections({"currency": [{"symbol": "USD"}]}, FeedSection.COMBINED)
        [(<FeedSection.CURRENCY: 'currency'>, [{'symbol': 'USD'}])]
    """
    if isinstance(payload, list):
        items = _items(payload)
        return [(default_section, items)] if items else []

    if not isinstance(payload, Mapping) or _depth >= _MAX_ENVELOPE_DEPTH:
        return []

    sections: list[Section] = []
    for key, value in payload.items():
        section = SECTION_KEYS.get(str(key).lower())
        if section is not None and isinstance(value, list):
            items = _items(value)
            if items:
                sections.append((section, items))
    if sections:
        return sections

    for key in ENVELOPE_KEYS:
        if key in payload:
            return extract_sections(payload[key], default_section, _depth + 1)
    return []


def has_known_shape(payload: Any, _depth: int = 0) -> bool:
    """Whether *payload* is an array, a tagged object or an envelope around one.

    Empty arrays and sections count as known; an error object such as
    ``{"error": "invalid key"}`` does not.
    """
    if isinstance(payload, list):
        return True
    if not isinstance(payload, Mapping) or _depth >= _MAX_ENVELOPE_DEPTH:
        return False
    if any(str(key).lower() in SECTION_KEYS for key in payload):
        return True
    for key in ENVELOPE_KEYS:
        if key in payload:
            return has_known_shape(payload[key], _depth + 1)
    return False


class MarketFetcher:
    """Fetch one endpoint and unwrap it into tagged sections.

    Example:
        >>> async with AsyncMarketClient(api_key="...") as client:
        ...     fetcher = MarketFetcher(client)
        ...     sections = await fetcher.fetch(DEFAULT_ENDPOINTS[0])
    """

    def __init__(self, client: AsyncMarketClient) -> None:
        self._client = client

    async def fetch(self, endpoint: FeedEndpoint) -> list[Section]:
        """Sections of *endpoint*'s payload.

        Raises:
            FeedError: transport, HTTP or JSON failure (from the client)
            FeedParseError: the body is JSON of an unrecognized shape
        """
        payload = await self._client.get_json(endpoint.path)
        if not has_known_shape(payload):
            shape = sorted(map(str, payload)) if isinstance(payload, Mapping) else type(payload).__name__
            raise FeedParseError(
                f"Unrecognized payload from market feed: {endpoint.path}",
                context={"endpoint": endpoint.path, "shape": shape},
            )
        return extract_sections(payload, endpoint.default_section)
