"""Tests for payload unwrapping and MarketFetcher."""

import httpx
import pytest

from arzlive.core.exceptions import FeedError, FeedParseError
from arzlive.feed.fetcher import DEFAULT_ENDPOINTS, MarketFetcher, extract_sections, has_known_shape
from arzlive.market.catalog import FeedSection
from tests.conftest import FeedRoutes

USD = {"symbol": "USD", "price": "705,000"}
COIN = {"name": "سکه امامی", "price": "532,000,000"}
BTC = {"symbol": "BTC", "price": "92000"}


class TestExtractSections:
    """Payload shapes accepted from the feed."""

    def test_bare_array_uses_default_section(self) -> None:
        assert extract_sections([USD, COIN], FeedSection.COMBINED) == [
            (FeedSection.COMBINED, [USD, COIN])
        ]

    def test_tagged_sections(self) -> None:
        payload = {"gold": [COIN], "currency": [USD], "cryptocurrency": [BTC]}
        assert extract_sections(payload, FeedSection.COMBINED) == [
            (FeedSection.GOLD, [COIN]),
            (FeedSection.CURRENCY, [USD]),
            (FeedSection.CRYPTO, [BTC]),
        ]

    def test_section_keys_case_insensitive(self) -> None:
        assert extract_sections({"Currency": [USD]}, FeedSection.COMBINED) == [
            (FeedSection.CURRENCY, [USD])
        ]

    def test_envelope_with_array(self) -> None:
        assert extract_sections({"data": [BTC]}, FeedSection.CRYPTO) == [(FeedSection.CRYPTO, [BTC])]

    def test_envelope_with_sections(self) -> None:
        payload = {"status": "ok", "result": {"currency": [USD]}}
        assert extract_sections(payload, FeedSection.COMBINED) == [(FeedSection.CURRENCY, [USD])]

    def test_non_dict_items_dropped(self) -> None:
        assert extract_sections([USD, "x", 3, None], FeedSection.CURRENCY) == [
            (FeedSection.CURRENCY, [USD])
        ]

    def test_empty_sections_dropped(self) -> None:
        assert extract_sections({"currency": [], "gold": [COIN]}, FeedSection.COMBINED) == [
            (FeedSection.GOLD, [COIN])
        ]

    @pytest.mark.parametrize(
        "payload",
        [None, 42, "text", [], {}, {"message": "error"}, {"data": {"data": {"data": {"data": [USD]}}}}],
    )
    def test_unusable_shapes(self, payload: object) -> None:
        assert extract_sections(payload, FeedSection.COMBINED) == []


class TestHasKnownShape:
    @pytest.mark.parametrize(
        "payload",
        [[], [USD], {"currency": []}, {"Gold": [COIN]}, {"status": "ok", "data": [BTC]}, {"result": {"crypto": []}}],
    )
    def test_known(self, payload: object) -> None:
        assert has_known_shape(payload)

    @pytest.mark.parametrize(
        "payload",
        [None, 7, "text", {}, {"error": "invalid key"}, {"data": None}, {"data": {"data": {"data": {"data": [USD]}}}}],
    )
    def test_unknown(self, payload: object) -> None:
        assert not has_known_shape(payload)


class TestMarketFetcher:
    async def test_fetch(self, feed: FeedRoutes, fetcher: MarketFetcher) -> None:
        feed.set("Cryptocurrency.php", [BTC])
        crypto = next(ep for ep in DEFAULT_ENDPOINTS if ep.name == "crypto")
        assert await fetcher.fetch(crypto) == [(FeedSection.CRYPTO, [BTC])]

    async def test_empty_array_is_valid(self, feed: FeedRoutes, fetcher: MarketFetcher) -> None:
        feed.set("Cryptocurrency.php", [])
        crypto = next(ep for ep in DEFAULT_ENDPOINTS if ep.name == "crypto")
        assert await fetcher.fetch(crypto) == []

    @pytest.mark.parametrize("payload", [{"error": "invalid key"}, {"data": "maintenance"}, "ok", 0])
    async def test_unrecognized_body_raises(
        self, feed: FeedRoutes, fetcher: MarketFetcher, payload: object
    ) -> None:
        feed.set("Gold_Currency.php", payload)
        with pytest.raises(FeedParseError) as exc_info:
            await fetcher.fetch(DEFAULT_ENDPOINTS[0])
        assert exc_info.value.context["endpoint"] == "Gold_Currency.php"

    async def test_fetch_propagates_feed_error(self, feed: FeedRoutes, fetcher: MarketFetcher) -> None:
        feed.set("Gold_Currency.php", httpx.Response(503))
        with pytest.raises(FeedError):
            await fetcher.fetch(DEFAULT_ENDPOINTS[0])
