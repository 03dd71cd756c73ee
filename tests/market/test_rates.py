"""Tests for the crypto reference-rate chain."""

import pytest

from arzlive.market.normalizer import UnitNormalizer
from arzlive.market.rates import (
    FiatRate,
    FixedRate,
    StableAssetRate,
    resolve_crypto_price,
    resolve_rate,
)


@pytest.fixture
def normalizer() -> UnitNormalizer:
    return UnitNormalizer()


class TestProviders:
    def test_fixed(self) -> None:
        assert FixedRate(70_000).rate() == 70_000

    @pytest.mark.parametrize("value", [None, 0.0, -1.0])
    def test_fiat_unusable(self, value: float | None) -> None:
        assert FiatRate(lambda: value).rate() is None

    def test_fiat_read_lazily(self) -> None:
        prices = {"usd": 70_150.0}
        rate = FiatRate(lambda: prices["usd"])
        prices["usd"] = 70_500.0
        assert rate.rate() == 70_500.0

    def test_resolve_order(self) -> None:
        chain = (StableAssetRate(), FiatRate(lambda: 70_150.0), FixedRate(70_000))
        assert resolve_rate(chain) == (70_150.0, "fiat")

    def test_resolve_falls_through_to_fixed(self) -> None:
        chain = (StableAssetRate(), FiatRate(lambda: None), FixedRate(70_000))
        assert resolve_rate(chain) == (70_000, "fixed")

    def test_resolve_empty_chain(self) -> None:
        assert resolve_rate(()) is None


class TestStableAssetRate:
    """Stablecoin Toman quote discovery."""

    def test_crypto_item_toman_field(self, normalizer: UnitNormalizer) -> None:
        stable = StableAssetRate()
        records = [
            {"symbol": "BTC", "price": "92000"},
            {"symbol": "USDT", "price": "1.0", "price_toman": "71,200"},
        ]
        assert stable.observe(records, normalizer, price_is_toman=False)
        assert stable.rate() == 71_200

    def test_crypto_item_usd_price_ignored(self, normalizer: UnitNormalizer) -> None:
        """On crypto lists ``price`` is USD and never a Toman rate."""
        stable = StableAssetRate()
        assert not stable.observe([{"symbol": "USDT", "price": "1.0"}], normalizer, price_is_toman=False)
        assert stable.rate() is None

    def test_currency_item_price(self, normalizer: UnitNormalizer) -> None:
        """Currency lists quote tether under ``price``, possibly in Rial."""
        stable = StableAssetRate()
        records = [{"slug": "tether", "price": "712,000"}]
        assert stable.observe(records, normalizer, price_is_toman=True)
        assert stable.rate() == 71_200

    def test_first_observation_kept(self, normalizer: UnitNormalizer) -> None:
        stable = StableAssetRate()
        stable.observe([{"symbol": "USDT", "price_toman": 71_000}], normalizer, price_is_toman=False)
        stable.observe([{"symbol": "USDT", "price_toman": 72_000}], normalizer, price_is_toman=False)
        assert stable.rate() == 71_000

    def test_ignores_non_stable_and_junk(self, normalizer: UnitNormalizer) -> None:
        stable = StableAssetRate()
        records = ["USDT", {"symbol": "ETH", "price_toman": 1}, {"symbol": "USDT", "price_toman": "0"}]
        assert not stable.observe(records, normalizer, price_is_toman=False)


class TestResolveCryptoPrice:
    """Toman price of a crypto item."""

    def test_fiat_conversion(self, normalizer: UnitNormalizer) -> None:
        """BTC 92,000 USD at a 70,150 USD rate."""
        chain = (StableAssetRate(), FiatRate(lambda: 70_150.0), FixedRate(70_000))
        price = resolve_crypto_price({"symbol": "BTC", "price": "92000"}, normalizer, chain)
        assert price == 92_000 * 70_150

    def test_stable_rate_preferred(self, normalizer: UnitNormalizer) -> None:
        chain = (StableAssetRate(71_000), FiatRate(lambda: 70_150.0), FixedRate(70_000))
        assert resolve_crypto_price({"price": 2}, normalizer, chain) == 142_000

    def test_fixed_fallback(self, normalizer: UnitNormalizer) -> None:
        chain = (StableAssetRate(), FiatRate(lambda: None), FixedRate(70_000))
        assert resolve_crypto_price({"price_usd": "1.5"}, normalizer, chain) == 105_000

    def test_own_toman_price_wins(self, normalizer: UnitNormalizer) -> None:
        chain = (FixedRate(1),)
        record = {"price": "92000", "price_toman": "6,453,800,000"}
        assert resolve_crypto_price(record, normalizer, chain) == 6_453_800_000

    def test_toman_field_in_rial_is_corrected(self, normalizer: UnitNormalizer) -> None:
        record = {"price_toman": "66,000,000,000"}
        assert resolve_crypto_price(record, normalizer, (FixedRate(1),)) == 6_600_000_000

    def test_converted_value_gets_sanity_check(self, normalizer: UnitNormalizer) -> None:
        """A conversion overshooting the crypto threshold is divided by 10."""
        chain = (FixedRate(700_000),)
        assert resolve_crypto_price({"price": 92_000}, normalizer, chain) == pytest.approx(
            92_000 * 70_000
        )

    @pytest.mark.parametrize("record", [{}, {"price": "n/a"}, {"price": 0}, {"price": -3}])
    def test_no_usable_price(self, normalizer: UnitNormalizer, record: dict) -> None:
        assert resolve_crypto_price(record, normalizer, (FixedRate(70_000),)) is None

    def test_empty_chain(self, normalizer: UnitNormalizer) -> None:
        assert resolve_crypto_price({"price": 1}, normalizer, ()) is None
