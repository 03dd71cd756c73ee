"""Reference-rate chain for converting crypto quotes to Toman.

Crypto items are quoted upstream in USD. Unless the item carries its own
Toman price, it is converted with the first rate the chain can supply:

    StableAssetRate  -> USDT/Tether Toman quote seen in this cycle's payload
    FiatRate         -> USD price after this cycle's fiat updates
    FixedRate        -> configured last-resort constant
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from loguru import logger

from arzlive.market.catalog import STABLE_ASSET_SYMBOLS
from arzlive.market.matcher import SYMBOL_FIELDS, field_values
from arzlive.market.normalizer import InstrumentClass, UnitNormalizer, parse_number

# Fields holding a Toman-denominated price on crypto items
TOMAN_PRICE_FIELDS: tuple[str, ...] = ("price_toman", "toman", "price_irt")
# Fields holding the reference (USD) price on crypto items
REFERENCE_PRICE_FIELDS: tuple[str, ...] = ("price", "price_usd", "usd")


class RateProvider(Protocol):
    """Supplies a USD->Toman rate, or None when it has none this cycle."""

    name: str

    def rate(self) -> float | None: ...


class StableAssetRate:
    """Toman price of a USD stablecoin reported in the same payload.

    Crypto-list entries carry the Toman quote in a dedicated field (their
    ``price`` is in USD); currency-list entries quote it under ``price``.
    """

    name = "stable_asset"

    def __init__(self, value: float | None = None) -> None:
        self._value = value

    def rate(self) -> float | None:
        return self._value

    def observe(
        self,
        records: Iterable[Mapping[str, Any]],
        normalizer: UnitNormalizer,
        *,
        price_is_toman: bool,
    ) -> bool:
        """Pick up the first stablecoin Toman quote in *records*.

        Args:
            records: Items of one feed section
            normalizer: Used to resolve the Rial/Toman ambiguity
            price_is_toman: Whether the plain ``price`` field is a local quote

        Returns:
            True when a rate is (now) known
        """
        if self._value is not None:
            return True
        fields = TOMAN_PRICE_FIELDS + (("price",) if price_is_toman else ())
        for record in records:
            if not isinstance(record, Mapping):
                continue
            if not set(field_values(record, SYMBOL_FIELDS)) & STABLE_ASSET_SYMBOLS:
                continue
            for field in fields:
                unit = record.get("unit") if field == "price" else None
                value = normalizer.normalize(InstrumentClass.CURRENCY, record.get(field), unit)
                if value is not None:
                    self._value = value
                    logger.debug("Stable-asset reference rate: {}", value)
                    return True
        return False


class FiatRate:
    """Normalized price of the reference fiat currency, read lazily."""

    name = "fiat"

    def __init__(self, getter: Callable[[], float | None]) -> None:
        self._getter = getter

    def rate(self) -> float | None:
        value = self._getter()
        if value is None or value <= 0:
            return None
        return value


class FixedRate:
    """Configured constant; always available."""

    name = "fixed"

    def __init__(self, value: float) -> None:
        self._value = value

    def rate(self) -> float | None:
        return self._value


def resolve_rate(chain: Sequence[RateProvider]) -> tuple[float, str] | None:
    """First (rate, provider name) the chain yields."""
    for provider in chain:
        value = provider.rate()
        if value is not None and value > 0:
            return value, provider.name
    return None


def resolve_crypto_price(
    record: Mapping[str, Any],
    normalizer: UnitNormalizer,
    chain: Sequence[RateProvider],
) -> float | None:
    """Canonical Toman price of a crypto *record*, or None.

    The item's own Toman field wins; otherwise its reference price is
    multiplied by the first available chain rate. The result goes through
    the crypto Rial sanity threshold.
    """
    toman: float | None = None
    for field in TOMAN_PRICE_FIELDS:
        value = parse_number(record.get(field))
        if value is not None and value > 0:
            toman = value
            break

    if toman is None:
        reference: float | None = None
        for field in REFERENCE_PRICE_FIELDS:
            value = parse_number(record.get(field))
            if value is not None and value > 0:
                reference = value
                break
        if reference is None:
            return None
        resolved = resolve_rate(chain)
        if resolved is None:
            return None
        rate, source = resolved
        logger.debug("Converting crypto quote {} with {} rate {}", reference, source, rate)
        toman = reference * rate

    return normalizer.normalize(InstrumentClass.CRYPTO, toman)
