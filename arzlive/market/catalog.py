"""Fixed catalog of tracked instruments.

Each spec carries everything needed to recognise the instrument in the
upstream feed (exact symbols/slugs, localized name fragments) and to seed
it at startup. Ids never change at runtime.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from arzlive.market.normalizer import InstrumentClass
from arzlive.models.asset import AssetType


class FeedSection(StrEnum):
    """Which upstream list an item came from."""

    CURRENCY = "currency"
    GOLD = "gold"
    CRYPTO = "crypto"
    # Untagged array of the combined gold/currency endpoint
    COMBINED = "combined"

    def accepts(self, section: FeedSection) -> bool:
        """Whether an instrument living in *section* may be matched here."""
        if self is FeedSection.COMBINED:
            return section in (FeedSection.CURRENCY, FeedSection.GOLD)
        return self is section


class InstrumentSpec(BaseModel):
    """Static description of one tracked instrument.

    Attributes:
        id: Stable internal identifier
        name_fa: Persian display name
        name_en: Symbolic / English display name
        asset_type: Display grouping
        instrument_class: Normalization class (unit threshold)
        section: Upstream list the instrument is reported in
        symbols: Exact symbol/slug keys, lowercase
        name_fragments: Localized substrings of the upstream ``name``
        seed_price: Placeholder Toman price used before the first poll
        seed_change: Placeholder 24h change (%)
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name_fa: str
    name_en: str
    asset_type: AssetType
    instrument_class: InstrumentClass
    section: FeedSection
    symbols: frozenset[str] = Field(default_factory=frozenset)
    name_fragments: tuple[str, ...] = ()
    seed_price: float = Field(..., gt=0)
    seed_change: float = 0.0


DEFAULT_CATALOG: tuple[InstrumentSpec, ...] = (
    InstrumentSpec(
        id="usd",
        name_fa="دلار آمریکا",
        name_en="USD",
        asset_type=AssetType.CURRENCY,
        instrument_class=InstrumentClass.CURRENCY,
        section=FeedSection.CURRENCY,
        symbols=frozenset({"usd", "price_dollar_rl"}),
        name_fragments=("دلار",),
        seed_price=70_150,
        seed_change=0.5,
    ),
    InstrumentSpec(
        id="eur",
        name_fa="یورو",
        name_en="EUR",
        asset_type=AssetType.CURRENCY,
        instrument_class=InstrumentClass.CURRENCY,
        section=FeedSection.CURRENCY,
        symbols=frozenset({"eur", "price_eur"}),
        name_fragments=("یورو",),
        seed_price=76_400,
        seed_change=0.2,
    ),
    InstrumentSpec(
        id="gbp",
        name_fa="پوند انگلیس",
        name_en="GBP",
        asset_type=AssetType.CURRENCY,
        instrument_class=InstrumentClass.CURRENCY,
        section=FeedSection.CURRENCY,
        symbols=frozenset({"gbp", "price_gbp"}),
        name_fragments=("پوند",),
        seed_price=89_200,
        seed_change=-0.1,
    ),
    InstrumentSpec(
        id="gold_18",
        name_fa="طلای ۱۸ عیار",
        name_en="GOLD 18K",
        asset_type=AssetType.GOLD,
        instrument_class=InstrumentClass.GOLD_GRAM,
        section=FeedSection.GOLD,
        symbols=frozenset({"gram18", "geram18", "ir_gold_18k"}),
        name_fragments=("18 عیار", "۱۸ عیار"),
        seed_price=4_550_000,
        seed_change=1.2,
    ),
    InstrumentSpec(
        id="coin_emami",
        name_fa="سکه امامی",
        name_en="Emami Coin",
        asset_type=AssetType.GOLD,
        instrument_class=InstrumentClass.GOLD_COIN,
        section=FeedSection.GOLD,
        symbols=frozenset({"emami", "sekee", "ir_coin_emami"}),
        name_fragments=("امامی",),
        seed_price=53_200_000,
        seed_change=0.8,
    ),
    InstrumentSpec(
        id="btc",
        name_fa="بیت‌کوین",
        name_en="BTC",
        asset_type=AssetType.CRYPTO,
        instrument_class=InstrumentClass.CRYPTO,
        section=FeedSection.CRYPTO,
        symbols=frozenset({"btc", "bitcoin"}),
        name_fragments=("بیت کوین", "بیت‌کوین", "bitcoin"),
        seed_price=6_600_000_000,
        seed_change=2.5,
    ),
)

# Reference currency used to convert crypto quotes
REFERENCE_FIAT_ID = "usd"

# Stable-asset symbols whose Toman quote is the preferred crypto reference rate
STABLE_ASSET_SYMBOLS: frozenset[str] = frozenset({"usdt", "tether"})


def get_spec(asset_id: str, catalog: tuple[InstrumentSpec, ...] = DEFAULT_CATALOG) -> InstrumentSpec:
    """Spec for *asset_id*.

    Raises:
        KeyError: unknown id
    """
    for spec in catalog:
        if spec.id == asset_id:
            return spec
    msg = f"Unknown instrument: {asset_id}. Valid: {', '.join(s.id for s in catalog)}"
    raise KeyError(msg)
