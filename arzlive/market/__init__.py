"""Market-data normalization core.

Exports:
    - UnitNormalizer, InstrumentClass, parse_number: Rial/Toman normalization
    - InstrumentSpec, FeedSection, DEFAULT_CATALOG: fixed instrument catalog
    - InstrumentMatcher: upstream record -> catalog id
    - StableAssetRate, FiatRate, FixedRate: crypto reference-rate chain

The snapshot builder and scheduler live in ``arzlive.market.snapshot``
and ``arzlive.market.scheduler``.
"""

from arzlive.market.catalog import DEFAULT_CATALOG, FeedSection, InstrumentSpec, get_spec
from arzlive.market.matcher import InstrumentMatcher
from arzlive.market.normalizer import InstrumentClass, UnitNormalizer, parse_number
from arzlive.market.rates import FiatRate, FixedRate, StableAssetRate, resolve_crypto_price

__all__ = [
    "DEFAULT_CATALOG",
    "FeedSection",
    "FiatRate",
    "FixedRate",
    "InstrumentClass",
    "InstrumentMatcher",
    "InstrumentSpec",
    "StableAssetRate",
    "UnitNormalizer",
    "get_spec",
    "parse_number",
    "resolve_crypto_price",
]
