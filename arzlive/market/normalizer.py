"""Unit normalizer: raw upstream values -> canonical Toman prices.

The upstream feed mixes Toman and Rial (x10) quotes without saying which
one it used. A per-class magnitude threshold decides: anything above the
threshold is taken to be Rial and divided by 10.
"""

from __future__ import annotations

import math
from enum import StrEnum

from arzlive.config.settings import UnitThresholds

RIAL_TO_TOMAN = 10

# Persian (U+06F0..) and Arabic-Indic (U+0660..) digits -> ASCII
_DIGIT_TABLE = str.maketrans(
    "۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩",
    "01234567890123456789",
)
# Thousands separators seen in the feed: ASCII comma, Arabic thousands
# separator, Arabic comma, and spaces (including NBSP)
_STRIP_CHARS = (",", "\u066c", "\u060c", " ", "\u00a0", "\u202f")


class InstrumentClass(StrEnum):
    """Normalization class; independent of the display AssetType."""

    CURRENCY = "currency"
    GOLD_GRAM = "gold_gram"
    GOLD_COIN = "gold_coin"
    CRYPTO = "crypto"


class PriceUnit(StrEnum):
    TOMAN = "toman"
    RIAL = "rial"


_UNIT_ALIASES: dict[str, PriceUnit] = {
    "toman": PriceUnit.TOMAN,
    "تومان": PriceUnit.TOMAN,
    "irt": PriceUnit.TOMAN,
    "rial": PriceUnit.RIAL,
    "ریال": PriceUnit.RIAL,
    "irr": PriceUnit.RIAL,
}


def detect_unit(label: object) -> PriceUnit | None:
    """Map an upstream unit label to a PriceUnit; None when absent or unknown."""
    if not isinstance(label, str):
        return None
    return _UNIT_ALIASES.get(label.strip().lower())


def parse_number(raw: object) -> float | None:
    """Parse a numeric-or-string feed value.

    Returns:
        The float value, or None when *raw* is missing or unparsable.
        Zero is returned as 0.0 (callers decide whether it is usable).

    Example:
        >>> parse_number("705,000")
        705000.0
        >>> parse_number("۷۰٬۱۵۰")
        70150.0
        >>> parse_number("n/a") is None
        True
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, int | float):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.translate(_DIGIT_TABLE)
        for ch in _STRIP_CHARS:
            text = text.replace(ch, "")
        # Arabic decimal separator
        text = text.replace("\u066b", ".")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(value):
        return None
    return value


class UnitNormalizer:
    """Convert raw feed values to canonical Toman prices.

    Example:
        >>> normalizer = UnitNormalizer()
        >>> normalizer.normalize(InstrumentClass.CURRENCY, "705,000")
        70500.0
        >>> normalizer.normalize(InstrumentClass.CURRENCY, 70150)
        70150.0
    """

    def __init__(self, thresholds: UnitThresholds | None = None) -> None:
        self._thresholds = thresholds or UnitThresholds()

    @property
    def thresholds(self) -> UnitThresholds:
        return self._thresholds

    def threshold_for(self, instrument_class: InstrumentClass) -> float:
        """Rial-detection threshold configured for *instrument_class*."""
        return float(getattr(self._thresholds, instrument_class.value))

    def normalize(
        self,
        instrument_class: InstrumentClass,
        raw: object,
        unit: object = None,
    ) -> float | None:
        """Canonical price for *raw*, or None ("no value").

        Zero and negative values are treated the same as unparsable ones;
        the caller must leave the existing price untouched. An explicit
        *unit* label (Rial/Toman) takes precedence over the threshold.
        """
        value = parse_number(raw)
        if value is None or value <= 0:
            return None

        declared = detect_unit(unit)
        if declared is PriceUnit.RIAL:
            return value / RIAL_TO_TOMAN
        if declared is PriceUnit.TOMAN:
            return value

        if value > self.threshold_for(instrument_class):
            return value / RIAL_TO_TOMAN
        return value
