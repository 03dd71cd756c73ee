"""Types exchanged with the external market-summary service.

The core only prepares the plain-text digest and interprets the reply;
the request itself is made by the caller.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from arzlive.models.asset import Asset

_FALLBACK_SUMMARY = "خطا در دریافت تحلیل هوشمند. لطفاً دقایقی دیگر تلاش کنید."
_FALLBACK_ADVICE = "در شرایط فعلی بازار محتاط باشید."


class MarketTrend(StrEnum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class MarketAnalysis(BaseModel):
    """Structured reply of the summary service.

    Attributes:
        summary: Market summary (Persian)
        trend: Overall sentiment
        advice: Short advice for preserving value (Persian)
    """

    model_config = ConfigDict(frozen=True)

    summary: str
    trend: MarketTrend
    advice: str

    @classmethod
    def fallback(cls) -> MarketAnalysis:
        """Default shown when the service fails."""
        return cls(
            summary=_FALLBACK_SUMMARY,
            trend=MarketTrend.NEUTRAL,
            advice=_FALLBACK_ADVICE,
        )


def _format_price(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"


def build_market_digest(assets: Iterable[Asset]) -> str:
    """One line per asset: names, Toman price and 24h change."""
    return "\n".join(
        f"{a.name_fa} ({a.name_en}): {_format_price(a.price)} Toman, "
        f"Change: {a.change_percent}%"
        for a in assets
    )


def parse_market_analysis(raw: str | None) -> MarketAnalysis:
    """Interpret the service's JSON reply, defaulting on any problem."""
    if not raw:
        return MarketAnalysis.fallback()
    try:
        payload = json.loads(raw)
        return MarketAnalysis.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unusable market analysis reply: {}", e)
        return MarketAnalysis.fallback()
