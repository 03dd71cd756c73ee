"""Catalog data models: Asset, HistoryPoint, PollResult.

Pydantic V2 frozen models. The catalog handed to consumers is always a
tuple of frozen ``Asset`` values; only the snapshot builder replaces them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

RIAL_PER_TOMAN = 10


def _coerce_utc(v: str | int | float | datetime) -> datetime:
    """ISO string / Unix seconds / naive datetime -> aware UTC datetime."""
    if isinstance(v, int | float):
        return datetime.fromtimestamp(v, tz=UTC)
    if isinstance(v, str):
        dt = datetime.fromisoformat(v)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)
    if not isinstance(v, datetime):
        msg = f"Unsupported timestamp: {v!r}"
        raise ValueError(msg)  # noqa: TRY004
    if v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v.astimezone(UTC)


class AssetType(StrEnum):
    """Display grouping of an instrument."""

    CURRENCY = "CURRENCY"
    GOLD = "GOLD"
    CRYPTO = "CRYPTO"


class CurrencyMode(StrEnum):
    """Display unit selected by the user."""

    TOMAN = "TOMAN"
    RIAL = "RIAL"


class HistoryPoint(BaseModel):
    """One (timestamp, price) sample of an instrument's history.

    Attributes:
        timestamp: Sample time (UTC)
        price: Canonical price in Toman
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    price: float = Field(..., gt=0)

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: str | int | float | datetime) -> datetime:
        return _coerce_utc(v)


class Asset(BaseModel):
    """Catalog entry for one tracked instrument.

    Attributes:
        id: Stable identifier, join key for matching and history
        name_fa: Persian label
        name_en: Symbolic / English label
        asset_type: Display grouping
        price: Latest canonical price (Toman)
        change_percent: Latest reported 24h change (%)
        change_absolute: Latest reported 24h change in price units, if any
        as_of: Time of the latest update (UTC)
        history: Samples, ascending by timestamp
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name_fa: str
    name_en: str
    asset_type: AssetType
    price: float
    change_percent: float = 0.0
    change_absolute: float | None = None
    as_of: datetime
    history: tuple[HistoryPoint, ...] = ()

    @field_validator("as_of", mode="before")
    @classmethod
    def parse_as_of(cls, v: str | int | float | datetime) -> datetime:
        return _coerce_utc(v)

    def price_in(self, mode: CurrencyMode) -> float:
        """Price expressed in the requested display unit."""
        if mode is CurrencyMode.RIAL:
            return self.price * RIAL_PER_TOMAN
        return self.price


class PollResult(BaseModel):
    """Outcome of one poll cycle.

    Attributes:
        assets: Full catalog after the cycle (unchanged if every feed failed)
        error: User-facing message when any configured feed failed, else None
        updated_ids: Instruments updated by this cycle
        failed_feeds: Names of the feeds that failed outright
        polled_at: Cycle start time (UTC)
    """

    model_config = ConfigDict(frozen=True)

    assets: tuple[Asset, ...]
    error: str | None = None
    updated_ids: frozenset[str] = frozenset()
    failed_feeds: tuple[str, ...] = ()
    polled_at: datetime

    @property
    def ok(self) -> bool:
        return self.error is None

    def get(self, asset_id: str) -> Asset | None:
        """Asset with *asset_id*, or None when it is not in the catalog."""
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        return None
