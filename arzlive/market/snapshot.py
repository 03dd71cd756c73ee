"""Market snapshot builder — one fetch/normalize/match/store cycle.

Cycle:
    1. fan-out: every endpoint fetched concurrently, failures isolated
    2. fiat + gold sections normalized, matched and applied first
    3. crypto sections converted with the stable -> fiat -> fixed rate chain
    4. history persisted once if anything was updated
    5. PollResult with the full catalog and a cycle-level error, if any

The catalog lives in an explicit CatalogStore owned by the builder;
consumers only ever see the frozen tuple returned in each PollResult.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from contextlib import AsyncExitStack
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, ConfigDict

from arzlive.core.logger import cycle_context
from arzlive.feed.fetcher import DEFAULT_ENDPOINTS, FeedEndpoint, MarketFetcher
from arzlive.market.catalog import (
    DEFAULT_CATALOG,
    REFERENCE_FIAT_ID,
    FeedSection,
    InstrumentSpec,
)
from arzlive.market.matcher import InstrumentMatcher
from arzlive.market.normalizer import UnitNormalizer, parse_number
from arzlive.market.rates import (
    FiatRate,
    FixedRate,
    RateProvider,
    StableAssetRate,
    resolve_crypto_price,
)
from arzlive.models.asset import Asset, HistoryPoint, PollResult

if TYPE_CHECKING:
    from arzlive.config.settings import MarketSettings
    from arzlive.feed.fetcher import Section
    from arzlive.history.store import HistoryStore

# User-facing cycle errors
ALL_FEEDS_FAILED_MESSAGE = (
    "ارتباط با سرور قیمت برقرار نشد؛ آخرین قیمت‌های دریافتی نمایش داده می‌شوند."
)
PARTIAL_FEEDS_FAILED_MESSAGE = "بخشی از اطلاعات بازار به‌روزرسانی نشد ({feeds})."

PRICE_FIELDS: tuple[str, ...] = ("price", "value")
CHANGE_PERCENT_FIELDS: tuple[str, ...] = ("change_percent", "percent_change_24h", "change_24h")
CHANGE_ABSOLUTE_FIELDS: tuple[str, ...] = ("change_value", "change_amount", "change")
TIMESTAMP_FIELDS: tuple[str, ...] = ("time_unix", "timestamp", "updated_at", "last_updated")

# Unix timestamps above this are taken to be milliseconds
_MILLIS_THRESHOLD = 10_000_000_000


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Quote(BaseModel):
    """Normalized update for one instrument in one cycle."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    price: float
    change_percent: float = 0.0
    change_absolute: float | None = None
    as_of: datetime


def _first_number(record: Mapping[str, Any], fields: tuple[str, ...]) -> float | None:
    for field in fields:
        value = parse_number(record.get(field))
        if value is not None:
            return value
    return None


def parse_source_time(record: Mapping[str, Any]) -> datetime | None:
    """Source-reported update time, when the item carries a usable one.

    Unix seconds/milliseconds and ISO-8601 strings are understood; the
    Jalali ``date``/``time`` display strings are ignored.
    """
    for field in TIMESTAMP_FIELDS:
        raw = record.get(field)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            if isinstance(raw, int | float) or (isinstance(raw, str) and raw.strip().isdigit()):
                seconds = float(raw)
                if seconds <= 0:
                    continue
                if seconds > _MILLIS_THRESHOLD:
                    seconds /= 1000
                return datetime.fromtimestamp(seconds, tz=UTC)
            if isinstance(raw, str):
                dt = datetime.fromisoformat(raw.strip())
                return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
        except (ValueError, OverflowError, OSError):
            continue
    return None


# =============================================================================
# Catalog store
# =============================================================================


class CatalogStore:
    """Owner of the mutable catalog: one Asset per spec id.

    Scalar fields are replaced on every applied quote; the history is
    read from the HistoryStore whenever a snapshot is taken.
    """

    def __init__(
        self,
        specs: Iterable[InstrumentSpec],
        history: HistoryStore,
        now: datetime | None = None,
    ) -> None:
        self._history = history
        now = now or _utcnow()
        self._specs: dict[str, InstrumentSpec] = {}
        self._assets: dict[str, Asset] = {}
        for spec in specs:
            if spec.id in self._specs:
                msg = f"Duplicate catalog id: {spec.id}"
                raise ValueError(msg)
            self._specs[spec.id] = spec
            last = history.last(spec.id)
            self._assets[spec.id] = Asset(
                id=spec.id,
                name_fa=spec.name_fa,
                name_en=spec.name_en,
                asset_type=spec.asset_type,
                price=last.price if last is not None else spec.seed_price,
                change_percent=spec.seed_change,
                as_of=last.timestamp if last is not None else now,
            )

    @property
    def ids(self) -> list[str]:
        return list(self._assets)

    def spec(self, asset_id: str) -> InstrumentSpec:
        return self._specs[asset_id]

    def price_of(self, asset_id: str) -> float | None:
        asset = self._assets.get(asset_id)
        return asset.price if asset is not None else None

    def apply(self, quote: Quote, sampled_at: datetime) -> None:
        """Overwrite the scalar fields of ``quote.asset_id`` and sample history.

        The sample time is clamped to the last stored sample so the series
        never goes backwards, which keeps ``price == history[-1].price``.
        """
        current = self._assets[quote.asset_id]
        last = self._history.last(quote.asset_id)
        if last is not None and sampled_at < last.timestamp:
            sampled_at = last.timestamp

        self._history.append_if_significant(
            quote.asset_id, HistoryPoint(timestamp=sampled_at, price=quote.price)
        )
        self._assets[quote.asset_id] = current.model_copy(
            update={
                "price": quote.price,
                "change_percent": quote.change_percent,
                "change_absolute": quote.change_absolute,
                "as_of": quote.as_of,
            }
        )

    def snapshot(self) -> tuple[Asset, ...]:
        """Immutable view of the whole catalog, histories attached."""
        return tuple(
            asset.model_copy(update={"history": self._history.load(asset_id)})
            for asset_id, asset in self._assets.items()
        )


# =============================================================================
# Builder
# =============================================================================


class MarketSnapshotBuilder:
    """Runs poll cycles against the upstream feed.

    Cycles are serialized: a poll started while another is still running
    waits for it to finish (including its persistence step).

    Args:
        fetcher: Endpoint fetcher
        history: History store, already restored
        specs: Tracked instruments
        endpoints: Endpoints fetched each cycle
        normalizer: Unit normalizer (default thresholds if None)
        fallback_usd_rate: Last-resort USD->Toman rate for crypto
        clock: Returns the current UTC time (injectable for tests)

    Example:
        >>> builder = await MarketSnapshotBuilder.create(get_settings())
        >>> result = await builder.poll_once()
        >>> result.get("usd").price
        70500.0
    """

    def __init__(
        self,
        fetcher: MarketFetcher,
        history: HistoryStore,
        *,
        specs: Sequence[InstrumentSpec] = DEFAULT_CATALOG,
        endpoints: Sequence[FeedEndpoint] = DEFAULT_ENDPOINTS,
        normalizer: UnitNormalizer | None = None,
        fallback_usd_rate: float = 70_000.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not endpoints:
            msg = "At least one endpoint is required"
            raise ValueError(msg)
        self._fetcher = fetcher
        self._history = history
        self._endpoints = tuple(endpoints)
        self._normalizer = normalizer or UnitNormalizer()
        self._matcher = InstrumentMatcher(specs)
        self._fallback_usd_rate = fallback_usd_rate
        self._clock = clock
        self._catalog = CatalogStore(specs, history, now=clock())
        self._lock = asyncio.Lock()
        self._cycles = 0
        self._exit_stack: AsyncExitStack | None = None

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    async def create(cls, settings: MarketSettings) -> MarketSnapshotBuilder:
        """Wire client, database and history from *settings*.

        The returned builder owns the HTTP client and the database
        connection; release them with :meth:`aclose` (or ``async with``).
        """
        from arzlive.feed.client import AsyncMarketClient
        from arzlive.history.backfill import RandomBackfill
        from arzlive.history.store import HistoryStore
        from arzlive.persistence.database import Database
        from arzlive.persistence.state_store import StateStore

        stack = AsyncExitStack()
        try:
            database = await stack.enter_async_context(Database(settings.db_path))
            client = await stack.enter_async_context(
                AsyncMarketClient(
                    api_key=settings.api_key.get_secret_value(),
                    base_url=settings.base_url,
                    timeout=settings.request_timeout,
                )
            )
            history = HistoryStore(
                StateStore(database),
                max_points=settings.history_max_points,
                retention=timedelta(days=settings.history_retention_days),
                min_sample_interval=timedelta(seconds=settings.history_min_sample_seconds),
                backfill=RandomBackfill(
                    points=settings.backfill_points,
                    lookback=timedelta(days=settings.backfill_lookback_days),
                    jitter=settings.backfill_jitter,
                ),
            )
            await history.restore(DEFAULT_CATALOG)
        except BaseException:
            await stack.aclose()
            raise

        builder = cls(
            MarketFetcher(client),
            history,
            normalizer=UnitNormalizer(settings.thresholds),
            fallback_usd_rate=settings.fallback_usd_rate,
        )
        builder._exit_stack = stack
        return builder

    async def aclose(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None

    async def __aenter__(self) -> MarketSnapshotBuilder:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # ── Public API ────────────────────────────────────────────────

    def snapshot(self) -> tuple[Asset, ...]:
        """Current catalog without polling."""
        return self._catalog.snapshot()

    async def poll_once(self) -> PollResult:
        """Run one full cycle and return the resulting catalog."""
        async with self._lock:
            self._cycles += 1
            with cycle_context(self._cycles):
                return await self._run_cycle()

    # ── Cycle ─────────────────────────────────────────────────────

    async def _run_cycle(self) -> PollResult:
        polled_at = self._clock()
        outcomes = await asyncio.gather(
            *(self._fetcher.fetch(ep) for ep in self._endpoints),
            return_exceptions=True,
        )

        sections: list[Section] = []
        failed: list[str] = []
        for endpoint, outcome in zip(self._endpoints, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failed.append(endpoint.name)
                logger.warning("Feed {} failed: {}", endpoint.name, outcome)
            else:
                sections.extend(outcome)

        if len(failed) == len(self._endpoints):
            logger.error("All {} feeds failed; keeping last known catalog", len(failed))
            return PollResult(
                assets=self._catalog.snapshot(),
                error=ALL_FEEDS_FAILED_MESSAGE,
                failed_feeds=tuple(failed),
                polled_at=polled_at,
            )

        updated = self._apply_sections(sections, polled_at)
        if updated:
            await self._history.persist_all()

        error = PARTIAL_FEEDS_FAILED_MESSAGE.format(feeds=", ".join(failed)) if failed else None
        logger.info(
            "Cycle done: {} updated ({}), {} feed(s) failed",
            len(updated),
            ", ".join(sorted(updated)) or "-",
            len(failed),
        )
        return PollResult(
            assets=self._catalog.snapshot(),
            error=error,
            updated_ids=frozenset(updated),
            failed_feeds=tuple(failed),
            polled_at=polled_at,
        )

    def _apply_sections(self, sections: list[Section], polled_at: datetime) -> set[str]:
        """Apply every matched item; fiat/gold strictly before crypto."""
        updated: set[str] = set()
        # ids already matched this cycle; later duplicates from any section are ignored
        matched: set[str] = set()
        stable = StableAssetRate()

        local = [(s, items) for s, items in sections if s is not FeedSection.CRYPTO]
        crypto = [(s, items) for s, items in sections if s is FeedSection.CRYPTO]

        for section, items in local:
            for asset_id, record in self._matcher.match_all(items, section, matched):
                matched.add(asset_id)
                quote = self._local_quote(asset_id, record, polled_at)
                if quote is None:
                    continue
                self._catalog.apply(quote, polled_at)
                updated.add(asset_id)
            stable.observe(items, self._normalizer, price_is_toman=True)

        if not crypto:
            return updated

        for _, items in crypto:
            stable.observe(items, self._normalizer, price_is_toman=False)

        chain: tuple[RateProvider, ...] = (
            stable,
            FiatRate(lambda: self._catalog.price_of(REFERENCE_FIAT_ID)),
            FixedRate(self._fallback_usd_rate),
        )
        for section, items in crypto:
            for asset_id, record in self._matcher.match_all(items, section, matched):
                matched.add(asset_id)
                price = resolve_crypto_price(record, self._normalizer, chain)
                if price is None:
                    logger.debug("Skipping {}: no usable price in {}", asset_id, record)
                    continue
                self._catalog.apply(self._quote(asset_id, price, record, polled_at), polled_at)
                updated.add(asset_id)

        return updated

    def _local_quote(
        self, asset_id: str, record: Mapping[str, Any], polled_at: datetime
    ) -> Quote | None:
        price = self._local_price(self._catalog.spec(asset_id), record)
        if price is None:
            logger.debug("Skipping {}: no usable price in {}", asset_id, record)
            return None
        return self._quote(asset_id, price, record, polled_at)

    def _local_price(self, spec: InstrumentSpec, record: Mapping[str, Any]) -> float | None:
        # an unparseable "price" falls through to "value"
        for field in PRICE_FIELDS:
            price = self._normalizer.normalize(
                spec.instrument_class, record.get(field), record.get("unit")
            )
            if price is not None:
                return price
        return None

    @staticmethod
    def _quote(
        asset_id: str, price: float, record: Mapping[str, Any], polled_at: datetime
    ) -> Quote:
        return Quote(
            asset_id=asset_id,
            price=price,
            change_percent=_first_number(record, CHANGE_PERCENT_FIELDS) or 0.0,
            change_absolute=_first_number(record, CHANGE_ABSOLUTE_FIELDS),
            as_of=parse_source_time(record) or polled_at,
        )
