"""HistoryStore — bounded rolling price history per instrument.

The whole ``{asset_id: [points]}`` map is persisted as one JSON document
under a single namespaced key at the end of each cycle that produced an
update. Missing or corrupted storage is never fatal: the affected
instruments fall back to a synthetic backfill.

Keys:
    arzlive:price_history: {"version": 1, "saved_at": ..., "assets": {id: [[iso_ts, price], ...]}}
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from arzlive.core.exceptions import StorageError
from arzlive.history.backfill import BackfillGenerator, RandomBackfill
from arzlive.models.asset import HistoryPoint
from arzlive.persistence.state_store import namespaced

if TYPE_CHECKING:
    from arzlive.market.catalog import InstrumentSpec
    from arzlive.persistence.state_store import StateStore

# ── Constants ─────────────────────────────────────────────────────

HISTORY_KEY = namespaced("price_history")
_HISTORY_VERSION = 1
DEFAULT_MAX_POINTS = 500
DEFAULT_RETENTION = timedelta(days=30)
DEFAULT_MIN_SAMPLE_INTERVAL = timedelta(seconds=60)


class HistoryStore:
    """Append-only, size-bounded price history for every catalog id.

    Args:
        state_store: Durable key/value store (None = memory only)
        max_points: Cap per instrument; the oldest points are dropped as new ones arrive
        retention: Restored points older than this are discarded
        min_sample_interval: Unchanged prices are re-sampled at most this often
        backfill: Generator used when nothing was persisted for an id
    """

    def __init__(
        self,
        state_store: StateStore | None = None,
        *,
        max_points: int = DEFAULT_MAX_POINTS,
        retention: timedelta = DEFAULT_RETENTION,
        min_sample_interval: timedelta = DEFAULT_MIN_SAMPLE_INTERVAL,
        backfill: BackfillGenerator | None = None,
    ) -> None:
        if max_points < 1:
            msg = f"max_points must be >= 1, got {max_points}"
            raise ValueError(msg)
        self._state_store = state_store
        self._max_points = max_points
        self._retention = retention
        self._min_sample_interval = min_sample_interval
        self._backfill = backfill or RandomBackfill()
        self._histories: dict[str, list[HistoryPoint]] = {}

    # ── Append ────────────────────────────────────────────────────

    def append_if_significant(self, asset_id: str, point: HistoryPoint) -> bool:
        """Record *point* if it carries new information.

        A point is appended when there is no previous sample, when the
        price moved, or when at least ``min_sample_interval`` has passed
        since the previous sample. Points older than the last sample are
        rejected to keep the series non-decreasing in time. Beyond
        ``max_points`` the oldest samples are dropped.

        Returns:
            True if the point was appended
        """
        history = self._histories.setdefault(asset_id, [])
        if not history:
            self._push(history, point)
            return True

        last = history[-1]
        if point.timestamp < last.timestamp:
            logger.debug(
                "Rejecting out-of-order sample for {}: {} < {}",
                asset_id,
                point.timestamp,
                last.timestamp,
            )
            return False

        if point.price != last.price or point.timestamp - last.timestamp >= self._min_sample_interval:
            self._push(history, point)
            return True

        return False

    def _push(self, history: list[HistoryPoint], point: HistoryPoint) -> None:
        history.append(point)
        if len(history) > self._max_points:
            del history[: len(history) - self._max_points]

    # ── Read ──────────────────────────────────────────────────────

    def load(self, asset_id: str) -> tuple[HistoryPoint, ...]:
        """Current series for *asset_id* (empty when unknown)."""
        return tuple(self._histories.get(asset_id, ()))

    def last(self, asset_id: str) -> HistoryPoint | None:
        history = self._histories.get(asset_id)
        return history[-1] if history else None

    # ── Persist ───────────────────────────────────────────────────

    def to_payload(self) -> dict[str, Any]:
        """Serializable snapshot of the whole map."""
        return {
            "version": _HISTORY_VERSION,
            "saved_at": datetime.now(UTC).isoformat(),
            "assets": {
                asset_id: [[p.timestamp.isoformat(), p.price] for p in history]
                for asset_id, history in self._histories.items()
            },
        }

    async def persist_all(self) -> bool:
        """Write the full map to durable storage.

        Failures are logged and reported through the return value; the
        in-memory histories are never rolled back.

        Returns:
            True if the snapshot was written
        """
        if self._state_store is None:
            return False

        try:
            payload = json.dumps(self.to_payload(), ensure_ascii=False)
            await self._state_store.save_key(HISTORY_KEY, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("Price history not persisted: {}", e)
            return False

        logger.debug("Price history persisted: {} instruments", len(self._histories))
        return True

    # ── Restore ───────────────────────────────────────────────────

    async def restore(
        self,
        specs: Iterable[InstrumentSpec],
        now: datetime | None = None,
    ) -> dict[str, bool]:
        """Populate histories for *specs* from storage or backfill.

        Persisted points outside the retention window are dropped and the
        rest sorted by time. Ids with nothing usable get a synthetic
        backfill seeded at their placeholder price.

        Returns:
            {asset_id: True if restored from storage, False if backfilled}
        """
        now = now or datetime.now(UTC)
        persisted = await self._read_persisted()
        cutoff = now - self._retention

        outcome: dict[str, bool] = {}
        for spec in specs:
            points = [p for p in persisted.get(spec.id, []) if cutoff <= p.timestamp <= now]
            if points:
                points.sort(key=lambda p: p.timestamp)
                self._histories[spec.id] = points[-self._max_points :]
                outcome[spec.id] = True
            else:
                backfilled = self._backfill.generate(spec.seed_price, now)
                self._histories[spec.id] = backfilled[-self._max_points :]
                outcome[spec.id] = False

        restored = sum(outcome.values())
        logger.info(
            "History ready: {} restored, {} backfilled",
            restored,
            len(outcome) - restored,
        )
        return outcome

    async def _read_persisted(self) -> dict[str, list[HistoryPoint]]:
        if self._state_store is None:
            return {}
        try:
            raw = await self._state_store.load_key(HISTORY_KEY)
        except StorageError as e:
            logger.warning("Price history unreadable, starting fresh: {}", e)
            return {}
        if raw is None:
            logger.info("No saved price history found, starting fresh")
            return {}
        return parse_history_payload(raw)


def parse_history_payload(raw: str) -> dict[str, list[HistoryPoint]]:
    """Decode a persisted snapshot; anything malformed is skipped.

    Accepts both the versioned envelope and a bare ``{id: [...]}`` map.
    Points may be ``[ts, price]`` pairs or ``{"timestamp"|"time", "price"}``
    objects.
    """
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Price history: corrupted JSON, starting fresh")
        return {}

    if not isinstance(data, dict):
        logger.warning("Price history: invalid format, starting fresh")
        return {}

    if "assets" in data:
        version = data.get("version")
        if not isinstance(version, int) or version > _HISTORY_VERSION:
            logger.warning(
                "Price history: version {} > {}, starting fresh",
                version,
                _HISTORY_VERSION,
            )
            return {}
        data = data["assets"]
        if not isinstance(data, dict):
            return {}

    result: dict[str, list[HistoryPoint]] = {}
    for asset_id, items in data.items():
        if not isinstance(items, list):
            continue
        points: list[HistoryPoint] = []
        for item in items:
            point = _parse_point(item)
            if point is not None:
                points.append(point)
        result[str(asset_id)] = points
    return result


def _parse_point(item: object) -> HistoryPoint | None:
    try:
        if isinstance(item, list | tuple) and len(item) == 2:
            return HistoryPoint(timestamp=item[0], price=item[1])
        if isinstance(item, dict):
            ts = item.get("timestamp", item.get("time"))
            return HistoryPoint(timestamp=ts, price=item.get("price"))
    except (ValidationError, ValueError, TypeError, OverflowError, OSError):
        return None
    return None
