"""Synthetic history backfill.

Used when no persisted history exists for an instrument, so charts are
never empty on first run. The random source is injectable: pass a seed
(or a numpy Generator) for deterministic output.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

import numpy as np

from arzlive.models.asset import HistoryPoint


class BackfillGenerator(Protocol):
    """Produces a synthetic series ending at *now* with price *seed_price*."""

    def generate(self, seed_price: float, now: datetime) -> list[HistoryPoint]: ...


class RandomBackfill:
    """Evenly spaced points with uniform noise around the seed price.

    ``points`` samples cover ``[now - lookback, now)`` at a fixed step, each
    priced at ``seed_price * (1 + U(-jitter, +jitter))``; a final point at
    ``now`` carries the seed price itself.

    Args:
        points: Number of synthetic samples before the final one
        lookback: Window the samples are spread across
        jitter: Relative half-width of the noise band
        seed: Integer seed or numpy Generator (None = fresh entropy)

    Example:
        >>> gen = RandomBackfill(points=3, seed=7)
        >>> len(gen.generate(70150.0, datetime(2026, 1, 1, tzinfo=UTC)))
        4
    """

    def __init__(
        self,
        points: int = 100,
        lookback: timedelta = timedelta(days=30),
        jitter: float = 0.05,
        seed: int | np.random.Generator | None = None,
    ) -> None:
        if points < 0:
            msg = f"points must be >= 0, got {points}"
            raise ValueError(msg)
        if not 0 <= jitter < 1:
            msg = f"jitter must be in [0, 1), got {jitter}"
            raise ValueError(msg)
        self._points = points
        self._lookback = lookback
        self._jitter = jitter
        self._rng = seed if isinstance(seed, np.random.Generator) else np.random.default_rng(seed)

    def generate(self, seed_price: float, now: datetime) -> list[HistoryPoint]:
        start = now - self._lookback
        step = self._lookback / self._points if self._points else timedelta(0)
        noise = self._rng.uniform(-self._jitter, self._jitter, size=self._points)

        history = [
            HistoryPoint(timestamp=start + step * i, price=float(seed_price * (1.0 + noise[i])))
            for i in range(self._points)
        ]
        history.append(HistoryPoint(timestamp=now, price=seed_price))
        return history
