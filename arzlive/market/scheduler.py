"""Polling scheduler — drives MarketSnapshotBuilder on a fixed cadence.

The first cycle runs immediately; later cycles start ``interval`` seconds
after the previous one started (a slow cycle shortens the wait rather
than shifting the grid). A failing cycle or callback is logged and the
loop keeps going.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from arzlive.market.snapshot import MarketSnapshotBuilder
    from arzlive.models.asset import PollResult

ResultCallback = Callable[["PollResult"], Awaitable[None] | None]


class PollingScheduler:
    """Fixed-interval driver for ``poll_once``.

    Args:
        builder: Snapshot builder to drive
        interval: Seconds between cycle starts
        on_result: Called with every PollResult (sync or async)

    Example:
        >>> scheduler = PollingScheduler(builder, interval=60, on_result=render)
        >>> await scheduler.run()          # until stop()
        >>> await scheduler.run(max_cycles=3)
    """

    def __init__(
        self,
        builder: MarketSnapshotBuilder,
        interval: float = 60.0,
        on_result: ResultCallback | None = None,
    ) -> None:
        if interval <= 0:
            msg = f"interval must be > 0, got {interval}"
            raise ValueError(msg)
        self._builder = builder
        self._interval = interval
        self._on_result = on_result
        self._stop_event = asyncio.Event()
        self._cycles = 0
        self._last_result: PollResult | None = None

    @property
    def cycles(self) -> int:
        """Completed cycles since construction."""
        return self._cycles

    @property
    def last_result(self) -> PollResult | None:
        return self._last_result

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle / wait."""
        self._stop_event.set()

    async def run(self, max_cycles: int | None = None) -> None:
        """Poll until :meth:`stop` is called or *max_cycles* are done."""
        self._stop_event.clear()
        logger.info("Polling every {:.0f}s", self._interval)

        while not self._stop_event.is_set():
            started = time.monotonic()
            await self._tick()

            if max_cycles is not None and self._cycles >= max_cycles:
                break

            wait = max(0.0, self._interval - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=wait)
            except TimeoutError:
                continue

        logger.info("Polling stopped after {} cycle(s)", self._cycles)

    async def _tick(self) -> None:
        try:
            result = await self._builder.poll_once()
        except Exception:
            logger.exception("Poll cycle crashed")
            self._cycles += 1
            return

        self._cycles += 1
        self._last_result = result
        if self._on_result is None:
            return
        try:
            outcome = self._on_result(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Poll result callback failed")
