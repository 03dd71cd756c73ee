"""Shared fixtures for tests.

Provides an in-memory database, a fixed clock and an httpx mock feed so
cycle tests never touch the network or the filesystem.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from arzlive.config.settings import clear_settings_cache
from arzlive.feed.client import AsyncMarketClient
from arzlive.feed.fetcher import MarketFetcher
from arzlive.history.backfill import RandomBackfill
from arzlive.history.store import HistoryStore
from arzlive.persistence.database import Database
from arzlive.persistence.state_store import StateStore

# ---------------------------------------------------------------------------
# Directory path -> pytest marker
# ---------------------------------------------------------------------------
_DIR_MARKER_MAP: dict[str, str] = {
    "/feed/": "integration",
    "/cli/": "integration",
    "/core/": "unit",
    "/config/": "unit",
    "/models/": "unit",
    "/market/": "unit",
    "/history/": "unit",
    "/persistence/": "unit",
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark tests by directory."""
    for item in items:
        fspath = str(item.fspath)
        for dir_pattern, marker_name in _DIR_MARKER_MAP.items():
            if dir_pattern in fspath:
                item.add_marker(getattr(pytest.mark, marker_name))
                break


T0 = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)
TEST_BASE_URL = "https://feed.test/Api/Market/"


class FakeClock:
    """Callable clock advanced manually by tests."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FeedRoutes:
    """Per-endpoint canned responses for ``httpx.MockTransport``.

    A route value may be a JSON-serializable payload, an ``httpx.Response``,
    or an exception class/instance raised from the transport.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def set(self, path: str, value: Any) -> None:
        self.routes[path] = value

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for path, value in self.routes.items():
            if request.url.path.endswith(path):
                if isinstance(value, httpx.Response):
                    return value
                if isinstance(value, type) and issubclass(value, httpx.HTTPError):
                    raise value("simulated failure", request=request)
                return httpx.Response(
                    200,
                    content=json.dumps(value, ensure_ascii=False).encode(),
                    headers={"Content-Type": "application/json"},
                )
        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def database() -> AsyncIterator[Database]:
    """In-memory SQLite database."""
    db = Database(":memory:")
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def state_store(database: Database) -> StateStore:
    return StateStore(database)


@pytest.fixture
def backfill() -> RandomBackfill:
    """Small deterministic backfill."""
    return RandomBackfill(points=5, seed=42)


@pytest.fixture
def history_factory(
    state_store: StateStore, backfill: RandomBackfill
) -> Callable[..., HistoryStore]:
    def _make(**kwargs: Any) -> HistoryStore:
        kwargs.setdefault("backfill", backfill)
        return HistoryStore(state_store, **kwargs)

    return _make


@pytest.fixture
def feed() -> FeedRoutes:
    return FeedRoutes()


@pytest.fixture
async def market_client(feed: FeedRoutes) -> AsyncIterator[AsyncMarketClient]:
    async with AsyncMarketClient(
        api_key="test-key", base_url=TEST_BASE_URL, transport=feed.transport()
    ) as client:
        yield client


@pytest.fixture
def fetcher(market_client: AsyncMarketClient) -> MarketFetcher:
    return MarketFetcher(market_client)
