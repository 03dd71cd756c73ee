"""Tests for the market CLI."""

import asyncio
import json
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from arzlive.cli import market as market_cli
from arzlive.cli.market import app
from arzlive.config.settings import MarketSettings
from arzlive.core.exceptions import StorageError
from arzlive.history.store import HISTORY_KEY
from arzlive.models.asset import Asset, AssetType, PollResult
from arzlive.persistence.database import Database
from arzlive.persistence.state_store import StateStore

runner = CliRunner()
T = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

USD = Asset(
    id="usd",
    name_fa="دلار آمریکا",
    name_en="USD",
    asset_type=AssetType.CURRENCY,
    price=70_500.0,
    change_percent=0.5,
    as_of=T,
)


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    db_path = tmp_path / "arzlive.db"
    monkeypatch.setenv("ARZLIVE_DB_PATH", str(db_path))
    monkeypatch.setenv("ARZLIVE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ARZLIVE_API_KEY", "test-key")
    monkeypatch.setenv("COLUMNS", "200")
    yield db_path
    logger.remove()


def _fake_poll(result: PollResult):  # noqa: ANN202
    async def _poll(settings: MarketSettings) -> PollResult:
        return result

    return _poll


class TestPoll:
    def test_poll_prints_catalog(self, monkeypatch: pytest.MonkeyPatch) -> None:
        result = PollResult(assets=(USD,), updated_ids=frozenset({"usd"}), polled_at=T)
        monkeypatch.setattr(market_cli, "_poll", _fake_poll(result))

        outcome = runner.invoke(app, ["poll"])

        assert outcome.exit_code == 0
        assert "usd" in outcome.stdout
        assert "70,500" in outcome.stdout

    def test_poll_rial(self, monkeypatch: pytest.MonkeyPatch) -> None:
        result = PollResult(assets=(USD,), polled_at=T)
        monkeypatch.setattr(market_cli, "_poll", _fake_poll(result))

        outcome = runner.invoke(app, ["poll", "--rial"])

        assert outcome.exit_code == 0
        assert "705,000" in outcome.stdout

    def test_poll_total_failure_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        result = PollResult(assets=(USD,), error="feed down", polled_at=T)
        monkeypatch.setattr(market_cli, "_poll", _fake_poll(result))

        outcome = runner.invoke(app, ["poll"])

        assert outcome.exit_code == 1
        assert "feed down" in outcome.stdout


class TestDigest:
    def test_digest(self, monkeypatch: pytest.MonkeyPatch) -> None:
        result = PollResult(assets=(USD,), polled_at=T)
        monkeypatch.setattr(market_cli, "_poll", _fake_poll(result))

        outcome = runner.invoke(app, ["digest"])

        assert outcome.exit_code == 0
        assert "(USD): 70500 Toman, Change: 0.5%" in outcome.stdout


class TestHistory:
    """history command."""

    def test_unknown_instrument(self) -> None:
        outcome = runner.invoke(app, ["history", "xau"])
        assert outcome.exit_code == 1
        assert "Unknown instrument" in outcome.stdout

    def test_no_history(self) -> None:
        outcome = runner.invoke(app, ["history", "usd"])
        assert outcome.exit_code == 0
        assert "No persisted history" in outcome.stdout

    def test_persisted_history(self, cli_env: Path) -> None:
        payload = {
            "version": 1,
            "assets": {
                "usd": [
                    ["2026-01-15T11:00:00+00:00", 70_150],
                    ["2026-01-15T12:00:00+00:00", 70_500],
                ]
            },
        }

        async def _seed() -> None:
            async with Database(cli_env) as database:
                await StateStore(database).save_key(HISTORY_KEY, json.dumps(payload))

        asyncio.run(_seed())

        outcome = runner.invoke(app, ["history", "usd", "--last", "1"])

        assert outcome.exit_code == 0
        assert "Points: 2" in outcome.stdout
        assert "70,500" in outcome.stdout
        assert "2026-01-15 12:00:00" in outcome.stdout


class TestResetHistory:
    def test_reset_deletes_key(self, cli_env: Path) -> None:
        async def _seed() -> None:
            async with Database(cli_env) as database:
                await StateStore(database).save_key(HISTORY_KEY, "{}")

        async def _load() -> str | None:
            async with Database(cli_env) as database:
                return await StateStore(database).load_key(HISTORY_KEY)

        asyncio.run(_seed())

        outcome = runner.invoke(app, ["reset-history", "--yes"])

        assert outcome.exit_code == 0
        assert asyncio.run(_load()) is None

    def test_reset_aborted_without_confirmation(self) -> None:
        outcome = runner.invoke(app, ["reset-history"], input="n\n")
        assert outcome.exit_code == 1

    def test_reset_storage_failure_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def _fail(self: StateStore, key: str) -> None:
            raise StorageError("Failed to delete state", context={"key": key})

        monkeypatch.setattr(StateStore, "delete_key", _fail)

        outcome = runner.invoke(app, ["reset-history", "--yes"])

        assert outcome.exit_code == 1
        assert "Could not clear history" in outcome.stdout
