"""Tests for loguru setup."""

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from arzlive.core.logger import (
    current_cycle,
    cycle_context,
    setup_logger,
    setup_logger_from_config,
)
from arzlive.logging.config import LoggingConfig


@pytest.fixture(autouse=True)
def _restore_logger() -> Iterator[None]:
    yield
    logger.remove()


class TestSetupLogger:
    def test_file_sink_written(self, tmp_path: Path) -> None:
        setup_logger(log_dir=tmp_path, console_level="ERROR", file_level="DEBUG")
        logger.info("price cycle finished")
        logger.complete()
        logger.remove()

        files = list(tmp_path.glob("arzlive_*.log"))
        assert len(files) == 1
        assert "price cycle finished" in files[0].read_text(encoding="utf-8")

    def test_file_sink_disabled(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logger(log_dir=log_dir, enable_file=False)
        logger.info("console only")
        assert not log_dir.exists()

    def test_json_logs(self, tmp_path: Path) -> None:
        config = LoggingConfig(
            _env_file=None,
            log_dir=tmp_path,
            console_level="ERROR",
            json_logs=True,
        )
        setup_logger_from_config(config)
        logger.warning("feed down")
        logger.remove()

        files = list(tmp_path.glob("arzlive_*.json"))
        assert len(files) == 1
        assert '"feed down"' in files[0].read_text(encoding="utf-8")


class TestCycleContext:
    def test_records_tagged_inside_cycle(self, tmp_path: Path) -> None:
        setup_logger(log_dir=tmp_path, console_level="ERROR")
        with cycle_context(7):
            logger.info("inside")
        logger.info("outside")
        logger.complete()
        logger.remove()

        text = next(tmp_path.glob("arzlive_*.log")).read_text(encoding="utf-8")
        assert "cycle=7 | " in text
        assert "cycle=- | " in text

    def test_context_restored(self) -> None:
        assert current_cycle.get() is None
        with cycle_context(3):
            assert current_cycle.get() == 3
            with cycle_context(4):
                assert current_cycle.get() == 4
            assert current_cycle.get() == 3
        assert current_cycle.get() is None

    async def test_context_reaches_gathered_tasks(self) -> None:
        async def _read() -> int | None:
            return current_cycle.get()

        with cycle_context(9):
            seen = await asyncio.gather(_read(), _read())
        assert seen == [9, 9]
