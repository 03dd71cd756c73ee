"""Loguru setup for arzlive.

Library modules only do ``from loguru import logger``; entry points call
:func:`setup_logger` (or :func:`setup_logger_from_config`) once.

Records emitted while a poll cycle runs carry its number in
``extra["cycle"]`` (``-`` outside a cycle). The value lives in a
ContextVar, so it follows the cycle into every feed task it gathers.

Example:
    >>> setup_logger(console_level="DEBUG", enable_file=False)
    >>> with cycle_context(12):
    ...     logger.info("Cycle done")   # 12:00:01.250 INFO    #12 arzlive... | Cycle done
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from arzlive.logging.config import LoggingConfig, get_logging_config

if TYPE_CHECKING:
    from loguru import Record

current_cycle: ContextVar[int | None] = ContextVar("arzlive_cycle", default=None)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>#{extra[cycle]}</magenta> "
    "<cyan>{name}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | cycle={extra[cycle]} | "
    "{name}:{function}:{line} | {message}"
)


def _inject_cycle(record: Record) -> None:
    cycle = current_cycle.get()
    record["extra"].setdefault("cycle", "-" if cycle is None else cycle)


@contextmanager
def cycle_context(cycle: int) -> Iterator[None]:
    """Tag every record logged inside the block with *cycle*."""
    token = current_cycle.set(cycle)
    try:
        yield
    finally:
        current_cycle.reset(token)


def setup_logger_from_config(config: LoggingConfig | None = None) -> None:
    """Replace all sinks with the ones *config* describes.

    Args:
        config: Logging settings (read from ``LOG_*`` when None)
    """
    config = config or get_logging_config()

    logger.remove()
    logger.configure(patcher=_inject_cycle)
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=config.console_level,
        colorize=True,
        backtrace=config.backtrace,
        diagnose=config.diagnose,
    )
    if config.file_enabled:
        _add_file_sink(config)

    logger.debug(
        "Logging ready: console={} file={} dir={}",
        config.console_level,
        config.file_level if config.file_enabled else "off",
        config.log_dir,
    )


def setup_logger(
    log_dir: Path | str = Path("logs"),
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    *,
    enable_file: bool = True,
) -> None:
    """CLI shortcut: explicit directory and levels, the rest from ``LOG_*``."""
    setup_logger_from_config(
        LoggingConfig(
            log_dir=Path(log_dir),
            console_level=console_level,  # type: ignore[arg-type]
            file_level=file_level,  # type: ignore[arg-type]
            file_enabled=enable_file,
        )
    )


def _add_file_sink(config: LoggingConfig) -> None:
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    suffix = "json" if config.json_logs else "log"
    logger.add(
        log_dir / f"arzlive_{{time:YYYY-MM-DD}}.{suffix}",
        format=FILE_FORMAT,
        serialize=config.json_logs,
        level=config.file_level,
        rotation=config.rotation,
        retention=config.retention,
        compression=config.compression,
        encoding="utf-8",
        enqueue=True,
        backtrace=config.backtrace,
        diagnose=False,
    )


__all__ = [
    "current_cycle",
    "cycle_context",
    "logger",
    "setup_logger",
    "setup_logger_from_config",
]
