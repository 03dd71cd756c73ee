"""Logging settings (``LOG_*`` environment variables)."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class LoggingConfig(BaseSettings):
    """Where and how loudly arzlive logs.

    The console sink is meant for the operator watching the board; the
    file sink keeps the per-cycle DEBUG trail (skipped items, rate source,
    persistence results) for later inspection.

    Attributes:
        log_dir: Directory holding the daily log files
        console_level: Threshold for stderr
        file_level: Threshold for the file sink
        file_enabled: Whether the file sink is installed at all
        rotation: Size or age at which a log file is rotated
        retention: Age after which rotated files are deleted
        compression: Archive format for rotated files
        json_logs: Write one JSON object per record instead of text
        diagnose: Include local variable values in tracebacks
        backtrace: Extend tracebacks past the catching frame
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_dir: Path = Field(default=Path("logs"), description="Daily log file directory")
    console_level: LogLevel = Field(default="INFO", description="stderr threshold")
    file_level: LogLevel = Field(default="DEBUG", description="File sink threshold")
    file_enabled: bool = Field(default=True, description="Install the file sink")

    rotation: str = Field(default="10 MB", description="Rotate at this size/age")
    retention: str = Field(default="14 days", description="Delete rotated files after")
    compression: str = Field(default="gz", description="Rotated file archive format")
    json_logs: bool = Field(default=False, description="Serialize file records as JSON")

    # Tracebacks may contain the API key when diagnose is on
    diagnose: bool = Field(default=False, description="Show variable values in tracebacks")
    backtrace: bool = Field(default=True, description="Extended tracebacks")


def get_logging_config() -> LoggingConfig:
    """LoggingConfig read from the environment / ``.env``."""
    return LoggingConfig()
