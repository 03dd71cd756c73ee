"""Logging configuration."""

from arzlive.logging.config import LoggingConfig, get_logging_config

__all__ = ["LoggingConfig", "get_logging_config"]
