"""Pydantic Settings for configuration management.

All settings are loaded from environment variables (prefix ``ARZLIVE_``)
and/or a ``.env`` file with type validation.

Features:
    - SecretStr for the market-data API key (masked in logs)
    - Rial/Toman magnitude thresholds per instrument class
    - History retention, sampling and backfill parameters

Example:
    ARZLIVE_API_KEY=...               # upstream key
    ARZLIVE_POLL_INTERVAL_SECONDS=30
    ARZLIVE_THRESHOLDS__CURRENCY=250000
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnitThresholds(BaseModel):
    """Magnitude above which a raw price is assumed to be quoted in Rial.

    A value strictly greater than the threshold is divided by 10 to bring
    it back to Toman. Calibrated against real-world order of magnitude:
    USD ~70k Toman (700k Rial), 18k gold gram ~4.5m Toman, Emami coin
    ~53m Toman, BTC a few billion Toman.
    """

    model_config = ConfigDict(frozen=True)

    currency: float = Field(default=200_000, gt=0)
    gold_gram: float = Field(default=10_000_000, gt=0)
    gold_coin: float = Field(default=100_000_000, gt=0)
    crypto: float = Field(default=20_000_000_000, gt=0)


class MarketSettings(BaseSettings):
    """Market-data core settings.

    Environment Variables:
        - ARZLIVE_API_KEY: upstream market-data key
        - ARZLIVE_BASE_URL: upstream base URL
        - ARZLIVE_DB_PATH: SQLite file holding the persisted history
        - ARZLIVE_POLL_INTERVAL_SECONDS: scheduler cadence
        - ARZLIVE_THRESHOLDS__<CLASS>: unit threshold overrides

    Example:
        >>> settings = get_settings()
        >>> settings.history_max_points
        500
        >>> settings.api_key
        SecretStr('**********')
    """

    model_config = SettingsConfigDict(
        env_prefix="ARZLIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Upstream Feed
    # ==========================================================================
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Market-data API key (sent as the 'key' query parameter)",
    )
    base_url: str = Field(
        default="https://brsapi.ir/Api/Market/",
        description="Market-data API base URL",
    )
    request_timeout: float = Field(
        default=15.0,
        gt=0,
        description="Per-request timeout (seconds)",
    )

    # ==========================================================================
    # Scheduling
    # ==========================================================================
    poll_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between poll cycles",
    )

    # ==========================================================================
    # Storage
    # ==========================================================================
    db_path: Path = Field(
        default=Path("data/arzlive.db"),
        description="SQLite file for persisted state",
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Log directory",
    )

    # ==========================================================================
    # History
    # ==========================================================================
    history_max_points: int = Field(
        default=500,
        ge=1,
        description="Retained points per instrument (oldest dropped first)",
    )
    history_retention_days: float = Field(
        default=30.0,
        gt=0,
        description="Restored points older than this are discarded",
    )
    history_min_sample_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Unchanged prices are re-sampled at most this often",
    )
    backfill_points: int = Field(
        default=100,
        ge=0,
        description="Synthetic points generated when no history exists",
    )
    backfill_lookback_days: float = Field(
        default=30.0,
        gt=0,
        description="Window the synthetic points are spread across",
    )
    backfill_jitter: float = Field(
        default=0.05,
        ge=0,
        lt=1,
        description="Relative band (+/-) for synthetic price perturbation",
    )

    # ==========================================================================
    # Normalization
    # ==========================================================================
    thresholds: UnitThresholds = Field(default_factory=UnitThresholds)
    fallback_usd_rate: float = Field(
        default=70_000.0,
        gt=0,
        description="Last-resort USD->Toman rate for crypto conversion",
    )

    @field_validator("db_path", "log_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path) -> Path:
        return Path(v) if isinstance(v, str) else v

    def has_api_key(self) -> bool:
        """True when an upstream API key is configured."""
        return bool(self.api_key.get_secret_value())


@lru_cache
def get_settings() -> MarketSettings:
    """Cached settings instance shared across the application."""
    return MarketSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings (tests reload after patching env)."""
    get_settings.cache_clear()
