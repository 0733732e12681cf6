"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # KuCoin API
    kucoin_base_url: str = "https://api.kucoin.com"
    request_timeout: float = 10.0
    calls_per_minute: int = 600

    # Universe (empty = select from all tickers by volume)
    symbols: list[str] = []
    min_volume_24h: float = 50_000_000
    excluded_tokens: list[str] = ["3L", "3S"]
    top_n_signals: int = 10

    # Scanning
    interval: str = "15m"
    candle_limit: int = 100
    scan_interval_seconds: float = 300.0
    tick_poll_seconds: float = 5.0
    max_concurrent_fetches: int = 8

    # Tracking (unset = timeout from the strategy file)
    tracking_timeout_minutes: float | None = None
    recent_alerts_limit: int = 100

    # Strategy table (YAML); missing file = built-in defaults
    strategies_file: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
