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

    # Market data (Twelve Data)
    twelvedata_api_key: str = ""
    twelvedata_base_url: str = "https://api.twelvedata.com"
    default_outputsize: int = 250  # bars fetched for evaluation
    verify_outputsize: int = 50  # bars fetched for verification
    verify_scan_limit: int = 5  # pending records tried per verification run
    market_data_calls_per_minute: int = 8  # 0 disables client-side rate limiting

    # Telegram
    telegram_bot_token: str = ""
    telegram_channel_id: str = ""
    telegram_base_url: str = "https://api.telegram.org"
    notify_hold: bool = True  # also announce HOLD evaluations

    # Signal store; empty redis_url keeps records in memory
    redis_url: str = ""
    signal_key_prefix: str = "signal"

    # Strategy presets (YAML); empty uses built-in presets
    strategies_file: str = ""

    http_timeout: float = 15.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_channel_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
