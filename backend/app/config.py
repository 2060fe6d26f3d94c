"""Application configuration."""

from datetime import timedelta
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Robinhood Crypto API
    robinhood_api_key: str = ""
    robinhood_private_key: str = ""  # base64 ed25519 seed (32 bytes) or secret key (64 bytes)
    robinhood_base_url: str = "https://trading.robinhood.com"
    request_timeout: float = 5.0

    # Tracked symbols
    symbols: list[str] = ["BTC-USD", "ETH-USD"]

    # Cycle cadences (seconds)
    quote_interval: float = 1.0
    recommendation_interval: float = 10.0
    holdings_interval: float = 5.0
    history_flush_interval: float = 300.0

    # Price history
    history_path: str = "price_history.json"
    retention_hours: float = 3.0
    analysis_hours: float = 3.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3005
    debug: bool = False

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)

    @property
    def analysis_horizon(self) -> timedelta:
        return timedelta(hours=self.analysis_hours)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
