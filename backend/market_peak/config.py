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

    # OpenRouter completion API
    openrouter_api_key: str = ""
    openrouter_url: str = "https://openrouter.ai/api/v1/chat/completions"
    model: str = "openai/gpt-5-mini"
    temperature: float = 0.3   # Low for reproducible verdicts
    max_tokens: int = 20000
    request_timeout: float = 90.0

    # Price data service
    data_service_url: str = "http://localhost:3000"
    recent_window_hours: int = 24
    recent_timeout: float = 90.0
    daily_days: int = 900
    daily_max_points: int = 900
    daily_timeout: float = 30.0

    # Tracked assets (data service path -> source label)
    tracked_assets: list[str] = ["bitcoin", "ethereum", "solana"]
    asset_labels: dict[str, str] = {"bitcoin": "BTC", "ethereum": "ETH", "solana": "SOL"}

    # Indicator feed (Redis document + update channel)
    redis_url: str = "redis://localhost:6379/0"
    indicator_document_path: str = "bull-market-peak-indicators/latest"
    indicator_channel: str = "bull-market-peak-indicators:updates"
    indicator_source: str = "BULL_PEAK"

    # Result store
    database_url: str = "postgresql://localhost/market_peak"
    recent_limit_max: int = 50

    # Scheduling (UTC)
    analysis_interval_minutes: int = 60
    daily_refresh_hour: int = 2
    daily_refresh_minute: int = 15

    # Prompt
    prompt_name: str = "market-peak-analysis"
    prompt_version: str = "v1"

    # Service identity
    service_name: str = "market-peak-analysis-service"
    service_version: str = "1.0.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 3010
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
