"""
Service Configuration

Loads LLM, market data and display settings from environment variables.
Supports a local .env file for development.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TradeSettings(BaseSettings):
    """Trade analysis configuration loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TRADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Generation service (any OpenAI-compatible endpoint)
    llm_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LLM_API_KEY", "DEEPSEEK_API_KEY", "OPENAI_API_KEY"),
    )
    llm_base_url: str = "https://api.deepseek.com"
    llm_model: str = "deepseek-chat"
    llm_max_output_tokens: int = 4000
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 120.0

    # Market data enrichment
    include_market_data: bool = True
    history_months: int = 3
    recent_candles: int = 30

    # Validation / display
    strict_schema: bool = False
    default_currency: str = "IDR"
    display_locale: str = "id-ID"

    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key)


@lru_cache()
def get_trade_settings() -> TradeSettings:
    """
    Get cached settings.
    Uses lru_cache to avoid reloading on every request.
    """
    return TradeSettings()
