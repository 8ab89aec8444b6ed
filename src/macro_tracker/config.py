"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 1.0
    openai_max_tokens: int = 256
    openai_top_p: float = 1.0
    openai_frequency_penalty: float = 0.0
    openai_presence_penalty: float = 0.0
    estimation_timeout_seconds: float = 20.0
    cache_dir: str = ".macro_tracker_cache"
    cache_stale_seconds: int = 300
    frequent_foods_limit: int = 10
    usage_half_life_days: float = 14.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
