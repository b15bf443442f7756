"""Process configuration, read once from the environment."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    default_city: str = "Delhi,India"

    # Force the deterministic generator even when a key is present.
    use_mock_ai: bool = False
    openai_api_key: Optional[str] = None
    openai_endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    openai_model: str = "mistralai/mistral-small-3.2-24b-instruct:free"

    weather_api_key: Optional[str] = None
    github_token: Optional[str] = None
    newsapi_key: Optional[str] = None

    database_url: str = "sqlite:///./workflow_runs.db"
    request_timeout: float = 10.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
