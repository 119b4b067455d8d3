"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DB_FILENAME = "academiq.db"


class Settings(BaseSettings):
    """Application settings."""

    # Model provider (OpenAI-compatible chat completions endpoint)
    openai_api_key: str | None = None
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4.1-2025-04-14"
    # Used for the first chunk and long publications chunks unless a model is requested
    llm_advanced_model: str = "gpt-5.2-2025-12-11"
    llm_temperature: float = 0.1

    # Bounded calls: per-attempt ceiling must stay under the host's own limit
    llm_attempt_timeout_seconds: float = 50.0
    llm_max_retries: int = 2
    llm_retry_delay_ms: int = 500

    # Streaming
    client_timeout_seconds: float = 420.0
    heartbeat_interval_seconds: float = 25.0

    # Extraction
    chunk_size: int = 20000
    min_text_chars: int = 20

    # Paths; db_path defaults to <data_dir>/academiq.db
    data_dir: Path = Path("data")
    db_path: Path = Path("data") / DB_FILENAME

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _db_path_under_data_dir(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("db_path") and data.get("data_dir"):
            data = {**data, "db_path": Path(data["data_dir"]) / DB_FILENAME}
        return data


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
