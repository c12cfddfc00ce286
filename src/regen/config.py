"""
Regen Configuration Management

Centralized configuration using pydantic-settings with environment variable support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ══════════════════════════════════════════════════════════════
    # Application
    # ══════════════════════════════════════════════════════════════
    app_name: str = "Regen"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # ══════════════════════════════════════════════════════════════
    # External Services
    # ══════════════════════════════════════════════════════════════
    stt_base_url: str = "http://localhost:8080"
    tts_base_url: str = "http://localhost:8880"
    service_timeout_seconds: float = 120.0

    # LLM Configuration (text enhancement)
    openai_api_key: str = ""
    openai_base_url: str | None = None
    llm_model: str = "gpt-3.5-turbo"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2000

    # ══════════════════════════════════════════════════════════════
    # Key-Value Storage
    # ══════════════════════════════════════════════════════════════
    storage_backend: Literal["memory", "file", "redis"] = "file"
    storage_path: str = ".regen/store.json"
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    settings_store_key: str = "regen:settings"
    voice_store_key: str = "regen:combined_voices"

    # ══════════════════════════════════════════════════════════════
    # Voices
    # ══════════════════════════════════════════════════════════════
    default_voice_id: str = "af_heart"

    @field_validator("stt_base_url", "tts_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
