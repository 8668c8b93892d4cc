"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    session_backend: str = "supabase"
    sessions_table: str = "game_sessions"
    scenarios_path: str | None = None
    max_distance_meters: float = 1000.0
    max_update_attempts: int = 3
    base_score: int = 1000
    hint_penalty: int = 50
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
