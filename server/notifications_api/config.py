"""Application configuration loaded from environment variables."""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """API settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="NOTIFICATIONS_API_")

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8083

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Server-Sent Events
    stream_history_size: int = 100


@lru_cache
def get_settings() -> Settings:
    return Settings()
