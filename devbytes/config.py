"""Configuration management for DevBytes sync."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="DEVBYTES_", extra="ignore"
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./devbytes.db"

    # Redis (unique work registry)
    redis_url: str = "redis://localhost:6379/0"

    # Remote playlist
    playlist_url: str = "https://devbytes.udacity.com/devbytes.json"
    http_timeout_seconds: float = Field(default=15.0, gt=0)

    # Background work
    constraint_recheck_seconds: int = Field(default=900, ge=1)  # 15 minutes

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")

    # Level for the devbytes loggers; third-party loggers stay at WARNING
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
