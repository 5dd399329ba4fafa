"""Configuration management for Taskery."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Taskery config directory
TASKERY_DIR = Path.home() / ".taskery"
TASKERY_ENV_FILE = TASKERY_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TASKERY_",
        # Later files override earlier ones
        env_file=(str(TASKERY_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store selection
    store_backend: Literal["local", "rest"] = Field(
        default="local",
        description="Time entry store: 'local' (SQLite) or 'rest' (hosted backend)",
    )

    # Hosted backend settings
    store_url: str = Field(
        default="",
        description="Backend base URL (e.g., https://xyz.supabase.co)",
    )
    store_api_key: str = Field(
        default="",
        description="Backend anon/public API key",
    )
    access_token: str = Field(
        default="",
        description="Access token of the signed-in user",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for backend requests in seconds",
    )

    # Local store settings
    database_path: Path | None = Field(
        default=None,
        description="SQLite file for the local store (default: ~/.taskery/time_tracking.db)",
    )
    local_user_id: str = Field(
        default="local-user",
        description="User id recorded on entries in the local store",
    )

    # Timer settings
    tick_interval_seconds: float = Field(
        default=1.0,
        description="Seconds between display refresh ticks while a timer runs",
    )

    def get_database_path(self) -> Path:
        """Get the local database path, using default if not set."""
        if self.database_path:
            return self.database_path
        return TASKERY_DIR / "time_tracking.db"

    def rest_configured(self) -> bool:
        """Check whether the hosted backend has enough settings to be used."""
        return bool(self.store_url and self.store_api_key)


# Global settings instance
settings = Settings()
