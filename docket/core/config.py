"""
Application configuration using Pydantic Settings.

Environment-based infrastructure switching is controlled by the ENVIRONMENT
and EVENT_SOURCE variables.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./docket.db"

    # ===========================================
    # Event Source (fixed calendar events)
    # ===========================================
    # "local": events table in the same database
    # "http": remote calendar service at EVENT_SOURCE_URL
    EVENT_SOURCE: Literal["local", "http"] = "local"
    EVENT_SOURCE_URL: str = ""
    EVENT_SOURCE_TIMEOUT_SECONDS: float = 5.0

    # ===========================================
    # Scheduler
    # ===========================================
    DAY_START_HOUR: int = Field(8, ge=0, le=23)
    DAY_END_HOUR: int = Field(18, ge=1, le=24)
    DAILY_CAPACITY_HOURS: float = Field(8.0, gt=0)
    MAX_OVERFLOW_LOOKBACK_DAYS: int = Field(14, ge=0)

    # Per-assignee lock acquisition timeout. Exceeding it is a retryable failure.
    SCHEDULING_LOCK_TIMEOUT_SECONDS: float = Field(2.0, gt=0)
    # Re-fetch-and-retry budget for internal writes that lose a version race.
    STALE_VERSION_RETRIES: int = Field(1, ge=0)

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @model_validator(mode="after")
    def validate_work_window(self):
        """Validate the work window bounds."""
        if self.DAY_END_HOUR <= self.DAY_START_HOUR:
            raise ValueError("DAY_END_HOUR must be later than DAY_START_HOUR")
        return self

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
