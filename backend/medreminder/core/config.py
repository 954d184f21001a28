"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Medication Reminder"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(
        "sqlite+aiosqlite:///./medreminder.db", alias="DATABASE_URL"
    )
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    sync_api_base_url: str = Field(
        "https://api.maisafe.app", alias="SYNC_API_BASE_URL"
    )
    sync_timeout_seconds: float = Field(10.0, alias="SYNC_TIMEOUT_SECONDS")

    local_timezone: str = Field("UTC", alias="LOCAL_TIMEZONE")
    reminder_lead_minutes: int = Field(10, alias="REMINDER_LEAD_MINUTES")
    schedule_horizon_days: int = Field(56, alias="SCHEDULE_HORIZON_DAYS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
    )

    def model_post_init(self, __context: Any) -> None:
        """Derive the synchronous URL used by migrations when not provided."""

        if not self.sync_database_url:
            object.__setattr__(
                self,
                "sync_database_url",
                self.database_url.replace("+aiosqlite", ""),
            )

    @field_validator("sync_api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.rstrip("/")
        return value

    @field_validator("schedule_horizon_days")
    @classmethod
    def _positive_horizon(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SCHEDULE_HORIZON_DAYS must be positive")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
