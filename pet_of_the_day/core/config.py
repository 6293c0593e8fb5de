"""Configuration management for pet_of_the_day."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Day boundary defaults (used when a user has no settings or broken settings)
    default_timezone: str = Field(default="UTC", description="IANA timezone applied when a user has none")
    default_daily_reset_time: str = Field(
        default="21:00", description="Daily reset time (HH:MM, 24-hour) applied when a user has none"
    )
    default_language: str = Field(default="en", description="Default interface language")
    default_theme: str = Field(default="light", description="Default interface theme")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    service_environment: str = Field(default="production", description="Environment name reported to Logfire")

    # Request handling
    request_timeout_seconds: float | None = Field(
        default=None, description="Default per-operation deadline in seconds (None disables the deadline)"
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # Behavior catalog limits
    BEHAVIOR_NAME_MAX_LENGTH: int = 100
    MIN_POINT_VALUE: int = -10
    MAX_POINT_VALUE: int = 10
    MIN_INTERVAL_MINUTES: int = 5
    MAX_INTERVAL_MINUTES: int = 1440  # 24 hours

    # Behavior logs
    NOTES_MAX_LENGTH: int = 500
    MAX_BACKDATE_HOURS: int = 24

    # Pagination Defaults
    DEFAULT_PAGE_LIMIT: int = 50

    # Ranking
    RANK_FIRST: int = 1


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
