"""
Application settings configuration for the TeamRSVP backend.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        TEAMRSVP_TIMEZONE: IANA zone of the wall clock used for stored timestamps
            (default: "Europe/Berlin")
        FIXTURE_FEED_BASE_URL: Base URL of the fixture feed API
            (default: "https://api-fussball.de/api")
        FIXTURE_FEED_TOKEN: Static token sent as the x-auth-token header
        AUTO_GAME_IMPORT_ENABLED: Run the periodic fixture import (default: True)
        AUTO_GAME_IMPORT_INTERVAL_MINUTES: Minutes between import cycles (default: 60)
        AUTO_GAME_IMPORT_RUN_ON_STARTUP: Run one cycle right after startup (default: True)
    """

    timezone: str = Field(
        default="Europe/Berlin",
        validation_alias="TEAMRSVP_TIMEZONE",
        description="IANA timezone of the club; all event timestamps are wall-clock times in this zone"
    )

    # Fixture feed
    feed_base_url: str = Field(
        default="https://api-fussball.de/api",
        validation_alias="FIXTURE_FEED_BASE_URL",
    )

    feed_token: str = Field(
        default="",
        validation_alias="FIXTURE_FEED_TOKEN",
        description="Token for the fixture feed, constant for the deployment"
    )

    # Periodic fixture import
    auto_import_enabled: bool = Field(
        default=True,
        validation_alias="AUTO_GAME_IMPORT_ENABLED",
    )

    auto_import_interval_minutes: int = Field(
        default=60,
        validation_alias="AUTO_GAME_IMPORT_INTERVAL_MINUTES",
        ge=1,
    )

    auto_import_run_on_startup: bool = Field(
        default=True,
        validation_alias="AUTO_GAME_IMPORT_RUN_ON_STARTUP",
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that the timezone is a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("feed_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def feed_configured(self) -> bool:
        """Check if the fixture feed token is set."""
        return bool(self.feed_token)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
