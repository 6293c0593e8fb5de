"""User timezone and daily reset preferences."""

import re
from datetime import datetime
from enum import StrEnum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from pet_of_the_day.core.clock import utc_now
from pet_of_the_day.core.config import settings
from pet_of_the_day.core.errors import ConfigurationError


RESET_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class Language(StrEnum):
    """Interface language."""

    EN = "en"
    FR = "fr"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in cls._value2member_map_


class Theme(StrEnum):
    """Interface theme."""

    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in cls._value2member_map_


class UserTimezoneSettings(BaseModel):
    """A user's timezone and daily reset time.

    Stored as raw strings: a malformed value is kept as-is and only rejected by
    ``validate_settings()``, so scoring can fall back to defaults instead of
    failing on load.
    """

    user_id: str
    timezone: str = Field(default_factory=lambda: settings.default_timezone, description="IANA timezone name")
    daily_reset_time: str = Field(
        default_factory=lambda: settings.default_daily_reset_time, description="Daily reset time (HH:MM)"
    )
    language: str = Field(default_factory=lambda: settings.default_language)
    theme: str = Field(default_factory=lambda: settings.default_theme)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def default_for(cls, user_id: str) -> "UserTimezoneSettings":
        """Default settings used when a user has none (or broken ones)."""
        return cls(user_id=user_id)

    def validate_settings(self) -> None:
        """Check every field is usable.

        Raises:
            ConfigurationError: If the timezone cannot be loaded, the reset time
                is not a 24-hour HH:MM, or language/theme are unsupported
        """
        if not is_valid_timezone(self.timezone):
            raise ConfigurationError(f"invalid timezone: {self.timezone}")
        if not is_valid_reset_time(self.daily_reset_time):
            raise ConfigurationError(f"invalid daily reset time format: {self.daily_reset_time} (expected HH:MM)")
        if not Language.is_valid(self.language):
            raise ConfigurationError(f"invalid language: {self.language}")
        if not Theme.is_valid(self.theme):
            raise ConfigurationError(f"invalid theme: {self.theme}")


def is_valid_timezone(name: str) -> bool:
    """Return True if the IANA timezone can be loaded."""
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def is_valid_reset_time(value: str) -> bool:
    """Return True if value is a 24-hour H:MM or HH:MM string."""
    return bool(RESET_TIME_PATTERN.match(value or ""))
