"""Timezone-aware day boundary resolution.

Every decision about which calendar date a timestamp belongs to goes through
this module. A user's logical day ends at their daily reset time in their own
timezone: with a 21:00 reset in New York, 20:59 local belongs to the current
date and 21:00 local already belongs to the next one.
"""

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from pet_of_the_day.core.clock import ensure_aware, utc_now
from pet_of_the_day.core.config import settings as app_settings
from pet_of_the_day.core.errors import ConfigurationError
from pet_of_the_day.domain.settings import (
    RESET_TIME_PATTERN,
    UserTimezoneSettings,
    is_valid_reset_time,
    is_valid_timezone,
)


logger = logging.getLogger(__name__)


__all__ = [
    "DailyBoundary",
    "current_logical_day",
    "daily_boundary_for",
    "is_valid_reset_time",
    "is_valid_timezone",
    "is_within_same_day",
    "load_timezone",
    "next_reset_at",
    "parse_reset_time",
    "resolve_logical_day",
    "resolve_logical_day_or_default",
]


class DailyBoundary(BaseModel):
    """Half-open instant range [start, end) covered by one logical day."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_aware(instant) < self.end


def load_timezone(name: str) -> ZoneInfo:
    """Load an IANA timezone; an empty name means the configured default.

    Raises:
        ConfigurationError: If the timezone cannot be loaded
    """
    name = name or app_settings.default_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ConfigurationError(f"invalid timezone '{name}': {e}") from e


def parse_reset_time(value: str) -> time:
    """Parse an H:MM or HH:MM reset time; an empty value means the configured default.

    Raises:
        ConfigurationError: If the value is not a 24-hour HH:MM string
    """
    value = value or app_settings.default_daily_reset_time
    match = RESET_TIME_PATTERN.match(value)
    if match is None:
        raise ConfigurationError(f"invalid reset time format '{value}' (expected HH:MM)")
    return time(int(match.group(1)), int(match.group(2)))


def resolve_logical_day(instant: datetime, settings: UserTimezoneSettings) -> date:
    """Return the logical day an instant belongs to for the given user settings.

    Args:
        instant: The moment to classify (naive values are read as UTC)
        settings: The user's timezone and daily reset time

    Returns:
        The local calendar date, moved to the next date once the reset time
        has been reached

    Raises:
        ConfigurationError: If the timezone or reset time is unusable
    """
    zone = load_timezone(settings.timezone)
    reset = parse_reset_time(settings.daily_reset_time)

    local = ensure_aware(instant).astimezone(zone)
    if local.time() >= reset:
        return local.date() + timedelta(days=1)
    return local.date()


def resolve_logical_day_or_default(instant: datetime, settings: UserTimezoneSettings) -> date:
    """Resolve the logical day, substituting default settings when the user's are broken."""
    try:
        return resolve_logical_day(instant, settings)
    except ConfigurationError as e:
        logger.warning(
            "invalid_user_time_settings_using_defaults",
            extra={
                "user_id": settings.user_id,
                "timezone": settings.timezone,
                "daily_reset_time": settings.daily_reset_time,
                "error": str(e),
            },
        )
        return resolve_logical_day(instant, UserTimezoneSettings.default_for(settings.user_id))


def daily_boundary_for(day: date, settings: UserTimezoneSettings) -> DailyBoundary:
    """Return the instant range of a logical day.

    The day starts at the previous date's reset time and ends at this date's
    reset time, both in the user's timezone.

    Raises:
        ConfigurationError: If the timezone or reset time is unusable
    """
    zone = load_timezone(settings.timezone)
    reset = parse_reset_time(settings.daily_reset_time)

    previous = day - timedelta(days=1)
    start = datetime.combine(previous, reset, tzinfo=zone)
    end = datetime.combine(day, reset, tzinfo=zone)
    return DailyBoundary(start=start, end=end)


def next_reset_at(now: datetime, settings: UserTimezoneSettings) -> datetime:
    """Return the first reset instant strictly after ``now``, in the user's timezone.

    Raises:
        ConfigurationError: If the timezone or reset time is unusable
    """
    zone = load_timezone(settings.timezone)
    reset = parse_reset_time(settings.daily_reset_time)

    local = ensure_aware(now).astimezone(zone)
    today_reset = datetime.combine(local.date(), reset, tzinfo=zone)
    if local.time() < reset:
        return today_reset
    return datetime.combine(local.date() + timedelta(days=1), reset, tzinfo=zone)


def is_within_same_day(first: datetime, second: datetime, settings: UserTimezoneSettings) -> bool:
    """Return True if both instants belong to the same logical day."""
    return resolve_logical_day(first, settings) == resolve_logical_day(second, settings)


def current_logical_day(settings: UserTimezoneSettings, now: datetime | None = None) -> date:
    """Return the user's logical day right now (or at ``now``)."""
    return resolve_logical_day_or_default(now or utc_now(), settings)
