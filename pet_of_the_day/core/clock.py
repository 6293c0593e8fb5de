"""Clock helpers so every "now" in the engine is timezone-aware."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(UTC)


def ensure_aware(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC; leave aware ones untouched."""
    if instant.tzinfo is None or instant.utcoffset() is None:
        return instant.replace(tzinfo=UTC)
    return instant
