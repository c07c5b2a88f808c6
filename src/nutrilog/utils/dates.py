"""Date and time utility functions."""

from datetime import datetime, timedelta, timezone

UTC_TZ = timezone.utc


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC_TZ)


def minutes_ago(minutes: float, now: datetime | None = None) -> datetime:
    """
    Get the UTC datetime a number of minutes before now.

    Args:
        minutes: How far back to go
        now: Reference time (defaults to the current time)

    Returns:
        Timezone-aware UTC datetime
    """
    return (now or utc_now()) - timedelta(minutes=minutes)


def today_iso() -> str:
    """Get today's date key (YYYY-MM-DD) in UTC."""
    return utc_now().strftime("%Y-%m-%d")

