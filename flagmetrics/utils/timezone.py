"""
Timezone Utilities.

Golden Rules:
1. Database: Always store UTC
2. Metric buckets: one per clock hour, computed in UTC
3. API: Return ISO 8601 with Z suffix (UTC)

Some engines (SQLite) hand back naive datetimes; run every value read from
the store through ``to_utc`` before exposing it.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

# UTC constant
UTC = timezone.utc


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-aware).

    Always use this instead of datetime.utcnow() which returns
    naive datetime.
    """
    return datetime.now(UTC)


def to_utc(dt: datetime, source_tz: Optional[str] = None) -> datetime:
    """
    Convert datetime to UTC.

    Naive datetimes are taken to be in ``source_tz`` when given,
    otherwise in UTC.
    """
    if dt.tzinfo is None:
        if source_tz:
            dt = dt.replace(tzinfo=ZoneInfo(source_tz))
        else:
            dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def start_of_hour(dt: datetime) -> datetime:
    """
    Truncate to the containing UTC clock hour.

    Usage:
        start_of_hour(datetime(2024, 1, 15, 14, 59, 59, tzinfo=UTC))
        # datetime(2024, 1, 15, 14, 0, tzinfo=UTC)
    """
    return to_utc(dt).replace(minute=0, second=0, microsecond=0)


def hours_before(hours: int, now: Optional[datetime] = None) -> datetime:
    """Point in time ``hours`` before ``now`` (defaults to current UTC time)."""
    return to_utc(now or utc_now()) - timedelta(hours=hours)


def to_iso8601(dt: datetime) -> str:
    """
    Format as ISO 8601 with Z suffix.

    Usage:
        iso = to_iso8601(record.timestamp)
        # "2024-01-15T14:00:00Z"
    """
    utc_dt = to_utc(dt)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%SZ")
