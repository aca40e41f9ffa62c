from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from schooldash.config import settings


def local_now(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> datetime:
    """Current time (or ``now``) as an aware datetime in the configured timezone"""
    tz = ZoneInfo(tz_name or settings.timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def hour_bucket(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """
    Truncate a timestamp to the top of its hour in the configured timezone

    Args:
        now: Timestamp to bucket (default: current time). Naive values are UTC.
        tz_name: IANA timezone name (default: settings.timezone)

    Returns:
        Bucket label formatted as yyyy-MM-ddTHH:00:00
    """
    local = local_now(tz_name, now).replace(minute=0, second=0, microsecond=0)
    return local.strftime("%Y-%m-%dT%H:00:00")


def hours_and_minutes(value: Optional[str], tz_name: Optional[str] = None) -> str:
    """Format an ISO 8601 timestamp as HH:MM in the configured timezone"""
    if not value:
        return "--:--"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return "--:--"
    return local_now(tz_name, parsed).strftime("%H:%M")


def iso_with_offset(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """Timestamp like 2024-05-06T07:08:09+02:00"""
    return local_now(tz_name, now).isoformat(timespec="seconds")
