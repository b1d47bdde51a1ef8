from datetime import datetime, date, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from couple_reminders.core.config import settings


def get_zoneinfo(tz_name: Optional[str] = None) -> Optional[ZoneInfo]:
    tz_name = tz_name or getattr(settings, "DEFAULT_TIMEZONE", None)
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def ensure_aware(dt: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes but keep the zone of aware ones, so
    calendar arithmetic stays on the caller's wall clock.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt


def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of an instant in the given (or default) zone."""
    tz = get_zoneinfo(tz_name)
    aware = ensure_aware(dt)
    return aware.astimezone(tz).date() if tz else aware.astimezone(dt_timezone.utc).date()
