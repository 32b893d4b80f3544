import logging
from datetime import datetime, date, time, timedelta, timezone as dt_timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clinic.core.config import settings

logger = logging.getLogger(__name__)


def get_zoneinfo() -> Optional["ZoneInfo"]:
    tz_name = getattr(settings, "CLINIC_TIMEZONE", None)
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown CLINIC_TIMEZONE {tz_name!r}, using UTC")
        return None


def utcnow() -> datetime:
    """Current instant as UTC-naive, the storage format for all timestamps."""
    return datetime.now(dt_timezone.utc).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def clinic_to_utc_naive(day: date, hhmm: str) -> datetime:
    """
    Convert a clinic wall-clock date and HH:MM time to a UTC-naive instant.
    Without a usable timezone the wall clock is taken to be UTC.
    """
    local = datetime.combine(day, parse_hhmm(hhmm))
    tz = get_zoneinfo()
    if tz is None:
        return local
    return local.replace(tzinfo=tz).astimezone(dt_timezone.utc).replace(tzinfo=None)


def utc_naive_to_clinic(dt: datetime) -> datetime:
    """Convert a UTC-naive instant to clinic wall-clock time (naive)."""
    tz = get_zoneinfo()
    if tz is None:
        return dt
    return dt.replace(tzinfo=dt_timezone.utc).astimezone(tz).replace(tzinfo=None)


def clinic_today(now: Optional[datetime] = None) -> date:
    return utc_naive_to_clinic(now or utcnow()).date()


def clinic_day_bounds_utc(day: date) -> Tuple[datetime, datetime]:
    """UTC-naive [start, end) of a clinic calendar day."""
    start = clinic_to_utc_naive(day, "00:00")
    end = clinic_to_utc_naive(day + timedelta(days=1), "00:00")
    return start, end
