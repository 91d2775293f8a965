"""Timestamps in the service timezone (settings.TIMEZONE)."""

from datetime import datetime
from zoneinfo import ZoneInfo

from fdp_support.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_local_naive() -> datetime:
    """Wall-clock time in the service timezone, naive for DB columns."""
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def to_local_iso(dt: datetime) -> str:
    """ISO string with offset for a stored naive timestamp."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=LOCAL_TZ)
    return dt.astimezone(LOCAL_TZ).isoformat()
