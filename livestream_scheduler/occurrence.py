"""Next weekly occurrence of a service in a fixed civil time zone."""
from __future__ import annotations

import datetime as dt
from typing import Optional
from zoneinfo import ZoneInfo

SUNDAY = 6  # datetime.weekday()


def next_occurrence(
    hour: int,
    minute: int,
    zone: ZoneInfo,
    *,
    weekday: int = SUNDAY,
    now: Optional[dt.datetime] = None,
) -> dt.datetime:
    """Return the next ``weekday`` at ``hour:minute`` in ``zone``.

    The anchor day itself is never returned: when ``now`` already falls on
    ``weekday`` the following week is used, whatever the time of day.
    """

    current = (now or dt.datetime.now(dt.timezone.utc)).astimezone(zone)
    days_ahead = (weekday - current.weekday()) % 7 or 7
    target_date = current.date() + dt.timedelta(days=days_ahead)
    return dt.datetime.combine(target_date, dt.time(hour, minute), tzinfo=zone)


def short_date(value: dt.datetime) -> str:
    """Format as ``M/d/yy`` without zero padding."""

    return f"{value.month}/{value.day}/{value:%y}"
