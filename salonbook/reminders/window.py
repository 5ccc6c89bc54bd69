"""Target date and time band for a reminder sweep."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import NamedTuple

import pytz

from ..errors import InvalidReminderType

DEFAULT_BUSINESS_TIMEZONE = "America/Sao_Paulo"

LEAD_TIMES = {
    "24h": timedelta(hours=24),
    "1h": timedelta(hours=1),
}

# Half-width of the band around the target time.
BAND_MARGIN = timedelta(hours=1)

LAST_MINUTE = time(23, 59)


class ReminderWindow(NamedTuple):
    target_date: date
    lower_time: time
    upper_time: time

    def describe(self) -> str:
        return (
            f"{self.target_date.isoformat()} "
            f"[{self.lower_time:%H:%M}, {self.upper_time:%H:%M}]"
        )


def validate_reminder_type(reminder_type: object) -> str:
    if reminder_type not in LEAD_TIMES:
        raise InvalidReminderType(reminder_type)
    return reminder_type  # type: ignore[return-value]


def business_now(tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> datetime:
    """Return the current instant in the business timezone."""
    return datetime.now(pytz.timezone(tz_name))


def compute_reminder_window(
    now: datetime,
    reminder_type: str,
    tz_name: str = DEFAULT_BUSINESS_TIMEZONE,
) -> ReminderWindow:
    """Compute the date and inclusive time band a sweep should match.

    The lead time is added to the business-local wall clock, so a daylight
    saving change between ``now`` and the target does not move the target
    hour. The band is ``target ± 1h`` truncated to minutes and never leaves
    the target date: it is clamped to ``00:00`` and ``23:59``.
    """
    lead = LEAD_TIMES.get(reminder_type)
    if lead is None:
        raise InvalidReminderType(reminder_type)
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("now must be timezone-aware")

    local_now = now.astimezone(pytz.timezone(tz_name))
    target = local_now.replace(tzinfo=None, second=0, microsecond=0) + lead
    target_date = target.date()

    day_start = datetime.combine(target_date, time.min)
    day_end = datetime.combine(target_date, LAST_MINUTE)
    lower = max(target - BAND_MARGIN, day_start)
    upper = min(target + BAND_MARGIN, day_end)

    return ReminderWindow(target_date, lower.time(), upper.time())
