from __future__ import annotations

import os
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

CHECKIN_TIMEZONE = ZoneInfo(os.getenv("CHECKIN_TIMEZONE", "UTC"))
CHECKIN_DEADLINE = time(hour=int(os.getenv("CHECKIN_DEADLINE_HOUR", "9")))


def local_date(moment: datetime) -> date:
    return moment.astimezone(CHECKIN_TIMEZONE).date()


def is_workday(day: date) -> bool:
    """Monday through Friday."""
    return day.weekday() < 5


def is_on_time(moment: datetime) -> bool:
    return moment.astimezone(CHECKIN_TIMEZONE).time() < CHECKIN_DEADLINE
