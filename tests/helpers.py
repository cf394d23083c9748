from __future__ import annotations

from datetime import datetime, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30))

# 2024-01-13 is a Saturday, 2024-01-14 a Sunday, 2024-01-15 a Monday
SATURDAY = (2024, 1, 13)
SUNDAY = (2024, 1, 14)
MONDAY = (2024, 1, 15)
TUESDAY = (2024, 1, 16)


def ist(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Local IST wall-clock time as an aware datetime."""
    return datetime(year, month, day, hour, minute, second, tzinfo=IST)
