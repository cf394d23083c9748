"""
Working Calendar
=================

Fixed working-hours policy used by the SLA clock.

Rules:
    - One fixed UTC offset (no DST), e.g. +330 minutes for IST
    - Daily working window [work_start_hour, work_end_hour)
    - Exactly one non-working weekday (0 = Sunday convention)

Local time is always derived from the configured offset, never from the
host timezone, so results are identical wherever the code runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple

from services.shared.config import SLAServiceConfig

WEEKDAY_NAMES = {
    0: "sunday", 1: "monday", 2: "tuesday",
    3: "wednesday", 4: "thursday", 5: "friday", 6: "saturday",
}


class LocalTime(NamedTuple):
    hour: int
    minute: int
    weekday: int  # 0 = Sunday
    local_date: date

    @property
    def fractional_hour(self) -> float:
        """Hour of day with minutes as a fraction (seconds ignored)."""
        return self.hour + self.minute / 60


@dataclass(frozen=True)
class WorkCalendar:
    """
    Immutable working-hours policy.

    Raises:
        ValueError: If any parameter is out of range or the working window is empty.
    """
    timezone_offset_minutes: int = 330
    work_start_hour: int = 10
    work_end_hour: int = 19
    non_working_weekday: int = 0
    _tz: timezone = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.work_start_hour < 24:
            raise ValueError(f"work_start_hour must be in [0, 24): {self.work_start_hour}")
        if not 0 < self.work_end_hour <= 24:
            raise ValueError(f"work_end_hour must be in (0, 24]: {self.work_end_hour}")
        if self.work_end_hour <= self.work_start_hour:
            raise ValueError(
                f"work_end_hour ({self.work_end_hour}) must be greater than "
                f"work_start_hour ({self.work_start_hour})"
            )
        if not 0 <= self.non_working_weekday <= 6:
            raise ValueError(f"non_working_weekday must be in [0, 6]: {self.non_working_weekday}")
        # timezone() itself rejects offsets of 24h or more
        tz = timezone(timedelta(minutes=self.timezone_offset_minutes))
        object.__setattr__(self, "_tz", tz)

    @classmethod
    def from_config(cls, config: SLAServiceConfig) -> WorkCalendar:
        return cls(
            timezone_offset_minutes=config.timezone_offset_minutes,
            work_start_hour=config.work_start_hour,
            work_end_hour=config.work_end_hour,
            non_working_weekday=config.non_working_weekday,
        )

    @property
    def tz(self) -> timezone:
        return self._tz

    @property
    def hours_per_day(self) -> int:
        return self.work_end_hour - self.work_start_hour

    def to_local(self, instant: datetime) -> LocalTime:
        """
        Convert an absolute instant to local wall-clock components.

        Args:
            instant: Aware datetime (naive values are read as UTC)

        Returns:
            LocalTime with hour, minute, weekday (0 = Sunday) and local date
        """
        local = as_utc(instant).astimezone(self._tz)
        return LocalTime(
            hour=local.hour,
            minute=local.minute,
            weekday=local.isoweekday() % 7,
            local_date=local.date(),
        )

    def is_working_day(self, weekday: int) -> bool:
        return weekday != self.non_working_weekday

    def next_local_midnight(self, instant: datetime) -> datetime:
        """Start of the local calendar day following `instant`."""
        local_date = as_utc(instant).astimezone(self._tz).date()
        return datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=self._tz)

    def __str__(self) -> str:
        sign = "+" if self.timezone_offset_minutes >= 0 else "-"
        hours, minutes = divmod(abs(self.timezone_offset_minutes), 60)
        return (
            f"{self.work_start_hour:02d}:00-{self.work_end_hour:02d}:00 "
            f"UTC{sign}{hours:02d}:{minutes:02d}, "
            f"closed {WEEKDAY_NAMES[self.non_working_weekday]}"
        )


def as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None or instant.tzinfo.utcoffset(instant) is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant
