from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from services.shared.config import SLAServiceConfig
from services.sla.src.work_calendar import WorkCalendar

from tests.helpers import IST, MONDAY, SUNDAY, ist


def test_to_local_converts_with_fixed_offset(calendar):
    # 12:30 UTC on Monday is 18:00 IST
    local = calendar.to_local(datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc))

    assert local.hour == 18
    assert local.minute == 0
    assert local.weekday == 1
    assert local.local_date == date(2024, 1, 15)
    assert local.fractional_hour == 18.0


def test_to_local_crosses_midnight_into_next_local_day(calendar):
    # Sunday 19:00 UTC is already Monday 00:30 IST
    local = calendar.to_local(datetime(2024, 1, 14, 19, 0, tzinfo=timezone.utc))

    assert local.weekday == 1
    assert local.local_date == date(*MONDAY)
    assert local.hour == 0
    assert local.minute == 30


def test_to_local_reads_naive_datetime_as_utc(calendar):
    naive = calendar.to_local(datetime(2024, 1, 15, 12, 30))
    aware = calendar.to_local(datetime(2024, 1, 15, 12, 30, tzinfo=timezone.utc))
    assert naive == aware


def test_to_local_ignores_seconds_in_fractional_hour(calendar):
    local = calendar.to_local(ist(*MONDAY, 18, 15, 59))
    assert local.fractional_hour == 18.25


def test_to_local_sunday_is_weekday_zero(calendar):
    assert calendar.to_local(ist(*SUNDAY, 12)).weekday == 0


def test_is_working_day_only_excludes_configured_weekday(calendar):
    assert not calendar.is_working_day(0)
    assert all(calendar.is_working_day(day) for day in range(1, 7))


def test_next_local_midnight(calendar):
    midnight = calendar.next_local_midnight(ist(*MONDAY, 18, 0))

    assert midnight == ist(2024, 1, 16, 0, 0)
    assert midnight.utcoffset() == IST.utcoffset(None)


def test_hours_per_day(calendar):
    assert calendar.hours_per_day == 9


def test_str_describes_policy(calendar):
    assert str(calendar) == "10:00-19:00 UTC+05:30, closed sunday"


def test_from_config_uses_configured_policy():
    config = SLAServiceConfig(
        timezone_offset_minutes=-300,
        work_start_hour=8,
        work_end_hour=16,
        non_working_weekday=6,
    )
    cal = WorkCalendar.from_config(config)

    assert cal.timezone_offset_minutes == -300
    assert cal.work_start_hour == 8
    assert cal.work_end_hour == 16
    assert cal.non_working_weekday == 6
    assert str(cal) == "08:00-16:00 UTC-05:00, closed saturday"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"work_start_hour": 19, "work_end_hour": 10},
        {"work_start_hour": 10, "work_end_hour": 10},
        {"work_start_hour": 24, "work_end_hour": 24},
        {"work_start_hour": -1},
        {"work_end_hour": 25},
        {"non_working_weekday": 7},
        {"non_working_weekday": -1},
        {"timezone_offset_minutes": 24 * 60},
    ],
)
def test_invalid_calendar_rejected_at_construction(kwargs):
    with pytest.raises(ValueError):
        WorkCalendar(**kwargs)


def test_calendar_is_immutable(calendar):
    with pytest.raises(AttributeError):
        calendar.work_start_hour = 9


def test_full_day_window_is_allowed():
    cal = WorkCalendar(work_start_hour=0, work_end_hour=24)
    assert cal.hours_per_day == 24
