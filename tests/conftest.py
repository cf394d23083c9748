from __future__ import annotations

import logging

import pytest

from services.sla.src.work_calendar import WorkCalendar


@pytest.fixture
def calendar() -> WorkCalendar:
    return WorkCalendar(
        timezone_offset_minutes=330,
        work_start_hour=10,
        work_end_hour=19,
        non_working_weekday=0,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)
