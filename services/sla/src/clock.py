"""
SLA Clock
==========

Business-hours SLA calculation for sample requests.

SLA rules:
    - Only minutes inside the working window on working days count
    - Deadline in the future  -> positive minutes remaining
    - Deadline reached/passed -> negative minutes overdue
    - Stop condition: self pickup is met at ready/received, every other
      fulfillment method at dispatched/received

Every function here is pure: `now` is always passed in by the caller.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from services.shared.models import FulfillmentMethod, RequestStatus, SLALevel
from services.sla.src.work_calendar import WorkCalendar, as_utc

WARNING_HOURS = 9.0
APPROACHING_HOURS = 18.0

LABEL_DONE = "Done"
LABEL_NOT_APPLICABLE = "—"

_NOT_APPLICABLE_STATUSES = {RequestStatus.DRAFT, RequestStatus.REJECTED}
_SELF_PICKUP_DONE = {RequestStatus.READY, RequestStatus.RECEIVED}
_DELIVERY_DONE = {RequestStatus.DISPATCHED, RequestStatus.RECEIVED}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Leaves room for any UTC offset plus one local midnight step
_LATEST = datetime(9999, 12, 29, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SLAInput:
    now: datetime
    deadline: Optional[datetime]
    status: RequestStatus
    fulfillment_method: Optional[FulfillmentMethod] = None


@dataclass(frozen=True)
class SLAResult:
    completed: bool
    signed_working_minutes: int
    level: SLALevel
    label: str


# ============ Minute accumulation ============

def working_minutes_between(start: datetime, end: datetime, calendar: WorkCalendar) -> int:
    """
    Count working minutes between two instants by walking local days.

    Partial first/last days are clipped to the working window; days strictly
    in between count as full working days; non-working days count zero.

    Args:
        start: Beginning of the interval
        end: End of the interval (start >= end yields 0)
        calendar: Working calendar

    Returns:
        int: Non-negative working minutes, rounded once at the end
    """
    start = as_utc(start)
    end = as_utc(end)
    if start >= end:
        return 0

    end_local = calendar.to_local(end)
    total_hours = 0.0
    cursor = start

    while cursor < end:
        local = calendar.to_local(cursor)

        if not calendar.is_working_day(local.weekday):
            cursor = calendar.next_local_midnight(cursor)
            continue

        effective_start = max(local.fractional_hour, calendar.work_start_hour)

        if local.local_date == end_local.local_date:
            effective_end = min(end_local.fractional_hour, calendar.work_end_hour)
            total_hours += max(0.0, effective_end - effective_start)
            break

        total_hours += max(0.0, calendar.work_end_hour - effective_start)
        cursor = calendar.next_local_midnight(cursor)

    return round(total_hours * 60)


def signed_working_minutes(now: datetime, deadline: datetime, calendar: WorkCalendar) -> int:
    """Positive minutes remaining until `deadline`, negative once it has passed."""
    if as_utc(deadline) <= as_utc(now):
        return -working_minutes_between(deadline, now, calendar)
    return working_minutes_between(now, deadline, calendar)


# ============ Business rules ============

def is_completed(status: RequestStatus, fulfillment_method: Optional[FulfillmentMethod]) -> bool:
    """Whether the request has reached the milestone that stops its SLA."""
    if fulfillment_method == FulfillmentMethod.SELF_PICKUP:
        return status in _SELF_PICKUP_DONE
    return status in _DELIVERY_DONE


def classify(
    minutes: int,
    warning_hours: float = WARNING_HOURS,
    approaching_hours: float = APPROACHING_HOURS,
) -> SLALevel:
    hours = minutes / 60
    if minutes < 0:
        return SLALevel.OVERDUE
    if hours < warning_hours:
        return SLALevel.WARNING
    if hours <= approaching_hours:
        return SLALevel.APPROACHING
    return SLALevel.SAFE


def format_working_time(minutes: int) -> str:
    """
    Format signed working minutes for a badge.

    Examples:
        30    -> "30m"
        120   -> "2h"
        -45   -> "Overdue 45m"
        -125  -> "Overdue 2h 5m"
    """
    prefix = "Overdue " if minutes < 0 else ""
    hours, rest = divmod(abs(minutes), 60)
    rest = round(rest)

    if hours == 0:
        return f"{prefix}{rest}m"
    if rest == 0:
        return f"{prefix}{hours}h"
    return f"{prefix}{hours}h {rest}m"


# ============ Evaluation ============

def evaluate(
    sla_input: SLAInput,
    calendar: WorkCalendar,
    warning_hours: float = WARNING_HOURS,
    approaching_hours: float = APPROACHING_HOURS,
) -> SLAResult:
    """
    Evaluate the SLA of one request at `sla_input.now`.

    Returns:
        SLAResult:
            - level NONE, label "—" when no SLA applies (no deadline,
              deadline or now outside 1970-01-01 .. 9999-12-29 UTC,
              draft or rejected)
            - level COMPLETED, label "Done" once the stop condition is met
            - otherwise the classified signed working minutes
    """
    deadline = sla_input.deadline
    if (
        deadline is None
        or not _EPOCH <= as_utc(deadline) < _LATEST
        or not _EPOCH <= as_utc(sla_input.now) < _LATEST
        or sla_input.status in _NOT_APPLICABLE_STATUSES
    ):
        return SLAResult(
            completed=False,
            signed_working_minutes=0,
            level=SLALevel.NONE,
            label=LABEL_NOT_APPLICABLE,
        )

    if is_completed(sla_input.status, sla_input.fulfillment_method):
        return SLAResult(
            completed=True,
            signed_working_minutes=0,
            level=SLALevel.COMPLETED,
            label=LABEL_DONE,
        )

    minutes = signed_working_minutes(sla_input.now, deadline, calendar)
    return SLAResult(
        completed=False,
        signed_working_minutes=minutes,
        level=classify(minutes, warning_hours, approaching_hours),
        label=format_working_time(minutes),
    )


def summarize(results: Iterable[SLAResult]) -> dict[SLALevel, int]:
    """Count results per level; every level is present, zero if unseen."""
    counts = Counter(result.level for result in results)
    return {level: counts.get(level, 0) for level in SLALevel}

