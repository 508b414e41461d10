from __future__ import annotations

import datetime as dt
import logging
from enum import Enum

from financas.agenda.errors import CalendarIterationExceeded
from financas.agenda.holidays import holiday_name

logger = logging.getLogger(__name__)

MAX_ADJUST_STEPS = 30

# date.weekday(): Monday=0 .. Sunday=6
WEEKEND_DAYS = frozenset({5, 6})

_ONE_DAY = dt.timedelta(days=1)


class Adjustment(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    NONE = "none"


def is_weekend(day: dt.date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def is_business_day(day: dt.date) -> bool:
    return not is_weekend(day) and holiday_name(day) is None


def _walk(day: dt.date, step: dt.timedelta, label: str) -> dt.date:
    current = day
    steps = 0
    while not is_business_day(current) and steps < MAX_ADJUST_STEPS:
        current = current + step
        steps += 1
    if not is_business_day(current):
        err = CalendarIterationExceeded(
            f"{label} exceeded {MAX_ADJUST_STEPS} steps from {day.isoformat()}; returning {current.isoformat()}"
        )
        logger.error("%s", err)
    return current


def adjust_forward(day: dt.date) -> dt.date:
    """Next business day on or after `day` (bills, loans, financing)."""
    return _walk(day, _ONE_DAY, "adjust_forward")


def adjust_backward(day: dt.date) -> dt.date:
    """Previous business day on or before `day` (taxes, recurring charges)."""
    return _walk(day, -_ONE_DAY, "adjust_backward")


def keep_as_is(day: dt.date) -> dt.date:
    return day


_ADJUSTERS = {
    Adjustment.FORWARD: adjust_forward,
    Adjustment.BACKWARD: adjust_backward,
    Adjustment.NONE: keep_as_is,
}


def adjust(day: dt.date, policy: Adjustment) -> dt.date:
    return _ADJUSTERS[Adjustment(policy)](day)
