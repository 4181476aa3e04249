"""Helper functions for due threshold and status calculations."""

import math
from datetime import datetime, timedelta
from typing import Optional

from .status import Status

# Warning window; distance is in the vehicle's own odometer unit.
DUE_SOON_DISTANCE = 500
DUE_SOON_DAYS = 14

DAYS_PER_MONTH = 30


def calc_due_odometer(
    last_odometer: Optional[float], interval: float, start_odometer: float = 0
) -> float:
    """
    Calculate next due odometer reading.

    - With history: last_odometer + interval
    - Without history: start_odometer + interval (odometer when the task was created)
    """
    if last_odometer is not None:
        return last_odometer + interval
    return start_odometer + interval


def calc_due_date(base: datetime, interval_months: float) -> datetime:
    """Calculate next due date: base + interval months of 30 days each."""
    return base + timedelta(days=interval_months * DAYS_PER_MONTH)


def calc_miles_remaining(
    next_due_odometer: Optional[float], current_odometer: float
) -> Optional[float]:
    if next_due_odometer is None:
        return None
    return next_due_odometer - current_odometer


def calc_days_remaining(next_due_date: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days until the due date, floored (negative once past due)."""
    if next_due_date is None:
        return None
    return math.floor((next_due_date - now) / timedelta(days=1))


def check_status(
    miles_remaining: Optional[float],
    days_remaining: Optional[int],
    estimated: bool = False,
    due_soon_distance: float = DUE_SOON_DISTANCE,
    due_soon_days: int = DUE_SOON_DAYS,
) -> Status:
    """
    Derive urgency from whichever trigger is closer.

    An overdue task whose baseline is only estimated reports DUE_SOON:
    its thresholds were never confirmed by a real service.
    """
    overdue = (miles_remaining is not None and miles_remaining <= 0) or (
        days_remaining is not None and days_remaining <= 0
    )
    if overdue:
        return Status.DUE_SOON if estimated else Status.OVERDUE

    due_soon = (miles_remaining is not None and miles_remaining <= due_soon_distance) or (
        days_remaining is not None and days_remaining <= due_soon_days
    )
    if due_soon:
        return Status.DUE_SOON
    return Status.UPCOMING
