"""
Maintenance status engine.

Pure functions deriving per-task urgency from a task and its vehicle.
Results depend on the vehicle odometer and the wall clock, so they are
recomputed on every read and never stored.
"""

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional

from .calculations import calc_days_remaining, calc_miles_remaining, check_status
from .dashboard_task import DashboardTask
from .status import Status
from .task import MaintenanceTask
from .units import ODOMETER_JUMP_THRESHOLD
from .vehicle import Vehicle

ODOMETER_REMINDER_DAYS = 14


class TaskStatus(NamedTuple):
    status: Status
    miles_remaining: Optional[float]
    days_remaining: Optional[int]


def compute_task_status(task: MaintenanceTask, vehicle: Vehicle, now: datetime) -> TaskStatus:
    """Status and remaining distance/time for one task."""
    miles_remaining = calc_miles_remaining(task.next_due_odometer, vehicle.current_odometer)
    days_remaining = calc_days_remaining(task.next_due_date, now)
    status = check_status(miles_remaining, days_remaining, estimated=task.is_estimated)
    return TaskStatus(status, miles_remaining, days_remaining)


def build_dashboard_task(task: MaintenanceTask, vehicle: Vehicle, now: datetime) -> DashboardTask:
    result = compute_task_status(task, vehicle, now)
    return DashboardTask(
        task=task,
        status=result.status,
        vehicle_name=vehicle.name,
        miles_remaining=result.miles_remaining,
        days_remaining=result.days_remaining,
    )


def status_sort_key(item: DashboardTask):
    """Most urgent first, then least distance remaining; unknown distance last."""
    miles = item.miles_remaining if item.miles_remaining is not None else math.inf
    return (item.status.value, miles)


def sort_dashboard_tasks(items: Iterable[DashboardTask]) -> List[DashboardTask]:
    return sorted(items, key=status_sort_key)


def get_dashboard_tasks(
    tasks: Iterable[MaintenanceTask], vehicles: Iterable[Vehicle], now: datetime
) -> List[DashboardTask]:
    """
    Compute dashboard entries for every task, sorted by urgency.

    Tasks whose vehicle is not in the given collection are skipped.
    """
    by_id: Dict[str, Vehicle] = {v.id: v for v in vehicles}
    items = []
    for task in tasks:
        vehicle = by_id.get(task.vehicle_id)
        if vehicle is None:
            continue
        items.append(build_dashboard_task(task, vehicle, now))
    return sort_dashboard_tasks(items)


def days_since_odometer_update(vehicle: Vehicle, now: datetime) -> int:
    return math.floor((now - vehicle.odometer_updated_at) / timedelta(days=1))


def needs_odometer_reminder(
    vehicle: Vehicle, now: datetime, threshold_days: int = ODOMETER_REMINDER_DAYS
) -> bool:
    """True when the odometer has not been updated for threshold_days or more."""
    return days_since_odometer_update(vehicle, now) >= threshold_days


def odometer_warnings(
    vehicle: Vehicle, new_value: float, jump_threshold: float = ODOMETER_JUMP_THRESHOLD
) -> List[str]:
    """
    Flag suspicious odometer readings.

    - "lower": new reading is below the current one
    - "jump": new reading exceeds the current one by more than jump_threshold
    """
    warnings = []
    if new_value < vehicle.current_odometer:
        warnings.append("lower")
    elif new_value - vehicle.current_odometer > jump_threshold:
        warnings.append("jump")
    return warnings
