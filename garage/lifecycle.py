"""
Task lifecycle: initial thresholds when a vehicle is added, re-baselining
when a service is logged, and unit conversion of stored odometer values.

These functions return new objects and never modify their inputs; the
session writes the results in a single batch.
"""

import copy
import uuid
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .calculations import calc_due_date, calc_due_odometer
from .defaults import MaintenanceDefault, applicable_defaults
from .errors import ValidationError
from .service_log import ServiceLog
from .status import BaselineType
from .task import MaintenanceTask
from .units import OdometerUnit, convert_odometer
from .user import User
from .vehicle import OwnerType, Vehicle

MIN_YEAR = 1900


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# Validation
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_odometer(value: float) -> None:
    if not _is_number(value):
        raise ValidationError(f"Odometer reading must be a number, got {value!r}")
    if value < 0:
        raise ValidationError(f"Odometer reading must be zero or more, got {value}")


def validate_cost(cost: Optional[float]) -> None:
    if cost is None:
        return
    if not _is_number(cost):
        raise ValidationError(f"Cost must be a number, got {cost!r}")
    if cost < 0:
        raise ValidationError(f"Cost cannot be negative, got {cost}")


def validate_vehicle(vehicle: Vehicle, now: datetime) -> None:
    validate_odometer(vehicle.current_odometer)
    if not vehicle.make or not vehicle.model:
        raise ValidationError("Vehicle make and model are required")
    if not isinstance(vehicle.year, int) or isinstance(vehicle.year, bool):
        raise ValidationError(f"Vehicle year must be a whole number, got {vehicle.year!r}")
    if vehicle.year < MIN_YEAR or vehicle.year > now.year + 1:
        raise ValidationError(f"Vehicle year must be between {MIN_YEAR} and {now.year + 1}")


# =============================================================================
# Ownership
# =============================================================================


def resolve_owner(
    user: User,
    fleet_id: Optional[str] = None,
    owner_type: Optional[OwnerType] = None,
    vehicle_fleet_id: Optional[str] = None,
) -> Tuple[OwnerType, Optional[str]]:
    """
    Pick the owner scope for a new record.

    Fleet id precedence: explicit value, the vehicle's fleet, then the
    user's fleet for fleet accounts. Any fleet id makes the record a fleet record.
    """
    effective_fleet_id = fleet_id or vehicle_fleet_id or (user.fleet_id if user.is_fleet_user else None)
    if effective_fleet_id:
        return OwnerType.FLEET, effective_fleet_id
    return owner_type or OwnerType.PERSONAL, None


# =============================================================================
# Creation
# =============================================================================


def create_default_tasks(
    vehicle: Vehicle, defaults: List[MaintenanceDefault], now: datetime
) -> List[MaintenanceTask]:
    """
    Create estimated tasks for a new vehicle from the applicable templates.

    Thresholds count from the vehicle's current odometer and from now, since
    no service has been confirmed yet.
    """
    tasks = []
    for item in applicable_defaults(defaults, vehicle.vehicle_type):
        tasks.append(
            MaintenanceTask(
                id=new_id(),
                vehicle_id=vehicle.id,
                name=item.name,
                miles_interval=item.miles_interval,
                months_interval=item.months_interval,
                created_at=now,
                type_id=item.type_id,
                category=item.category,
                description=item.description,
                last_service_odometer=None,
                last_service_date=None,
                next_due_odometer=calc_due_odometer(
                    None, item.miles_interval, vehicle.current_odometer
                ),
                next_due_date=calc_due_date(now, item.months_interval),
                baseline_type=BaselineType.ESTIMATED,
                owner_type=vehicle.owner_type,
                fleet_id=vehicle.fleet_id,
                user_id=vehicle.user_id,
            )
        )
    return tasks


# =============================================================================
# Re-baselining
# =============================================================================


def rebaseline_task(
    task: MaintenanceTask, odometer: float, service_date: datetime, now: datetime
) -> MaintenanceTask:
    """Recompute a task's thresholds from a logged service."""
    updated = copy.copy(task)
    updated.last_service_odometer = odometer
    updated.last_service_date = service_date
    updated.next_due_odometer = calc_due_odometer(odometer, task.miles_interval)
    updated.next_due_date = calc_due_date(service_date, task.months_interval)
    updated.baseline_type = BaselineType.CONFIRMED
    updated.updated_at = now
    return updated


def advance_odometer(vehicle: Vehicle, odometer: float, now: datetime) -> Optional[Vehicle]:
    """
    Vehicle with its odometer moved up to a logged reading.

    Returns None when the reading is not ahead of the current odometer;
    a logged service never moves the odometer backward.
    """
    if odometer <= vehicle.current_odometer:
        return None
    updated = copy.copy(vehicle)
    updated.current_odometer = odometer
    updated.updated_at = now
    return updated


def set_odometer(vehicle: Vehicle, odometer: float, now: datetime) -> Vehicle:
    """Vehicle with a manually entered odometer reading."""
    validate_odometer(odometer)
    updated = copy.copy(vehicle)
    updated.current_odometer = odometer
    updated.updated_at = now
    updated.last_odometer_update = now
    return updated


# =============================================================================
# Unit conversion
# =============================================================================


def convert_vehicle(vehicle: Vehicle, to_unit: OdometerUnit, now: datetime) -> Vehicle:
    updated = copy.copy(vehicle)
    updated.current_odometer = convert_odometer(vehicle.current_odometer, vehicle.odometer_unit, to_unit)
    updated.odometer_unit = to_unit
    updated.updated_at = now
    return updated


def convert_task(
    task: MaintenanceTask, from_unit: OdometerUnit, to_unit: OdometerUnit
) -> MaintenanceTask:
    updated = copy.copy(task)
    if task.last_service_odometer is not None:
        updated.last_service_odometer = convert_odometer(task.last_service_odometer, from_unit, to_unit)
    if task.next_due_odometer is not None:
        updated.next_due_odometer = convert_odometer(task.next_due_odometer, from_unit, to_unit)
    return updated


def convert_log(log: ServiceLog, from_unit: OdometerUnit, to_unit: OdometerUnit) -> ServiceLog:
    updated = copy.copy(log)
    updated.odometer = convert_odometer(log.odometer, from_unit, to_unit)
    return updated
