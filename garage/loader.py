"""Mapping between stored documents (camelCase dicts) and model objects."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dateutil.parser import isoparse

from .service_log import ServiceLog
from .status import BaselineType
from .task import MaintenanceTask
from .units import OdometerUnit
from .vehicle import OwnerType, Vehicle, VehicleType


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass a datetime through) as an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = isoparse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _put(d: Dict[str, Any], key: str, value: Any) -> None:
    """Set key only when value is present, for cleaner documents."""
    if value is not None:
        d[key] = value


# =============================================================================
# Vehicles
# =============================================================================


def vehicle_from_dict(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        id=dct["id"],
        make=dct["make"],
        model=dct["model"],
        year=dct["year"],
        current_odometer=dct["currentOdometer"],
        created_at=parse_timestamp(dct["createdAt"]),
        nickname=dct.get("nickname"),
        vehicle_type=VehicleType(dct.get("vehicleType") or "car"),
        trim=dct.get("trim"),
        vin=dct.get("vin"),
        odometer_unit=OdometerUnit(dct.get("odometerUnit") or "mi"),
        owner_type=OwnerType(dct.get("ownerType") or "personal"),
        fleet_id=dct.get("fleetId"),
        user_id=dct.get("userId"),
        is_active=bool(dct.get("isActive", False)),
        updated_at=parse_timestamp(dct.get("updatedAt")),
        last_odometer_update=parse_timestamp(dct.get("lastOdometerUpdate")),
        assigned_driver_ids=dct.get("assignedDriverIds"),
    )


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": vehicle.id,
        "vehicleType": vehicle.vehicle_type.value,
        "year": vehicle.year,
        "make": vehicle.make,
        "model": vehicle.model,
        "currentOdometer": vehicle.current_odometer,
        "odometerUnit": vehicle.odometer_unit.value,
        "ownerType": vehicle.owner_type.value,
        "isActive": vehicle.is_active,
        "createdAt": format_timestamp(vehicle.created_at),
        "updatedAt": format_timestamp(vehicle.updated_at),
    }
    _put(d, "nickname", vehicle.nickname)
    _put(d, "trim", vehicle.trim)
    _put(d, "vin", vehicle.vin)
    _put(d, "fleetId", vehicle.fleet_id)
    _put(d, "userId", vehicle.user_id)
    _put(d, "lastOdometerUpdate", format_timestamp(vehicle.last_odometer_update))
    if vehicle.assigned_driver_ids:
        d["assignedDriverIds"] = list(vehicle.assigned_driver_ids)
    return d


# =============================================================================
# Maintenance tasks
# =============================================================================


def task_from_dict(dct: Dict[str, Any]) -> MaintenanceTask:
    # Tasks stored before baselines were tracked count as confirmed.
    return MaintenanceTask(
        id=dct["id"],
        vehicle_id=dct["vehicleId"],
        name=dct["name"],
        miles_interval=dct["milesInterval"],
        months_interval=dct["monthsInterval"],
        created_at=parse_timestamp(dct["createdAt"]),
        type_id=dct.get("typeId"),
        category=dct.get("category"),
        description=dct.get("description"),
        last_service_odometer=dct.get("lastServiceOdometer"),
        last_service_date=parse_timestamp(dct.get("lastServiceDate")),
        next_due_odometer=dct.get("nextDueOdometer"),
        next_due_date=parse_timestamp(dct.get("nextDueDate")),
        baseline_type=BaselineType(dct.get("baselineType") or "confirmed"),
        owner_type=OwnerType(dct.get("ownerType") or "personal"),
        fleet_id=dct.get("fleetId"),
        user_id=dct.get("userId"),
        updated_at=parse_timestamp(dct.get("updatedAt")),
    )


def task_to_dict(task: MaintenanceTask) -> Dict[str, Any]:
    # Baseline fields are written even when None so re-baselines can clear them.
    d: Dict[str, Any] = {
        "id": task.id,
        "vehicleId": task.vehicle_id,
        "name": task.name,
        "milesInterval": task.miles_interval,
        "monthsInterval": task.months_interval,
        "lastServiceOdometer": task.last_service_odometer,
        "lastServiceDate": format_timestamp(task.last_service_date),
        "nextDueOdometer": task.next_due_odometer,
        "nextDueDate": format_timestamp(task.next_due_date),
        "baselineType": task.baseline_type.value,
        "ownerType": task.owner_type.value,
        "createdAt": format_timestamp(task.created_at),
        "updatedAt": format_timestamp(task.updated_at),
    }
    _put(d, "typeId", task.type_id)
    _put(d, "category", task.category)
    _put(d, "description", task.description)
    _put(d, "fleetId", task.fleet_id)
    _put(d, "userId", task.user_id)
    return d


# =============================================================================
# Service logs
# =============================================================================


def log_from_dict(dct: Dict[str, Any]) -> ServiceLog:
    return ServiceLog(
        id=dct["id"],
        vehicle_id=dct["vehicleId"],
        task_id=dct["taskId"],
        task_name=dct["taskName"],
        date=parse_timestamp(dct["date"]),
        odometer=dct["odometer"],
        created_at=parse_timestamp(dct["createdAt"]),
        user_id=dct.get("userId"),
        category=dct.get("category"),
        notes=dct.get("notes"),
        cost=dct.get("cost"),
        receipt_uri=dct.get("receiptUri"),
        owner_type=OwnerType(dct.get("ownerType") or "personal"),
        fleet_id=dct.get("fleetId"),
    )


def log_to_dict(log: ServiceLog) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": log.id,
        "vehicleId": log.vehicle_id,
        "taskId": log.task_id,
        "taskName": log.task_name,
        "date": format_timestamp(log.date),
        "odometer": log.odometer,
        "ownerType": log.owner_type.value,
        "createdAt": format_timestamp(log.created_at),
    }
    _put(d, "userId", log.user_id)
    _put(d, "category", log.category)
    _put(d, "notes", log.notes)
    _put(d, "cost", log.cost)
    _put(d, "receiptUri", log.receipt_uri)
    _put(d, "fleetId", log.fleet_id)
    return d
