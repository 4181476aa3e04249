"""
Live data session for one signed-in user.

Subscribes to the user's personal records and, for fleet members, the
fleet's shared records; keeps merged views current as either side
changes; and exposes the write operations, each committed as one batch.
"""

import copy
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Type

from .costs import CostSummary, cost_summary
from .dashboard_task import DashboardTask
from .defaults import MaintenanceDefault, load_defaults
from .engine import (
    ODOMETER_REMINDER_DAYS,
    get_dashboard_tasks,
    needs_odometer_reminder,
    odometer_warnings,
)
from .errors import NotAuthenticatedError, NotFoundError, StorageError, ValidationError
from .lifecycle import (
    advance_odometer,
    convert_log,
    convert_task,
    convert_vehicle,
    create_default_tasks,
    new_id,
    rebaseline_task,
    resolve_owner,
    set_odometer,
    validate_cost,
    validate_odometer,
    validate_vehicle,
)
from .loader import (
    log_from_dict,
    log_to_dict,
    parse_timestamp,
    task_from_dict,
    task_to_dict,
    vehicle_from_dict,
    vehicle_to_dict,
)
from .merge import (
    FLEET,
    PERSONAL,
    MergedCollection,
    merge_logs,
    merge_tasks,
    merge_vehicles,
    resolve_active_vehicle_id,
)
from .service_log import ServiceLog
from .store import LOGS, TASKS, VEHICLES, DocumentStore, Subscription
from .task import MaintenanceTask
from .units import OdometerUnit
from .user import User
from .vehicle import OwnerType, Vehicle, VehicleType

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_enum(enum_type: Type[Enum], value: Any, default: Any = None) -> Any:
    if value is None:
        return default
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {enum_type.__name__}: {value!r}") from e


class Session:
    """
    Per-user view of vehicles, tasks and logs plus the operations on them.

    Use as a context manager (or call close()) so store subscriptions are
    released when the session ends.
    """

    def __init__(
        self,
        store: DocumentStore,
        user: Optional[User],
        defaults: Optional[List[MaintenanceDefault]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.user = user
        self.defaults = defaults if defaults is not None else load_defaults()
        self._clock = clock
        self._active_vehicle_id: Optional[str] = None
        self._subscriptions: List[Subscription] = []
        self._listeners: List[Callable[["Session"], None]] = []

        self._vehicles: MergedCollection[Vehicle] = MergedCollection("vehicles", merge=merge_vehicles)
        self._tasks: MergedCollection[MaintenanceTask] = MergedCollection("tasks", merge=merge_tasks)
        self._logs: MergedCollection[ServiceLog] = MergedCollection("logs", merge=merge_logs)
        self._vehicles.subscribe(self._on_vehicles)
        self._tasks.subscribe(lambda items: self._changed())
        self._logs.subscribe(lambda items: self._changed())

        if user is not None:
            self._open(user)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def _open(self, user: User) -> None:
        self._subscriptions.append(
            self.store.subscribe(VEHICLES, "userId", user.id, self._on_personal_vehicles)
        )
        self._watch(TASKS, task_from_dict, self._tasks, user)
        self._watch(LOGS, log_from_dict, self._logs, user)

        if user.fleet_id:
            self._subscriptions.append(
                self.store.subscribe(
                    VEHICLES,
                    "fleetId",
                    user.fleet_id,
                    lambda docs: self._vehicles.update(FLEET, [vehicle_from_dict(d) for d in docs]),
                    on_error=lambda e: self._vehicles.fail(FLEET, e),
                )
            )

    def _watch(self, collection: str, parse, view: MergedCollection, user: User) -> None:
        self._subscriptions.append(
            self.store.subscribe(
                collection,
                "userId",
                user.id,
                lambda docs: view.update(PERSONAL, [parse(d) for d in docs]),
            )
        )
        if user.fleet_id:
            self._subscriptions.append(
                self.store.subscribe(
                    collection,
                    "fleetId",
                    user.fleet_id,
                    lambda docs: view.update(FLEET, [parse(d) for d in docs]),
                    on_error=lambda e: view.fail(FLEET, e),
                )
            )

    def _on_personal_vehicles(self, docs: List[Dict[str, Any]]) -> None:
        self._vehicles.update(PERSONAL, [vehicle_from_dict(d) for d in docs])

        # Older vehicle documents lack lastOdometerUpdate; fill it in once.
        missing = [d for d in docs if not d.get("lastOdometerUpdate")]
        if not missing:
            return
        batch = self.store.batch()
        for doc in missing:
            batch.update(
                VEHICLES, doc["id"], {"lastOdometerUpdate": doc.get("updatedAt") or doc["createdAt"]}
            )
        try:
            batch.commit()
        except StorageError as e:
            logger.error("Could not backfill lastOdometerUpdate on %d vehicles: %s", len(missing), e)

    def _on_vehicles(self, vehicles: List[Vehicle]) -> None:
        self._active_vehicle_id = resolve_active_vehicle_id(self._active_vehicle_id, vehicles)
        self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def subscribe(self, listener: Callable[["Session"], None]) -> Callable[[], None]:
        """Call listener whenever any merged collection changes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Release every store subscription held by this session."""
        while self._subscriptions:
            self._subscriptions.pop().unsubscribe()
        self._listeners.clear()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def vehicles(self) -> List[Vehicle]:
        return list(self._vehicles.items)

    @property
    def tasks(self) -> List[MaintenanceTask]:
        return list(self._tasks.items)

    @property
    def logs(self) -> List[ServiceLog]:
        return list(self._logs.items)

    @property
    def active_vehicle_id(self) -> Optional[str]:
        return self._active_vehicle_id

    @property
    def active_vehicle(self) -> Optional[Vehicle]:
        return self.find_vehicle(self._active_vehicle_id) if self._active_vehicle_id else None

    def find_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return next((v for v in self._vehicles.items if v.id == vehicle_id), None)

    def find_task(self, task_id: str) -> Optional[MaintenanceTask]:
        return next((t for t in self._tasks.items if t.id == task_id), None)

    def find_log(self, log_id: str) -> Optional[ServiceLog]:
        return next((l for l in self._logs.items if l.id == log_id), None)

    def tasks_for(self, vehicle_id: str) -> List[MaintenanceTask]:
        return [t for t in self._tasks.items if t.vehicle_id == vehicle_id]

    def logs_for(self, vehicle_id: str) -> List[ServiceLog]:
        return [l for l in self._logs.items if l.vehicle_id == vehicle_id]

    def get_dashboard_tasks(self, now: Optional[datetime] = None) -> List[DashboardTask]:
        """Status of every visible task, most urgent first. Recomputed on each call."""
        return get_dashboard_tasks(self._tasks.items, self._vehicles.items, now or self._clock())

    def odometer_reminders(
        self, now: Optional[datetime] = None, threshold_days: int = ODOMETER_REMINDER_DAYS
    ) -> List[Vehicle]:
        """Vehicles whose odometer has not been updated recently."""
        now = now or self._clock()
        return [v for v in self._vehicles.items if needs_odometer_reminder(v, now, threshold_days)]

    def cost_summary(self, now: Optional[datetime] = None, top_n: Optional[int] = None) -> CostSummary:
        now = now or self._clock()
        return cost_summary(
            self._vehicles.items, self._logs.items, self.get_dashboard_tasks(now), now, top_n
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _require_user(self) -> User:
        if self.user is None:
            raise NotAuthenticatedError("User not authenticated")
        return self.user

    def _require_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self.find_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle '{vehicle_id}' not found")
        return vehicle

    def set_active_vehicle(self, vehicle_id: Optional[str]) -> None:
        if vehicle_id is not None:
            self._require_vehicle(vehicle_id)
        self._active_vehicle_id = vehicle_id
        self._changed()

    def create_vehicle_with_default_tasks(self, vehicle_data: Mapping[str, Any]) -> Vehicle:
        """
        Add a vehicle together with its default maintenance tasks.

        vehicle_data keys: make, model, year, current_odometer and optionally
        nickname, vehicle_type, trim, vin, odometer_unit, owner_type, fleet_id.
        The vehicle and all tasks are written in one batch.
        """
        user = self._require_user()
        now = self._clock()
        owner_type, fleet_id = resolve_owner(
            user,
            fleet_id=vehicle_data.get("fleet_id"),
            owner_type=_as_enum(OwnerType, vehicle_data.get("owner_type")),
        )
        try:
            vehicle = Vehicle(
                id=new_id(),
                make=vehicle_data["make"],
                model=vehicle_data["model"],
                year=int(vehicle_data["year"]),
                current_odometer=vehicle_data["current_odometer"],
                created_at=now,
                nickname=vehicle_data.get("nickname"),
                vehicle_type=_as_enum(VehicleType, vehicle_data.get("vehicle_type"), VehicleType.CAR),
                trim=vehicle_data.get("trim"),
                vin=vehicle_data.get("vin"),
                odometer_unit=_as_enum(OdometerUnit, vehicle_data.get("odometer_unit"), OdometerUnit.MI),
                owner_type=owner_type,
                fleet_id=fleet_id,
                user_id=user.id,
                is_active=not self._vehicles.items,
                updated_at=now,
                last_odometer_update=now,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid vehicle data: {e}") from e
        validate_vehicle(vehicle, now)

        tasks = create_default_tasks(vehicle, self.defaults, now)
        batch = self.store.batch()
        batch.set(VEHICLES, vehicle.id, vehicle_to_dict(vehicle))
        for task in tasks:
            batch.set(TASKS, task.id, task_to_dict(task))
        batch.commit()
        logger.info("Added vehicle %s (%s) with %d tasks", vehicle.id, vehicle.name, len(tasks))

        if self._active_vehicle_id is None:
            self._active_vehicle_id = vehicle.id
        return vehicle

    def update_vehicle(self, vehicle: Vehicle) -> None:
        """Save edited vehicle details. Unit changes go through convert_vehicle_unit."""
        self._require_user()
        existing = self._require_vehicle(vehicle.id)
        # Compare with the stored record; callers may have edited the cached object in place.
        stored = self.store.get(VEHICLES, vehicle.id)
        stored_unit = vehicle_from_dict(stored).odometer_unit if stored else existing.odometer_unit
        if vehicle.odometer_unit != stored_unit:
            raise ValidationError(
                f"Odometer unit of {vehicle.id} cannot be edited directly; use convert_vehicle_unit"
            )
        now = self._clock()
        validate_vehicle(vehicle, now)
        updated = copy.copy(vehicle)
        updated.updated_at = now
        updated.last_odometer_update = (
            vehicle.last_odometer_update or existing.last_odometer_update or vehicle.created_at
        )
        self.store.set(VEHICLES, vehicle.id, vehicle_to_dict(updated))

    def update_odometer(self, vehicle_id: str, new_value: float) -> None:
        """Record a manually entered odometer reading."""
        self._require_user()
        vehicle = self._require_vehicle(vehicle_id)
        updated = set_odometer(vehicle, new_value, self._clock())
        for warning in odometer_warnings(vehicle, new_value):
            logger.info("Odometer reading %s for %s flagged: %s", new_value, vehicle_id, warning)
        self.store.set(VEHICLES, vehicle_id, vehicle_to_dict(updated))

    def remove_vehicle(self, vehicle_id: str) -> None:
        """Delete a vehicle with all of its tasks and logs in one batch."""
        self._require_user()
        batch = self.store.batch()
        batch.delete(VEHICLES, vehicle_id)
        for doc in self.store.query(TASKS, "vehicleId", vehicle_id):
            batch.delete(TASKS, doc["id"])
        for doc in self.store.query(LOGS, "vehicleId", vehicle_id):
            batch.delete(LOGS, doc["id"])
        batch.commit()
        logger.info("Removed vehicle %s and %d related records", vehicle_id, len(batch) - 1)

    def log_service(self, log_data: Mapping[str, Any]) -> ServiceLog:
        """
        Record a completed service.

        In one batch: creates the log, re-baselines the task it was logged
        against, and moves the vehicle odometer forward if the service
        reading is ahead of it. A log naming an unknown task is still
        written; only the re-baseline is skipped.

        log_data keys: vehicle_id, task_id, odometer and optionally
        task_name, category, date, cost, notes, receipt_uri, fleet_id, owner_type.
        """
        user = self._require_user()
        now = self._clock()
        try:
            vehicle_id = log_data["vehicle_id"]
            task_id = log_data["task_id"]
            odometer = log_data["odometer"]
        except KeyError as e:
            raise ValidationError(f"Missing service log field {e}") from e
        validate_odometer(odometer)
        validate_cost(log_data.get("cost"))
        try:
            service_date = parse_timestamp(log_data.get("date")) or now
        except ValueError as e:
            raise ValidationError(f"Invalid service date {log_data.get('date')!r}") from e

        vehicle = self._require_vehicle(vehicle_id)
        task = self.find_task(task_id)
        task_name = log_data.get("task_name") or (task.name if task else None)
        if not task_name:
            raise ValidationError(f"Task '{task_id}' not found and no task name given")

        owner_type, fleet_id = resolve_owner(
            user,
            fleet_id=log_data.get("fleet_id"),
            owner_type=_as_enum(OwnerType, log_data.get("owner_type")),
            vehicle_fleet_id=vehicle.fleet_id,
        )
        log = ServiceLog(
            id=new_id(),
            vehicle_id=vehicle_id,
            task_id=task_id,
            task_name=task_name,
            date=service_date,
            odometer=odometer,
            created_at=now,
            user_id=user.id,
            category=(task.category if task else None) or log_data.get("category"),
            notes=log_data.get("notes") or None,
            cost=log_data.get("cost"),
            receipt_uri=log_data.get("receipt_uri") or None,
            owner_type=owner_type,
            fleet_id=fleet_id,
        )

        batch = self.store.batch()
        batch.set(LOGS, log.id, log_to_dict(log))
        if task is not None:
            batch.set(TASKS, task.id, task_to_dict(rebaseline_task(task, odometer, service_date, now)))
        else:
            logger.warning("Service logged against unknown task %s; no re-baseline", task_id)
        bumped = advance_odometer(vehicle, odometer, now)
        if bumped is not None:
            batch.set(VEHICLES, vehicle.id, vehicle_to_dict(bumped))
        batch.commit()
        logger.info("Logged %s on %s at %s", task_name, vehicle_id, odometer)
        return log

    def remove_service_log(self, log_id: str) -> None:
        self._require_user()
        self.store.delete(LOGS, log_id)

    def convert_vehicle_unit(self, vehicle_id: str, new_unit: Any) -> None:
        """
        Switch a vehicle's odometer unit.

        The vehicle odometer, every task threshold and every log reading are
        converted from the vehicle's stored unit in one batch.
        """
        self._require_user()
        vehicle = self._require_vehicle(vehicle_id)
        to_unit = _as_enum(OdometerUnit, new_unit)
        from_unit = vehicle.odometer_unit
        if to_unit is None or to_unit == from_unit:
            return

        now = self._clock()
        batch = self.store.batch()
        batch.set(VEHICLES, vehicle.id, vehicle_to_dict(convert_vehicle(vehicle, to_unit, now)))
        for doc in self.store.query(TASKS, "vehicleId", vehicle_id):
            task = convert_task(task_from_dict(doc), from_unit, to_unit)
            batch.update(
                TASKS,
                task.id,
                {
                    "lastServiceOdometer": task.last_service_odometer,
                    "nextDueOdometer": task.next_due_odometer,
                },
            )
        for doc in self.store.query(LOGS, "vehicleId", vehicle_id):
            log = convert_log(log_from_dict(doc), from_unit, to_unit)
            batch.update(LOGS, log.id, {"odometer": log.odometer})
        batch.commit()
        logger.info("Converted vehicle %s from %s to %s", vehicle_id, from_unit.value, to_unit.value)
