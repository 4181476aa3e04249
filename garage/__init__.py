"""
Vehicle maintenance scheduling.

This package tracks vehicles and their maintenance tasks, each due at an
odometer reading or a date, whichever comes first:
- Status / BaselineType: urgency levels and where thresholds came from
- Vehicle, MaintenanceTask, ServiceLog, User: records
- DashboardTask: task status computed against the current odometer and date
- engine: status derivation and urgency ordering
- lifecycle: initial thresholds, re-baselining, unit conversion
- merge: personal + fleet collection merging
- costs: spending reducers
- DocumentStore / Session: storage and the live per-user data session
"""

from .status import Status, BaselineType
from .units import OdometerUnit, convert_odometer, format_odometer, unit_label
from .vehicle import Vehicle, VehicleType, OwnerType
from .task import MaintenanceTask
from .service_log import ServiceLog
from .user import User
from .dashboard_task import DashboardTask
from .calculations import calc_due_odometer, calc_due_date, check_status
from .engine import (
    compute_task_status,
    get_dashboard_tasks,
    sort_dashboard_tasks,
    needs_odometer_reminder,
    odometer_warnings,
)
from .errors import (
    GarageError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
    StorageError,
)
from .store import DocumentStore, YamlDocumentStore
from .session import Session

__all__ = [
    "Status",
    "BaselineType",
    "OdometerUnit",
    "convert_odometer",
    "format_odometer",
    "unit_label",
    "Vehicle",
    "VehicleType",
    "OwnerType",
    "MaintenanceTask",
    "ServiceLog",
    "User",
    "DashboardTask",
    "calc_due_odometer",
    "calc_due_date",
    "check_status",
    "compute_task_status",
    "get_dashboard_tasks",
    "sort_dashboard_tasks",
    "needs_odometer_reminder",
    "odometer_warnings",
    "GarageError",
    "NotAuthenticatedError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
    "DocumentStore",
    "YamlDocumentStore",
    "Session",
]
