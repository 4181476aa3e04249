"""DashboardTask dataclass for computed task status."""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .status import Status

if TYPE_CHECKING:
    from .task import MaintenanceTask


@dataclass
class DashboardTask:
    """A task with its status computed against the current vehicle state."""

    task: "MaintenanceTask"
    status: Status
    vehicle_name: str
    miles_remaining: Optional[float] = None
    days_remaining: Optional[int] = None

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def vehicle_id(self) -> str:
        return self.task.vehicle_id

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)
