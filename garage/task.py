"""MaintenanceTask class for scheduled maintenance items."""

from datetime import datetime
from typing import Optional

from .status import BaselineType
from .vehicle import OwnerType


class MaintenanceTask:
    """
    A recurring maintenance item for one vehicle.

    Due by whichever trigger comes first:
    - next_due_odometer = (last_service_odometer or creation odometer) + miles_interval
    - next_due_date = (last_service_date or creation date) + months_interval * 30 days

    last_service_* stay None until a service is logged against the task.
    """

    def __init__(
        self,
        id: str,
        vehicle_id: str,
        name: str,
        miles_interval: float,
        months_interval: float,
        created_at: datetime,
        type_id: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        last_service_odometer: Optional[float] = None,
        last_service_date: Optional[datetime] = None,
        next_due_odometer: Optional[float] = None,
        next_due_date: Optional[datetime] = None,
        baseline_type: BaselineType = BaselineType.CONFIRMED,
        owner_type: OwnerType = OwnerType.PERSONAL,
        fleet_id: Optional[str] = None,
        user_id: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.name = name
        self.miles_interval = miles_interval
        self.months_interval = months_interval
        self.created_at = created_at
        self.type_id = type_id
        self.category = category
        self.description = description
        self.last_service_odometer = last_service_odometer
        self.last_service_date = last_service_date
        self.next_due_odometer = next_due_odometer
        self.next_due_date = next_due_date
        self.baseline_type = baseline_type
        self.owner_type = owner_type
        self.fleet_id = fleet_id
        self.user_id = user_id
        self.updated_at = updated_at or created_at

    @property
    def is_estimated(self) -> bool:
        """True until a real service has confirmed the baseline."""
        return self.baseline_type == BaselineType.ESTIMATED

    @property
    def has_service_history(self) -> bool:
        return self.last_service_date is not None or self.last_service_odometer is not None
