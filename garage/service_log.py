"""ServiceLog class for completed maintenance records."""

from datetime import datetime
from typing import Optional

from .vehicle import OwnerType


class ServiceLog:
    """A record of maintenance performed. Never edited once created."""

    def __init__(
        self,
        id: str,
        vehicle_id: str,
        task_id: str,
        task_name: str,
        date: datetime,
        odometer: float,
        created_at: datetime,
        user_id: Optional[str] = None,
        category: Optional[str] = None,
        notes: Optional[str] = None,
        cost: Optional[float] = None,
        receipt_uri: Optional[str] = None,
        owner_type: OwnerType = OwnerType.PERSONAL,
        fleet_id: Optional[str] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.task_id = task_id
        self.task_name = task_name
        self.date = date
        self.odometer = odometer
        self.created_at = created_at
        self.user_id = user_id
        self.category = category
        self.notes = notes
        self.cost = cost
        self.receipt_uri = receipt_uri
        self.owner_type = owner_type
        self.fleet_id = fleet_id
