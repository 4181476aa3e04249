"""Vehicle class for registered vehicles and their odometer state."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from .units import OdometerUnit


class VehicleType(Enum):
    """Vehicle categories used to pick default maintenance tasks."""

    CAR = "car"
    PICKUP = "pickup"
    SEMI = "semi"


class OwnerType(Enum):
    """Whether a record belongs to one user or to a shared fleet."""

    PERSONAL = "personal"
    FLEET = "fleet"


class Vehicle:
    """A registered vehicle. The odometer is updated manually by users."""

    def __init__(
        self,
        id: str,
        make: str,
        model: str,
        year: int,
        current_odometer: float,
        created_at: datetime,
        nickname: Optional[str] = None,
        vehicle_type: VehicleType = VehicleType.CAR,
        trim: Optional[str] = None,
        vin: Optional[str] = None,
        odometer_unit: OdometerUnit = OdometerUnit.MI,
        owner_type: OwnerType = OwnerType.PERSONAL,
        fleet_id: Optional[str] = None,
        user_id: Optional[str] = None,
        is_active: bool = False,
        updated_at: Optional[datetime] = None,
        last_odometer_update: Optional[datetime] = None,
        assigned_driver_ids: Optional[List[str]] = None,
    ):
        self.id = id
        self.make = make
        self.model = model
        self.year = year
        self.current_odometer = current_odometer
        self.created_at = created_at
        self.nickname = nickname
        self.vehicle_type = vehicle_type
        self.trim = trim
        self.vin = vin
        self.odometer_unit = odometer_unit
        self.owner_type = owner_type
        self.fleet_id = fleet_id
        self.user_id = user_id
        self.is_active = is_active
        self.updated_at = updated_at or created_at
        self.last_odometer_update = last_odometer_update
        self.assigned_driver_ids = assigned_driver_ids or []

    @property
    def name(self) -> str:
        """Display name: the nickname, or 'year make model'."""
        if self.nickname:
            return self.nickname
        return f"{self.year} {self.make} {self.model}"

    @property
    def odometer_updated_at(self) -> datetime:
        """When the odometer was last confirmed, falling back to creation."""
        return self.last_odometer_update or self.created_at
