"""User identity as resolved by the authentication layer."""

from typing import Optional

from .vehicle import OwnerType


class User:
    """The signed-in user. Fleet members also see the fleet's shared records."""

    def __init__(
        self,
        id: str,
        account_type: OwnerType = OwnerType.PERSONAL,
        fleet_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ):
        self.id = id
        self.account_type = account_type
        self.fleet_id = fleet_id
        self.display_name = display_name

    @property
    def is_fleet_user(self) -> bool:
        return self.fleet_id is not None and self.account_type == OwnerType.FLEET
