"""Default maintenance templates applied when a vehicle is added."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import ValidationError as SchemaError, validate

from .errors import ValidationError
from .vehicle import VehicleType

DATA_DIR = Path(__file__).parent / "data"
DEFAULTS_FILE = DATA_DIR / "maintenance_defaults.yaml"
SCHEMA_FILE = DATA_DIR / "schema.yaml"


class MaintenanceDefault:
    """Template for one maintenance task."""

    def __init__(
        self,
        type_id: str,
        name: str,
        category: str,
        miles_interval: float,
        months_interval: float,
        description: str = "",
        vehicle_types: Optional[List[VehicleType]] = None,
    ):
        self.type_id = type_id
        self.name = name
        self.category = category
        self.miles_interval = miles_interval
        self.months_interval = months_interval
        self.description = description
        self.vehicle_types = vehicle_types

    def applies_to(self, vehicle_type: VehicleType) -> bool:
        """Templates without a type list apply to every vehicle."""
        if not self.vehicle_types:
            return True
        return vehicle_type in self.vehicle_types


def load_schema(name: str) -> Dict[str, Any]:
    """Load one named schema from schema.yaml."""
    with open(SCHEMA_FILE) as f:
        return yaml.safe_load(f)[name]


def _parse_default(dct: Dict[str, Any]) -> MaintenanceDefault:
    types = dct.get("vehicleTypes")
    return MaintenanceDefault(
        dct["typeId"],
        dct["name"],
        dct["category"],
        dct["milesInterval"],
        dct["monthsInterval"],
        dct.get("description", ""),
        [VehicleType(t) for t in types] if types else None,
    )


def load_defaults(filename: Union[str, Path, None] = None) -> List[MaintenanceDefault]:
    """Load and validate a defaults template file."""
    path = Path(filename) if filename is not None else DEFAULTS_FILE
    with open(path) as fp:
        data = yaml.safe_load(fp)
    try:
        validate(instance=data, schema=load_schema("defaults"))
    except SchemaError as e:
        raise ValidationError(f"Invalid defaults file {path}: {e.message}") from e
    return [_parse_default(d) for d in data["defaults"]]


def applicable_defaults(
    defaults: List[MaintenanceDefault], vehicle_type: VehicleType
) -> List[MaintenanceDefault]:
    return [d for d in defaults if d.applies_to(vehicle_type)]
