"""Odometer unit conversion and formatting."""

from enum import Enum


class OdometerUnit(Enum):
    """Distance unit a vehicle's odometer reads in."""

    MI = "mi"
    KM = "km"


MI_TO_KM = 1.60934
KM_TO_MI = 0.621371

# A reading this far above the last one is probably a typo.
ODOMETER_JUMP_THRESHOLD = 5000


def convert_odometer(value: float, from_unit: OdometerUnit, to_unit: OdometerUnit) -> float:
    """
    Convert a distance between units, rounded to the nearest whole unit.

    Values are returned untouched when both units match.
    """
    if from_unit == to_unit:
        return value
    if from_unit == OdometerUnit.MI and to_unit == OdometerUnit.KM:
        return round(value * MI_TO_KM)
    return round(value * KM_TO_MI)


def format_odometer(value: float, unit: OdometerUnit) -> str:
    """Format a reading for display (e.g., '48,000 mi')."""
    return f"{value:,.0f} {unit.value}"


def unit_label(unit: OdometerUnit) -> str:
    """Long name of a unit."""
    return "miles" if unit == OdometerUnit.MI else "kilometers"
