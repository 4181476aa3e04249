"""Status and baseline enums for maintenance urgency."""

from enum import Enum


class Status(Enum):
    """Maintenance status categories. Lower value = more urgent."""

    OVERDUE = 0
    DUE_SOON = 1
    UPCOMING = 2

    @property
    def label(self) -> str:
        """Stored/API name of the status (overdue, dueSoon, upcoming)."""
        return _LABELS[self]


_LABELS = {
    Status.OVERDUE: "overdue",
    Status.DUE_SOON: "dueSoon",
    Status.UPCOMING: "upcoming",
}


class BaselineType(Enum):
    """Where a task's due thresholds came from."""

    ESTIMATED = "estimated"  # creation defaults, never confirmed by a service
    CONFIRMED = "confirmed"  # set from a real logged service
