"""
Merging of personal and fleet record collections.

A user sees their own records plus, when they belong to a fleet, the
fleet's shared records. Both arrive independently and are merged into one
de-duplicated, sorted view every time either side changes.
"""

import logging
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from .service_log import ServiceLog
from .task import MaintenanceTask
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

T = TypeVar("T")

PERSONAL = "personal"
FLEET = "fleet"


def merge_by_id(*sources: Iterable[T]) -> List[T]:
    """Concatenate sources, keeping the first record seen for each id."""
    seen = set()
    merged = []
    for source in sources:
        for item in source:
            if item.id in seen:
                continue
            seen.add(item.id)
            merged.append(item)
    return merged


def merge_vehicles(*sources: Iterable[Vehicle]) -> List[Vehicle]:
    """Merged vehicles, newest first."""
    return sorted(merge_by_id(*sources), key=lambda v: v.created_at, reverse=True)


def merge_tasks(*sources: Iterable[MaintenanceTask]) -> List[MaintenanceTask]:
    """Merged tasks. Left unordered; the status engine sorts them."""
    return merge_by_id(*sources)


def merge_logs(*sources: Iterable[ServiceLog]) -> List[ServiceLog]:
    """Merged logs, most recent service first."""
    return sorted(merge_by_id(*sources), key=lambda l: l.date, reverse=True)


def resolve_active_vehicle_id(
    previous_id: Optional[str], vehicles: List[Vehicle]
) -> Optional[str]:
    """Keep the previous selection if it still exists, else the first vehicle."""
    if previous_id is not None and any(v.id == previous_id for v in vehicles):
        return previous_id
    if vehicles:
        return vehicles[0].id
    return None


Listener = Callable[[List[Any]], None]


class MergedCollection(Generic[T]):
    """
    Live merge of several named sources.

    Sources are merged in the order they were declared, so the first source
    wins id collisions. Every update re-runs the merge and notifies listeners.
    """

    def __init__(
        self,
        name: str,
        sources: Iterable[str] = (PERSONAL, FLEET),
        merge: Callable[..., List[T]] = merge_by_id,
    ):
        self.name = name
        self._merge = merge
        self._sources: Dict[str, List[T]] = {source: [] for source in sources}
        self._listeners: List[Listener] = []
        self.items: List[T] = []

    def update(self, source: str, items: Iterable[T]) -> List[T]:
        if source not in self._sources:
            raise KeyError(f"Unknown source '{source}' for {self.name}")
        self._sources[source] = list(items)
        return self._recompute()

    def fail(self, source: str, error: Exception) -> List[T]:
        """Treat a failed source as empty so the other sources still show."""
        logger.warning("%s %s source not available: %s", source.capitalize(), self.name, error)
        return self.update(source, [])

    def source(self, source: str) -> List[T]:
        return list(self._sources[source])

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _recompute(self) -> List[T]:
        self.items = self._merge(*self._sources.values())
        for listener in list(self._listeners):
            listener(self.items)
        return self.items
