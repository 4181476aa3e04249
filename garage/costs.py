"""Cost and usage reducers over service logs."""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .dashboard_task import DashboardTask
from .service_log import ServiceLog
from .status import Status
from .vehicle import Vehicle

DEFAULT_CATEGORY = "Other"


def logs_with_cost(logs: Iterable[ServiceLog]) -> List[ServiceLog]:
    return [log for log in logs if log.cost is not None and log.cost > 0]


def total_cost(logs: Iterable[ServiceLog]) -> float:
    """Sum of all positive recorded costs."""
    return sum(log.cost for log in logs_with_cost(logs))


def category_breakdown(
    logs: Iterable[ServiceLog], top_n: Optional[int] = None
) -> List[Tuple[str, float]]:
    """Cost per category, largest first. Uncategorized logs count as 'Other'."""
    totals: Dict[str, float] = defaultdict(float)
    for log in logs_with_cost(logs):
        totals[log.category or DEFAULT_CATEGORY] += log.cost
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return ranked[:top_n] if top_n is not None else ranked


def start_of_month(now: datetime) -> datetime:
    return now + relativedelta(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_year(now: datetime) -> datetime:
    return now + relativedelta(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def logs_since(logs: Iterable[ServiceLog], start: datetime) -> List[ServiceLog]:
    return [log for log in logs if log.date >= start]


def monthly_total(logs: Iterable[ServiceLog], now: datetime) -> float:
    """Spend in the current calendar month to date."""
    return total_cost(logs_since(logs, start_of_month(now)))


def year_to_date_total(logs: Iterable[ServiceLog], now: datetime) -> float:
    return total_cost(logs_since(logs, start_of_year(now)))


def cost_per_distance(vehicle: Vehicle, logs: Iterable[ServiceLog]) -> float:
    """
    Cost of the vehicle's logs per odometer unit.

    Logs for other vehicles are ignored. Returns 0 for a zero odometer.
    """
    if vehicle.current_odometer == 0:
        return 0
    cost = total_cost(log for log in logs if log.vehicle_id == vehicle.id)
    return cost / vehicle.current_odometer


class VehicleCost(NamedTuple):
    vehicle: Vehicle
    total: float
    cost_per_distance: float


def vehicle_costs(vehicles: Iterable[Vehicle], logs: Iterable[ServiceLog]) -> List[VehicleCost]:
    """Per-vehicle spend, most expensive first."""
    logs = list(logs)
    rows = []
    for vehicle in vehicles:
        own = [log for log in logs if log.vehicle_id == vehicle.id]
        rows.append(VehicleCost(vehicle, total_cost(own), cost_per_distance(vehicle, own)))
    return sorted(rows, key=lambda row: row.total, reverse=True)


class CostSummary(NamedTuple):
    total: float
    monthly_total: float
    year_to_date_total: float
    average_per_vehicle: float
    overdue_count: int
    categories: List[Tuple[str, float]]
    vehicles: List[VehicleCost]


def cost_summary(
    vehicles: Iterable[Vehicle],
    logs: Iterable[ServiceLog],
    tasks: Iterable[DashboardTask],
    now: datetime,
    top_n: Optional[int] = None,
) -> CostSummary:
    """
    Overview figures for a set of vehicles.

    Category and per-vehicle figures cover the year to date, as does the
    per-vehicle average.
    """
    vehicles = list(vehicles)
    logs = list(logs)
    ytd_logs = logs_since(logs, start_of_year(now))
    ytd = total_cost(ytd_logs)
    return CostSummary(
        total=total_cost(logs),
        monthly_total=monthly_total(logs, now),
        year_to_date_total=ytd,
        average_per_vehicle=ytd / len(vehicles) if vehicles else 0,
        overdue_count=sum(1 for t in tasks if t.status == Status.OVERDUE),
        categories=category_breakdown(ytd_logs, top_n),
        vehicles=vehicle_costs(vehicles, ytd_logs),
    )
