#!/usr/bin/env python3
"""
Unified CLI for vehicle maintenance tracking.

Commands:
  status          - Show what maintenance is overdue, due soon, or upcoming
  vehicles        - List vehicles
  add-vehicle     - Register a vehicle with the default maintenance schedule
  update-odometer - Record the current odometer reading
  log             - Log a completed service
  history         - View service history
  costs           - Summarize maintenance spending
  convert-unit    - Switch a vehicle between miles and kilometers
  remove-vehicle  - Delete a vehicle with its tasks and history
  remove-log      - Delete a service log entry
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from garage import (
    DashboardTask,
    GarageError,
    MaintenanceTask,
    NotFoundError,
    OwnerType,
    ServiceLog,
    Session,
    Status,
    User,
    ValidationError,
    Vehicle,
    YamlDocumentStore,
    format_odometer,
    odometer_warnings,
)
from garage.config import get_settings
from garage.costs import cost_summary
from garage.defaults import load_defaults
from garage.loader import parse_timestamp

# =============================================================================
# Formatting helpers
# =============================================================================


def format_distance(value: Optional[float]) -> str:
    """Format an odometer value for display."""
    return f"{value:,.0f}" if value is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"${cost:,.2f}" if cost is not None else "-"


def format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value is not None else "-"


def format_remaining(item: DashboardTask) -> str:
    """Format remaining distance for display."""
    if item.miles_remaining is None:
        return "-"
    if item.miles_remaining < 0:
        return f"-{abs(item.miles_remaining):,.0f}"
    return f"{item.miles_remaining:,.0f}"


def format_time_remaining(item: DashboardTask) -> str:
    """Format remaining time for display (e.g., '3mo 15d' or '-2mo 5d')."""
    if item.days_remaining is None:
        return "-"

    days = abs(item.days_remaining)
    sign = "-" if item.days_remaining < 0 else ""
    months = days // 30
    if months > 0:
        return f"{sign}{months}mo {days % 30}d"
    return f"{sign}{days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def short_id(record_id: str) -> str:
    return record_id[:8]


def parse_date_option(value: str, option: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {option} value '{value}' (expected YYYY-MM-DD)") from e


# =============================================================================
# Lookup helpers
# =============================================================================


def find_vehicle(session: Session, ref: str) -> Vehicle:
    """Find a vehicle by id, unique id prefix, or name (case-insensitive)."""
    vehicle = session.find_vehicle(ref)
    if vehicle is not None:
        return vehicle
    matches = [v for v in session.vehicles if v.id.startswith(ref)]
    if not matches:
        matches = [v for v in session.vehicles if v.name.lower() == ref.lower()]
    if len(matches) == 1:
        return matches[0]
    if matches:
        raise NotFoundError(f"Vehicle reference '{ref}' is ambiguous")
    raise NotFoundError(f"Vehicle '{ref}' not found")


def find_task(session: Session, vehicle: Vehicle, ref: str) -> Optional[MaintenanceTask]:
    """Find one of a vehicle's tasks by id, id prefix, type id, or name."""
    tasks = session.tasks_for(vehicle.id)
    lowered = ref.lower()
    for task in tasks:
        if task.id == ref or (task.type_id or "").lower() == lowered or task.name.lower() == lowered:
            return task
    matches = [t for t in tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


# =============================================================================
# Status command
# =============================================================================


def make_status_table(items: List[DashboardTask], vehicles: List[Vehicle]) -> List[List[str]]:
    """Convert dashboard tasks to table rows."""
    units = {v.id: v.odometer_unit.value for v in vehicles}
    rows = []
    for item in items:
        task = item.task
        last_done = "-"
        if task.last_service_date or task.last_service_odometer:
            parts = []
            if task.last_service_date:
                parts.append(format_date(task.last_service_date))
            if task.last_service_odometer:
                parts.append(format_distance(task.last_service_odometer))
            last_done = " @ ".join(parts)
        elif task.is_estimated:
            last_done = "(estimated)"

        rows.append(
            [
                task.name,
                item.vehicle_name,
                last_done,
                format_distance(task.next_due_odometer),
                format_date(task.next_due_date),
                f"{format_remaining(item)} {units.get(task.vehicle_id, '')}".strip(),
                format_time_remaining(item),
            ]
        )
    return rows


def cmd_status(args, session: Session, now: datetime) -> int:
    """Show what maintenance is overdue, due soon, or upcoming."""
    items = session.get_dashboard_tasks(now)
    vehicles = session.vehicles
    if args.vehicle:
        vehicle = find_vehicle(session, args.vehicle)
        items = [i for i in items if i.vehicle_id == vehicle.id]
        vehicles = [vehicle]

    print(f"Vehicles: {len(vehicles)}")
    for vehicle in vehicles:
        print(f"  {vehicle.name}: {format_odometer(vehicle.current_odometer, vehicle.odometer_unit)}")
    print(f"Tasks: {len(items)}")
    print()

    headers = [
        "Task",
        "Vehicle",
        "Last Done",
        "Due (odo)",
        "Due (date)",
        "Remaining",
        "Remaining (time)",
    ]
    groups = [
        (Status.OVERDUE, "OVERDUE:"),
        (Status.DUE_SOON, "DUE SOON:"),
        (Status.UPCOMING, "UPCOMING:"),
    ]
    for status, title in groups:
        if args.status and args.status != status.label:
            continue
        group = [i for i in items if i.status == status]
        if group:
            print(title)
            print(tabulate(make_status_table(group, vehicles), headers=headers, tablefmt="simple"))
            print()

    settings = get_settings()
    stale = [
        v
        for v in session.odometer_reminders(now, settings.odometer_reminder_days)
        if v in vehicles
    ]
    if stale:
        print("ODOMETER NOT UPDATED RECENTLY:")
        for vehicle in stale:
            print(f"  {vehicle.name} (last update {format_date(vehicle.odometer_updated_at)})")
        print()

    return 0


# =============================================================================
# Vehicles commands
# =============================================================================


def cmd_vehicles(args, session: Session, now: datetime) -> int:
    """List vehicles."""
    if not session.vehicles:
        print("No vehicles found.")
        return 0

    rows = []
    for vehicle in session.vehicles:
        marker = "*" if vehicle.id == session.active_vehicle_id else ""
        rows.append(
            [
                marker,
                short_id(vehicle.id),
                vehicle.name,
                vehicle.vehicle_type.value,
                format_odometer(vehicle.current_odometer, vehicle.odometer_unit),
                vehicle.owner_type.value,
                format_date(vehicle.created_at),
            ]
        )
    headers = ["", "Id", "Name", "Type", "Odometer", "Owner", "Added"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_add_vehicle(args, session: Session, now: datetime) -> int:
    """Register a vehicle with the default maintenance schedule."""
    vehicle = session.create_vehicle_with_default_tasks(
        {
            "make": args.make,
            "model": args.model,
            "year": args.year,
            "current_odometer": args.odometer,
            "nickname": args.nickname,
            "vehicle_type": args.type,
            "trim": args.trim,
            "vin": args.vin,
            "odometer_unit": args.unit,
            "fleet_id": args.fleet_id,
        }
    )
    print(f"Added {vehicle.name} ({short_id(vehicle.id)})")
    print(f"  Odometer: {format_odometer(vehicle.current_odometer, vehicle.odometer_unit)}")
    print(f"  Tasks:    {len(session.tasks_for(vehicle.id))}")
    return 0


def cmd_update_odometer(args, session: Session, now: datetime) -> int:
    """Record the current odometer reading."""
    vehicle = find_vehicle(session, args.vehicle)
    unit = vehicle.odometer_unit

    print(f"Vehicle: {vehicle.name}")
    print(f"Current odometer: {format_odometer(vehicle.current_odometer, unit)}")
    print(f"New odometer:     {format_odometer(args.reading, unit)}")
    print()

    warnings = odometer_warnings(vehicle, args.reading, get_settings().odometer_jump_threshold)
    if warnings and not args.force:
        if "lower" in warnings:
            print("Warning: this reading is lower than the current reading. This might be a typo.")
        if "jump" in warnings:
            jump = args.reading - vehicle.current_odometer
            print(f"Warning: this is a jump of {format_odometer(jump, unit)}. This might be a typo.")
        print("Use --force to save anyway.")
        return 1

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    session.update_odometer(vehicle.id, args.reading)
    print("Odometer updated.")
    return 0


def cmd_convert_unit(args, session: Session, now: datetime) -> int:
    """Switch a vehicle between miles and kilometers."""
    vehicle = find_vehicle(session, args.vehicle)
    if vehicle.odometer_unit.value == args.unit:
        print(f"{vehicle.name} already uses {args.unit}.")
        return 0

    session.convert_vehicle_unit(vehicle.id, args.unit)
    converted = session.find_vehicle(vehicle.id)
    print(f"Converted {vehicle.name}:")
    print(f"  Before: {format_odometer(vehicle.current_odometer, vehicle.odometer_unit)}")
    print(f"  After:  {format_odometer(converted.current_odometer, converted.odometer_unit)}")
    return 0


def cmd_remove_vehicle(args, session: Session, now: datetime) -> int:
    """Delete a vehicle with its tasks and history."""
    vehicle = find_vehicle(session, args.vehicle)
    tasks = session.tasks_for(vehicle.id)
    logs = session.logs_for(vehicle.id)

    print(f"Removing {vehicle.name} with {len(tasks)} tasks and {len(logs)} service logs")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    session.remove_vehicle(vehicle.id)
    print("Vehicle removed.")
    return 0


# =============================================================================
# Log / History commands
# =============================================================================


def cmd_log(args, session: Session, now: datetime) -> int:
    """Log a completed service."""
    vehicle = find_vehicle(session, args.vehicle)
    task = find_task(session, vehicle, args.task)

    if task is None:
        print(f"Error: Unknown task '{args.task}' for {vehicle.name}")
        print("\nAvailable tasks:")
        for t in sorted(session.tasks_for(vehicle.id), key=lambda t: t.name):
            print(f"  {t.name}")
            print(f"    Id: {short_id(t.id)}  Type: {t.type_id or '-'}")
        return 1

    service_date = parse_date_option(args.date, "--date") if args.date else now
    odometer = args.odometer if args.odometer is not None else vehicle.current_odometer

    print(f"Adding service entry for {vehicle.name}:")
    print(f"  Task:     {task.name}")
    print(f"  Date:     {format_date(service_date)}")
    print(f"  Odometer: {format_odometer(odometer, vehicle.odometer_unit)}")
    if args.cost is not None:
        print(f"  Cost:     {format_cost(args.cost)}")
    if args.notes:
        print(f"  Notes:    {args.notes}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    session.log_service(
        {
            "vehicle_id": vehicle.id,
            "task_id": task.id,
            "task_name": task.name,
            "date": service_date,
            "odometer": odometer,
            "cost": args.cost,
            "notes": args.notes,
        }
    )
    print("Entry saved.")
    return 0


def make_history_table(logs: List[ServiceLog], session: Session) -> List[List[str]]:
    """Convert service logs to table rows."""
    rows = []
    for log in logs:
        vehicle = session.find_vehicle(log.vehicle_id)
        rows.append(
            [
                short_id(log.id),
                format_date(log.date),
                vehicle.name if vehicle else "Unknown",
                format_distance(log.odometer),
                log.task_name,
                log.category or "-",
                format_cost(log.cost),
                truncate(log.notes),
            ]
        )
    return rows


def cmd_history(args, session: Session, now: datetime) -> int:
    """View service history."""
    logs = session.logs

    if args.vehicle:
        vehicle = find_vehicle(session, args.vehicle)
        logs = [l for l in logs if l.vehicle_id == vehicle.id]

    if args.task:
        logs = [l for l in logs if args.task.lower() in l.task_name.lower()]

    if args.since:
        since = parse_date_option(args.since, "--since")
        logs = [l for l in logs if l.date >= since]

    if args.asc:
        logs = list(reversed(logs))

    total = sum(l.cost for l in logs if l.cost is not None and l.cost > 0)
    print(f"Total services: {len(session.logs)}")
    if args.vehicle or args.task or args.since:
        print(f"Showing: {len(logs)} (filtered)")
    if total > 0:
        print(f"Total cost: {format_cost(total)}")
    print()

    if not logs:
        print("No history entries found.")
        return 0

    headers = ["Id", "Date", "Vehicle", "Odometer", "Task", "Category", "Cost", "Notes"]
    print(tabulate(make_history_table(logs, session), headers=headers, tablefmt="simple"))
    return 0


def cmd_remove_log(args, session: Session, now: datetime) -> int:
    """Delete a service log entry."""
    matches = [l for l in session.logs if l.id.startswith(args.log_id)]
    if len(matches) != 1:
        print(f"Error: Service log '{args.log_id}' not found")
        return 1

    log = matches[0]
    print(f"Removing {log.task_name} on {format_date(log.date)}")
    session.remove_service_log(log.id)
    print("Entry removed.")
    return 0


# =============================================================================
# Costs command
# =============================================================================


def cmd_costs(args, session: Session, now: datetime) -> int:
    """Summarize maintenance spending."""
    vehicles = session.vehicles
    logs = session.logs
    if args.vehicle:
        vehicle = find_vehicle(session, args.vehicle)
        vehicles = [vehicle]
        logs = [l for l in logs if l.vehicle_id == vehicle.id]

    top_n = get_settings().top_categories
    summary = cost_summary(vehicles, logs, session.get_dashboard_tasks(now), now, top_n)

    print(f"Total spent:       {format_cost(summary.total)}")
    print(f"This month:        {format_cost(summary.monthly_total)}")
    print(f"Year to date:      {format_cost(summary.year_to_date_total)}")
    print(f"Avg per vehicle:   {format_cost(summary.average_per_vehicle)} (YTD)")
    print(f"Overdue tasks:     {summary.overdue_count}")
    print()

    if summary.categories:
        print("BY CATEGORY (YTD):")
        rows = [[category, format_cost(total)] for category, total in summary.categories]
        print(tabulate(rows, headers=["Category", "Total"], tablefmt="simple"))
        print()

    if summary.vehicles:
        print("BY VEHICLE (YTD):")
        rows = [
            [
                row.vehicle.name,
                format_cost(row.total),
                f"${row.cost_per_distance:.4f}/{row.vehicle.odometer_unit.value}",
            ]
            for row in summary.vehicles
        ]
        print(tabulate(rows, headers=["Vehicle", "Total", "Per Unit"], tablefmt="simple"))

    return 0


# =============================================================================
# Main
# =============================================================================

COMMANDS = {
    "status": cmd_status,
    "vehicles": cmd_vehicles,
    "add-vehicle": cmd_add_vehicle,
    "update-odometer": cmd_update_odometer,
    "log": cmd_log,
    "history": cmd_history,
    "costs": cmd_costs,
    "convert-unit": cmd_convert_unit,
    "remove-vehicle": cmd_remove_vehicle,
    "remove-log": cmd_remove_log,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle maintenance tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s garage.yaml --user me add-vehicle Subaru BRZ 2015 48000
  %(prog)s garage.yaml --user me status
  %(prog)s garage.yaml --user me status --status overdue
  %(prog)s garage.yaml --user me log BRZ oil_change --odometer 50000 --cost 45
  %(prog)s garage.yaml --user me update-odometer BRZ 50500
  %(prog)s garage.yaml --user me history --since 2024-01-01
  %(prog)s garage.yaml --user me --fleet acme costs
""",
    )
    parser.add_argument(
        "data_file",
        type=Path,
        nargs="?",
        help="Path to the data YAML file (default: GARAGE_DATA_FILE or garage.yaml)",
    )
    parser.add_argument("--user", type=str, required=True, help="Id of the signed-in user")
    parser.add_argument(
        "--fleet",
        type=str,
        help="Fleet id; includes the fleet's shared vehicles and records",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Show what maintenance is overdue, due soon, or upcoming"
    )
    status_parser.add_argument("--vehicle", type=str, help="Only this vehicle (id or name)")
    status_parser.add_argument(
        "--status",
        choices=[s.label for s in Status],
        help="Only tasks with this status",
    )

    # Vehicles subcommand
    subparsers.add_parser("vehicles", help="List vehicles")

    # Add vehicle subcommand
    add_parser = subparsers.add_parser(
        "add-vehicle", help="Register a vehicle with the default maintenance schedule"
    )
    add_parser.add_argument("make", type=str)
    add_parser.add_argument("model", type=str)
    add_parser.add_argument("year", type=int)
    add_parser.add_argument("odometer", type=int, help="Current odometer reading")
    add_parser.add_argument("--nickname", type=str)
    add_parser.add_argument("--type", choices=["car", "pickup", "semi"], default="car")
    add_parser.add_argument("--unit", choices=["mi", "km"], default="mi")
    add_parser.add_argument("--trim", type=str)
    add_parser.add_argument("--vin", type=str)
    add_parser.add_argument("--fleet-id", type=str, help="Add to this fleet instead of personal")

    # Update odometer subcommand
    odo_parser = subparsers.add_parser(
        "update-odometer", help="Record the current odometer reading"
    )
    odo_parser.add_argument("vehicle", type=str, help="Vehicle id or name")
    odo_parser.add_argument("reading", type=int, help="Current odometer reading")
    odo_parser.add_argument(
        "--force",
        action="store_true",
        help="Save even if the reading looks like a typo",
    )
    odo_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be updated without saving",
    )

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Log a completed service")
    log_parser.add_argument("vehicle", type=str, help="Vehicle id or name")
    log_parser.add_argument("task", type=str, help="Task name, type id, or id")
    log_parser.add_argument(
        "--date",
        type=str,
        help="Service date in YYYY-MM-DD format (default: today)",
    )
    log_parser.add_argument(
        "--odometer",
        type=int,
        help="Odometer at time of service (default: current reading)",
    )
    log_parser.add_argument("--cost", type=float, help="Cost of service")
    log_parser.add_argument("--notes", type=str, help="Notes about the service")
    log_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    # History subcommand
    history_parser = subparsers.add_parser("history", help="View service history")
    history_parser.add_argument("--vehicle", type=str, help="Only this vehicle (id or name)")
    history_parser.add_argument(
        "--task",
        type=str,
        help="Filter to task names containing text (case-insensitive, e.g., 'oil')",
    )
    history_parser.add_argument(
        "--since",
        type=str,
        help="Show only entries since date (YYYY-MM-DD)",
    )
    history_parser.add_argument(
        "--asc",
        action="store_true",
        help="Oldest first instead of newest first",
    )

    # Costs subcommand
    costs_parser = subparsers.add_parser("costs", help="Summarize maintenance spending")
    costs_parser.add_argument("--vehicle", type=str, help="Only this vehicle (id or name)")

    # Convert unit subcommand
    convert_parser = subparsers.add_parser(
        "convert-unit", help="Switch a vehicle between miles and kilometers"
    )
    convert_parser.add_argument("vehicle", type=str, help="Vehicle id or name")
    convert_parser.add_argument("unit", choices=["mi", "km"])

    # Remove vehicle subcommand
    remove_parser = subparsers.add_parser(
        "remove-vehicle", help="Delete a vehicle with its tasks and history"
    )
    remove_parser.add_argument("vehicle", type=str, help="Vehicle id or name")
    remove_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be removed without deleting",
    )

    # Remove log subcommand
    remove_log_parser = subparsers.add_parser("remove-log", help="Delete a service log entry")
    remove_log_parser.add_argument("log_id", type=str, help="Log id or id prefix")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    data_file = args.data_file or settings.data_file
    if args.command != "add-vehicle" and not data_file.exists():
        print(f"Error: File not found: {data_file}")
        return 1

    if args.fleet:
        user = User(args.user, account_type=OwnerType.FLEET, fleet_id=args.fleet)
    else:
        user = User(args.user)

    store = YamlDocumentStore(data_file)
    now = datetime.now(timezone.utc)
    try:
        with Session(store, user, defaults=load_defaults(settings.defaults_file)) as session:
            return COMMANDS[args.command](args, session, now)
    except GarageError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
