"""Flask JSON API for vehicle maintenance tracking."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request

from garage import (
    DashboardTask,
    DocumentStore,
    GarageError,
    NotAuthenticatedError,
    NotFoundError,
    OwnerType,
    Session,
    StorageError,
    User,
    ValidationError,
    YamlDocumentStore,
    odometer_warnings,
)
from garage.config import Settings, get_settings
from garage.costs import CostSummary
from garage.defaults import load_defaults
from garage.loader import log_to_dict, task_to_dict, vehicle_to_dict

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotAuthenticatedError: 401,
    NotFoundError: 404,
    ValidationError: 400,
    StorageError: 503,
}

# Request body keys (camelCase) to Session field names.
VEHICLE_FIELDS = {
    "make": "make",
    "model": "model",
    "year": "year",
    "currentOdometer": "current_odometer",
    "nickname": "nickname",
    "vehicleType": "vehicle_type",
    "trim": "trim",
    "vin": "vin",
    "odometerUnit": "odometer_unit",
    "ownerType": "owner_type",
    "fleetId": "fleet_id",
}

LOG_FIELDS = {
    "vehicleId": "vehicle_id",
    "taskId": "task_id",
    "taskName": "task_name",
    "category": "category",
    "date": "date",
    "odometer": "odometer",
    "cost": "cost",
    "notes": "notes",
    "receiptUri": "receipt_uri",
    "fleetId": "fleet_id",
    "ownerType": "owner_type",
}


# =============================================================================
# Serialization
# =============================================================================


def dashboard_task_to_dict(item: DashboardTask) -> Dict[str, Any]:
    d = task_to_dict(item.task)
    d["status"] = item.status.label
    d["vehicleName"] = item.vehicle_name
    d["milesRemaining"] = item.miles_remaining
    d["daysRemaining"] = item.days_remaining
    return d


def cost_summary_to_dict(summary: CostSummary) -> Dict[str, Any]:
    return {
        "total": summary.total,
        "monthlyTotal": summary.monthly_total,
        "yearToDateTotal": summary.year_to_date_total,
        "averagePerVehicle": summary.average_per_vehicle,
        "overdueCount": summary.overdue_count,
        "categories": [{"category": c, "total": t} for c, t in summary.categories],
        "vehicles": [
            {
                "vehicleId": row.vehicle.id,
                "name": row.vehicle.name,
                "total": row.total,
                "costPerDistance": row.cost_per_distance,
            }
            for row in summary.vehicles
        ],
    }


def _request_fields(mapping: Dict[str, str]) -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return {name: body[key] for key, name in mapping.items() if key in body}


# =============================================================================
# Request helpers
# =============================================================================


def current_user() -> User:
    """Signed-in user from the X-User-Id and X-Fleet-Id headers."""
    user_id = request.headers.get("X-User-Id")
    if not user_id:
        raise NotAuthenticatedError("User not authenticated")
    fleet_id = request.headers.get("X-Fleet-Id")
    if fleet_id:
        return User(user_id, account_type=OwnerType.FLEET, fleet_id=fleet_id)
    return User(user_id)


def open_session() -> Session:
    return Session(
        current_app.config["STORE"],
        current_user(),
        defaults=current_app.config["DEFAULTS"],
    )


def handle_garage_error(e: GarageError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(e, cls)), 500)
    if status >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.path, e)
    return jsonify({"error": str(e)}), status


# =============================================================================
# App factory
# =============================================================================


def create_app(store: Optional[DocumentStore] = None, settings: Optional[Settings] = None) -> Flask:
    """Build the API app over store (default: the configured YAML data file)."""
    settings = settings or get_settings()

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["SETTINGS"] = settings
    app.config["STORE"] = store if store is not None else YamlDocumentStore(settings.data_file)
    app.config["DEFAULTS"] = load_defaults(settings.defaults_file)
    app.register_error_handler(GarageError, handle_garage_error)

    @app.route("/api/vehicles", methods=["GET"])
    def list_vehicles():
        """Visible vehicles, newest first, with the active vehicle id."""
        with open_session() as session:
            return jsonify(
                {
                    "vehicles": [vehicle_to_dict(v) for v in session.vehicles],
                    "activeVehicleId": session.active_vehicle_id,
                }
            )

    @app.route("/api/vehicles", methods=["POST"])
    def add_vehicle():
        data = _request_fields(VEHICLE_FIELDS)
        with open_session() as session:
            vehicle = session.create_vehicle_with_default_tasks(data)
            tasks = session.tasks_for(vehicle.id)
            return (
                jsonify(
                    {
                        "vehicle": vehicle_to_dict(vehicle),
                        "tasks": [task_to_dict(t) for t in tasks],
                    }
                ),
                201,
            )

    @app.route("/api/vehicles/<vehicle_id>/odometer", methods=["POST"])
    def update_odometer(vehicle_id: str):
        body = request.get_json(silent=True) or {}
        new_value = body.get("odometer")
        if isinstance(new_value, bool) or not isinstance(new_value, (int, float)):
            raise ValidationError("odometer must be a number")
        with open_session() as session:
            vehicle = session.find_vehicle(vehicle_id)
            if vehicle is None:
                raise NotFoundError(f"Vehicle '{vehicle_id}' not found")
            warnings = odometer_warnings(vehicle, new_value, settings.odometer_jump_threshold)
            session.update_odometer(vehicle_id, new_value)
            return jsonify(
                {
                    "vehicle": vehicle_to_dict(session.find_vehicle(vehicle_id)),
                    "warnings": warnings,
                }
            )

    @app.route("/api/vehicles/<vehicle_id>", methods=["DELETE"])
    def remove_vehicle(vehicle_id: str):
        with open_session() as session:
            session.remove_vehicle(vehicle_id)
        return "", 204

    @app.route("/api/dashboard", methods=["GET"])
    def dashboard():
        """Task statuses, most urgent first, plus odometer reminders."""
        now = datetime.now(timezone.utc)
        vehicle_id = request.args.get("vehicle")
        with open_session() as session:
            items = session.get_dashboard_tasks(now)
            if vehicle_id:
                items = [i for i in items if i.vehicle_id == vehicle_id]
            reminders = session.odometer_reminders(now, settings.odometer_reminder_days)
            return jsonify(
                {
                    "tasks": [dashboard_task_to_dict(i) for i in items],
                    "odometerReminders": [v.id for v in reminders],
                }
            )

    @app.route("/api/logs", methods=["GET"])
    def list_logs():
        vehicle_id = request.args.get("vehicle")
        with open_session() as session:
            logs = session.logs_for(vehicle_id) if vehicle_id else session.logs
            return jsonify({"logs": [log_to_dict(l) for l in logs]})

    @app.route("/api/logs", methods=["POST"])
    def add_log():
        data = _request_fields(LOG_FIELDS)
        with open_session() as session:
            log = session.log_service(data)
            return jsonify({"log": log_to_dict(log)}), 201

    @app.route("/api/logs/<log_id>", methods=["DELETE"])
    def remove_log(log_id: str):
        with open_session() as session:
            session.remove_service_log(log_id)
        return "", 204

    @app.route("/api/costs", methods=["GET"])
    def costs():
        with open_session() as session:
            summary = session.cost_summary(top_n=settings.top_categories)
            return jsonify(cost_summary_to_dict(summary))

    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    create_app(settings=settings).run(debug=False)


if __name__ == "__main__":
    main()
