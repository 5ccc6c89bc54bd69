"""HTTP routes for the salon scheduling backend."""
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from .directory import get_user, resolve_owner
from .errors import (DispatchError, InvalidStatusTransition, ResolutionError,
                     SlotConflict)
from .extensions import db
from .models import (SCHEDULING_STATUSES, Establishment, Notification,
                     Scheduling, Service)
from .notifications import get_notifier
from .reminders.store import clear_reminder_deliveries
from .scheduling import validate_status_transition, validate_unique_slot

bp = Blueprint("api", __name__)


def register_routes(app: Flask) -> None:
    app.register_blueprint(bp)


def _parse_date(value: object):
    return datetime.strptime(str(value), "%Y-%m-%d").date()


def _parse_time(value: object):
    return datetime.strptime(str(value), "%H:%M").time()


def _notify_owner(scheduling: Scheduling, send) -> None:
    """Send a notice to the establishment owner; failures never undo the booking."""
    try:
        owner = resolve_owner(scheduling)
    except ResolutionError as exc:
        current_app.logger.info("No owner to notify for scheduling %s: %s", scheduling.scheduling_id, exc)
        return
    try:
        send(owner)
    except DispatchError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to notify owner %s about scheduling %s: %s",
            owner.user_id,
            scheduling.scheduling_id,
            exc,
        )


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database."""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


@bp.get("/schedulings")
def list_schedulings() -> tuple[dict[str, object], int]:
    """List schedulings ordered by date and time.
    ---
    tags:
      - Schedulings
    parameters:
      - name: establishment_id
        in: query
        type: integer
      - name: service_id
        in: query
        type: integer
      - name: status
        in: query
        type: string
        enum: [pending, confirmed, completed, cancelled]
      - name: from
        in: query
        type: string
        description: First date to include (YYYY-MM-DD)
      - name: to
        in: query
        type: string
        description: Last date to include (YYYY-MM-DD)
    responses:
      200:
        description: List of schedulings
      400:
        description: Invalid filter
      500:
        description: Database error
    """
    try:
        query = Scheduling.query.options(
            joinedload(Scheduling.service),
            joinedload(Scheduling.establishment),
        )

        establishment_id = request.args.get("establishment_id", type=int)
        if establishment_id:
            query = query.filter(Scheduling.establishment_id == establishment_id)

        service_id = request.args.get("service_id", type=int)
        if service_id:
            query = query.filter(Scheduling.service_id == service_id)

        status = request.args.get("status", "").strip()
        if status:
            if status not in SCHEDULING_STATUSES:
                return jsonify({"error": "invalid_status", "message": f"Unknown status: {status}"}), 400
            query = query.filter(Scheduling.status == status)

        if request.args.get("from"):
            query = query.filter(Scheduling.scheduled_date >= _parse_date(request.args["from"]))
        if request.args.get("to"):
            query = query.filter(Scheduling.scheduled_date <= _parse_date(request.args["to"]))

        schedulings = query.order_by(
            Scheduling.scheduled_date, Scheduling.scheduled_time, Scheduling.scheduling_id
        ).all()
    except ValueError:
        return jsonify({"error": "invalid_input", "message": "Dates must be YYYY-MM-DD"}), 400
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch schedulings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"schedulings": [s.to_dict() for s in schedulings]}), 200


@bp.post("/schedulings")
def create_scheduling() -> tuple[dict[str, object], int]:
    """Book a scheduling and notify the establishment owner.
    ---
    tags:
      - Schedulings
    parameters:
      - in: body
        name: body
        required: true
        schema:
          required: [scheduled_date, scheduled_time, service_id, establishment_id, client_name]
          properties:
            scheduled_date:
              type: string
              example: "2024-03-11"
            scheduled_time:
              type: string
              example: "08:00"
            service_id:
              type: integer
            establishment_id:
              type: integer
            client_name:
              type: string
            client_email:
              type: string
            client_phone:
              type: string
            status:
              type: string
              enum: [pending, confirmed, completed, cancelled]
    responses:
      201:
        description: Scheduling created
      400:
        description: Invalid input
      404:
        description: Service or establishment not found
      409:
        description: Slot already taken
      422:
        description: Service does not belong to the establishment
      500:
        description: Database error
    """
    data = request.get_json(silent=True) or {}

    required = ["scheduled_date", "scheduled_time", "service_id", "establishment_id", "client_name"]
    missing = [name for name in required if not data.get(name)]
    if missing:
        return (
            jsonify({"error": "invalid_input", "message": f"Missing fields: {', '.join(missing)}"}),
            400,
        )

    try:
        scheduled_date = _parse_date(data["scheduled_date"])
        scheduled_time = _parse_time(data["scheduled_time"])
    except ValueError:
        return (
            jsonify({"error": "invalid_input", "message": "Use YYYY-MM-DD for dates and HH:MM for times"}),
            400,
        )

    status = data.get("status") or "pending"
    if status not in SCHEDULING_STATUSES:
        return (
            jsonify({"error": "invalid_status", "message": f"Status must be one of: {', '.join(SCHEDULING_STATUSES)}"}),
            400,
        )

    try:
        establishment = db.session.get(Establishment, data["establishment_id"])
        service = db.session.get(Service, data["service_id"])
        if establishment is None or service is None:
            return jsonify({"error": "not_found", "message": "Service or establishment not found"}), 404

        if int(service.establishment_id) != int(establishment.establishment_id):
            return (
                jsonify({
                    "error": "service_mismatch",
                    "message": "The selected service does not belong to this establishment.",
                }),
                422,
            )

        try:
            validate_unique_slot(scheduled_date, scheduled_time, service, establishment.establishment_id)
        except SlotConflict as exc:
            return jsonify({"error": "slot_conflict", "message": str(exc)}), 409

        scheduling = Scheduling(
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            status=status,
            service=service,
            establishment=establishment,
            client_name=str(data["client_name"]).strip(),
            client_email=data.get("client_email"),
            client_phone=data.get("client_phone"),
        )
        db.session.add(scheduling)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create scheduling", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    notifier = get_notifier()
    _notify_owner(scheduling, lambda owner: notifier.send_confirmation(scheduling, owner))

    return jsonify({"scheduling": scheduling.to_dict()}), 201


@bp.get("/schedulings/<int:scheduling_id>")
def get_scheduling(scheduling_id: int) -> tuple[dict[str, object], int]:
    """Return a single scheduling."""
    try:
        scheduling = db.session.get(Scheduling, scheduling_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch scheduling", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if scheduling is None:
        return jsonify({"error": "not_found", "message": "Scheduling not found"}), 404
    return jsonify({"scheduling": scheduling.to_dict()}), 200


@bp.put("/schedulings/<int:scheduling_id>")
def update_scheduling(scheduling_id: int) -> tuple[dict[str, object], int]:
    """Reschedule or edit a scheduling.

    Fields left out keep their current value. Moving the date or time clears
    the reminders already sent, so the new slot is reminded again.
    ---
    tags:
      - Schedulings
    parameters:
      - in: path
        name: scheduling_id
        required: true
        type: integer
      - in: body
        name: body
        schema:
          properties:
            scheduled_date:
              type: string
              example: "2024-03-12"
            scheduled_time:
              type: string
              example: "14:00"
            service_id:
              type: integer
            establishment_id:
              type: integer
            client_name:
              type: string
            client_email:
              type: string
            client_phone:
              type: string
            status:
              type: string
              enum: [pending, confirmed, completed, cancelled]
    responses:
      200:
        description: Scheduling updated
      400:
        description: Invalid input, status or transition
      404:
        description: Scheduling, service or establishment not found
      409:
        description: Slot already taken
      422:
        description: Service does not belong to the establishment
      500:
        description: Database error
    """
    data = request.get_json(silent=True) or {}

    try:
        scheduled_date = _parse_date(data["scheduled_date"]) if data.get("scheduled_date") else None
        scheduled_time = _parse_time(data["scheduled_time"]) if data.get("scheduled_time") else None
    except ValueError:
        return (
            jsonify({"error": "invalid_input", "message": "Use YYYY-MM-DD for dates and HH:MM for times"}),
            400,
        )

    if "client_name" in data and not str(data["client_name"] or "").strip():
        return jsonify({"error": "invalid_input", "message": "client_name cannot be empty"}), 400

    new_status = data.get("status")
    if new_status is not None and new_status not in SCHEDULING_STATUSES:
        return (
            jsonify({"error": "invalid_status", "message": f"Status must be one of: {', '.join(SCHEDULING_STATUSES)}"}),
            400,
        )

    try:
        scheduling = db.session.get(Scheduling, scheduling_id)
        if scheduling is None:
            return jsonify({"error": "not_found", "message": "Scheduling not found"}), 404

        old_status = scheduling.status
        new_status = new_status or old_status
        try:
            validate_status_transition(old_status, new_status)
        except InvalidStatusTransition as exc:
            return jsonify({"error": "invalid_transition", "message": str(exc)}), 400

        service = db.session.get(Service, data["service_id"]) if data.get("service_id") else scheduling.service
        establishment_id = data.get("establishment_id") or scheduling.establishment_id
        establishment = db.session.get(Establishment, establishment_id) if establishment_id else None
        if establishment is None or service is None:
            return jsonify({"error": "not_found", "message": "Service or establishment not found"}), 404

        if int(service.establishment_id) != int(establishment.establishment_id):
            return (
                jsonify({
                    "error": "service_mismatch",
                    "message": "The selected service does not belong to this establishment.",
                }),
                422,
            )

        new_date = scheduled_date or scheduling.scheduled_date
        new_time = scheduled_time or scheduling.scheduled_time
        slot_moved = (new_date, new_time) != (scheduling.scheduled_date, scheduling.scheduled_time)

        # A cancelled booking frees its slot, so it never collides.
        if new_status != "cancelled":
            try:
                validate_unique_slot(
                    new_date, new_time, service, establishment.establishment_id, ignore_id=scheduling_id
                )
            except SlotConflict as exc:
                return jsonify({"error": "slot_conflict", "message": str(exc)}), 409

        scheduling.scheduled_date = new_date
        scheduling.scheduled_time = new_time
        scheduling.service = service
        scheduling.establishment = establishment
        scheduling.status = new_status
        if "client_name" in data:
            scheduling.client_name = str(data["client_name"]).strip()
        if "client_email" in data:
            scheduling.client_email = data["client_email"]
        if "client_phone" in data:
            scheduling.client_phone = data["client_phone"]

        if slot_moved:
            cleared = clear_reminder_deliveries(scheduling_id)
            if cleared:
                current_app.logger.info(
                    "Scheduling %s moved; cleared %s sent reminder(s)", scheduling_id, cleared
                )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update scheduling", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if new_status != old_status:
        notifier = get_notifier()
        _notify_owner(
            scheduling,
            lambda owner: notifier.send_status_change(scheduling, old_status, new_status, owner),
        )

    return jsonify({"scheduling": scheduling.to_dict()}), 200


@bp.put("/schedulings/<int:scheduling_id>/status")
def update_scheduling_status(scheduling_id: int) -> tuple[dict[str, object], int]:
    """Move a scheduling through its lifecycle.

    Status only moves forward (pending -> confirmed -> completed); cancelling
    is allowed from pending or confirmed. The owner is notified of changes.
    ---
    tags:
      - Schedulings
    parameters:
      - in: path
        name: scheduling_id
        required: true
        type: integer
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [pending, confirmed, completed, cancelled]
    responses:
      200:
        description: Status updated
      400:
        description: Invalid status or transition
      404:
        description: Scheduling not found
      500:
        description: Database error
    """
    data = request.get_json(silent=True) or {}
    if "status" not in data:
        return jsonify({"error": "invalid_input", "message": "status is required"}), 400

    new_status = data["status"]
    if new_status not in SCHEDULING_STATUSES:
        return (
            jsonify({"error": "invalid_status", "message": f"Status must be one of: {', '.join(SCHEDULING_STATUSES)}"}),
            400,
        )

    try:
        scheduling = db.session.get(Scheduling, scheduling_id)
        if scheduling is None:
            return jsonify({"error": "not_found", "message": "Scheduling not found"}), 404

        old_status = scheduling.status
        try:
            validate_status_transition(old_status, new_status)
        except InvalidStatusTransition as exc:
            return jsonify({"error": "invalid_transition", "message": str(exc)}), 400

        scheduling.status = new_status
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update scheduling status", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if new_status != old_status:
        notifier = get_notifier()
        _notify_owner(
            scheduling,
            lambda owner: notifier.send_status_change(scheduling, old_status, new_status, owner),
        )

    return jsonify({"scheduling": scheduling.to_dict()}), 200


@bp.get("/users/<int:user_id>/notifications")
def get_notifications(user_id: int) -> tuple[dict[str, object], int]:
    """Get a user's notifications, newest first, with pagination.
    ---
    tags:
      - Notifications
    parameters:
      - name: user_id
        in: path
        type: integer
        required: true
      - name: page
        in: query
        type: integer
        default: 1
      - name: limit
        in: query
        type: integer
        default: 20
        maximum: 50
      - name: unread_only
        in: query
        type: boolean
        default: false
    responses:
      200:
        description: List of notifications with pagination
      400:
        description: Invalid parameters
      404:
        description: User not found
      500:
        description: Database error
    """
    try:
        page = max(1, int(request.args.get("page", 1)))
        limit = min(50, max(1, int(request.args.get("limit", 20))))
    except ValueError as exc:
        current_app.logger.warning(f"Invalid pagination parameters: {exc}")
        return jsonify({"error": "invalid_input", "message": "page and limit must be integers"}), 400
    unread_only = request.args.get("unread_only", "false").lower() == "true"

    try:
        if get_user(user_id) is None:
            return jsonify({"error": "not_found", "message": "User not found"}), 404

        query = Notification.query.filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.notification_id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch notifications", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "notifications": [n.to_dict() for n in notifications],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }),
        200,
    )
