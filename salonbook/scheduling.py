"""Booking rules: status lifecycle and slot collisions."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import joinedload

from .errors import InvalidStatusTransition, SlotConflict
from .models import SCHEDULING_STATUSES, Scheduling, Service

# Forward-only lifecycle; cancellation only from pending or confirmed.
ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "completed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# Every booking is assumed to take one hour when checking overlaps.
SLOT_LENGTH = timedelta(hours=1)


def can_transition(current: str, new: str) -> bool:
    if new not in SCHEDULING_STATUSES:
        return False
    return new == current or new in ALLOWED_TRANSITIONS.get(current, set())


def validate_status_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidStatusTransition(current, new)


def find_slot_conflict(
    scheduled_date: date,
    scheduled_time: time,
    service: Service,
    establishment_id: int,
    ignore_id: int | None = None,
) -> str | None:
    """Return a message describing the first collision, or None if the slot is free."""
    exact = Scheduling.query.filter(
        Scheduling.scheduled_date == scheduled_date,
        Scheduling.scheduled_time == scheduled_time,
        Scheduling.service_id == service.service_id,
        Scheduling.status != "cancelled",
    )
    if ignore_id is not None:
        exact = exact.filter(Scheduling.scheduling_id != ignore_id)
    if exact.first() is not None:
        return "A scheduling already exists for this service at this time."

    same_day = Scheduling.query.options(joinedload(Scheduling.service)).filter(
        Scheduling.scheduled_date == scheduled_date,
        Scheduling.establishment_id == establishment_id,
        Scheduling.status != "cancelled",
    )
    if ignore_id is not None:
        same_day = same_day.filter(Scheduling.scheduling_id != ignore_id)

    start = datetime.combine(scheduled_date, scheduled_time)
    end = start + SLOT_LENGTH
    for existing in same_day.all():
        existing_start = datetime.combine(existing.scheduled_date, existing.scheduled_time)
        existing_end = existing_start + SLOT_LENGTH
        if not (start < existing_end and end > existing_start):
            continue

        if service.user_id:
            if existing.service and existing.service.user_id == service.user_id:
                return "This time conflicts with another scheduling for the same employee."
        else:
            return "This time conflicts with another scheduling at the establishment."
    return None


def validate_unique_slot(
    scheduled_date: date,
    scheduled_time: time,
    service: Service,
    establishment_id: int,
    ignore_id: int | None = None,
) -> None:
    message = find_slot_conflict(scheduled_date, scheduled_time, service, establishment_id, ignore_id)
    if message:
        raise SlotConflict(message)
