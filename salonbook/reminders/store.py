"""Queries the reminder sweep runs against the scheduling table."""
from __future__ import annotations

from datetime import date, time

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Establishment, ReminderDelivery, Scheduling


def find_confirmed_in_window(
    target_date: date, lower_time: time, upper_time: time
) -> list[Scheduling]:
    """Return confirmed schedulings on ``target_date`` within the inclusive band.

    Service, establishment and the establishment owner are loaded in the same
    query, so reading them off the results costs no further round trips.
    """
    query = (
        Scheduling.query.options(
            joinedload(Scheduling.service),
            joinedload(Scheduling.establishment).joinedload(Establishment.owner),
        )
        .filter(
            Scheduling.scheduled_date == target_date,
            Scheduling.status == "confirmed",
            Scheduling.scheduled_time >= lower_time,
            Scheduling.scheduled_time <= upper_time,
        )
        .order_by(Scheduling.scheduled_time, Scheduling.scheduling_id)
    )
    return query.all()


def reminder_already_sent(scheduling_id: int, reminder_type: str) -> bool:
    return (
        db.session.query(ReminderDelivery.delivery_id)
        .filter_by(scheduling_id=scheduling_id, reminder_type=reminder_type)
        .first()
        is not None
    )


def record_reminder_sent(
    scheduling_id: int, reminder_type: str, recipient_id: int, commit: bool = True
) -> ReminderDelivery:
    delivery = ReminderDelivery(
        scheduling_id=scheduling_id,
        reminder_type=reminder_type,
        recipient_id=recipient_id,
    )
    db.session.add(delivery)
    if commit:
        db.session.commit()
    return delivery


def clear_reminder_deliveries(scheduling_id: int) -> int:
    """Forget reminders sent for a scheduling so a moved slot is reminded again.

    Runs in the caller's transaction.
    """
    return (
        ReminderDelivery.query.filter_by(scheduling_id=scheduling_id)
        .delete(synchronize_session=False)
    )
