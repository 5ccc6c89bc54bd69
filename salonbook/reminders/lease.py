"""Per reminder-type lease that keeps two sweeps from overlapping."""
from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SweepLease, utc_now


def _now():
    # Stored naive so comparisons behave the same on SQLite and Postgres.
    return utc_now().replace(tzinfo=None)


def acquire_lease(reminder_type: str, holder: str, ttl_seconds: int) -> bool:
    """Try to take the lease for ``reminder_type``. Expired leases are reclaimed."""
    now = _now()
    SweepLease.query.filter(
        SweepLease.reminder_type == reminder_type,
        SweepLease.expires_at <= now,
    ).delete(synchronize_session=False)
    db.session.add(
        SweepLease(
            reminder_type=reminder_type,
            holder=holder,
            acquired_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
    )
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return False
    return True


def release_lease(reminder_type: str, holder: str) -> None:
    SweepLease.query.filter_by(reminder_type=reminder_type, holder=holder).delete(
        synchronize_session=False
    )
    db.session.commit()


@contextmanager
def sweep_lease(reminder_type: str, ttl_seconds: int) -> Iterator[bool]:
    """Yield True while holding the lease, False if another run holds it."""
    holder = uuid.uuid4().hex
    acquired = acquire_lease(reminder_type, holder, ttl_seconds)
    try:
        yield acquired
    finally:
        if acquired:
            db.session.rollback()
            release_lease(reminder_type, holder)
