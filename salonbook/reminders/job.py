"""One reminder sweep for a lead-time class.

The sweep validates the type, takes the per-type lease, computes the window
from ``now``, loads matching confirmed schedulings and dispatches one
reminder per scheduling to the establishment owner. Failures on a single
record are logged and counted, never raised.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..directory import resolve_owner
from ..errors import (DispatchError, PermanentDispatchError, ResolutionError,
                      TransientDispatchError)
from ..extensions import db
from ..models import Scheduling, User
from ..notifications import Notifier, OutgoingMessage, get_notifier
from .lease import sweep_lease
from .store import (find_confirmed_in_window, record_reminder_sent,
                    reminder_already_sent)
from .window import (ReminderWindow, business_now, compute_reminder_window,
                     validate_reminder_type)


@dataclass
class SweepResult:
    reminder_type: str
    window: ReminderWindow | None = None
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    already_sent: int = 0
    timed_out: bool = False
    skipped_locked: bool = False

    def summary(self) -> str:
        if self.skipped_locked:
            return f"Another {self.reminder_type} sweep is running; sent 0 reminder(s)."
        line = f"Sent {self.sent} reminder(s) of type {self.reminder_type}."
        extras = []
        if self.skipped:
            extras.append(f"{self.skipped} skipped")
        if self.failed:
            extras.append(f"{self.failed} failed")
        if self.already_sent:
            extras.append(f"{self.already_sent} already sent")
        if self.timed_out:
            extras.append("timed out")
        if extras:
            line = f"{line} ({', '.join(extras)})"
        return line


def dispatch_with_retry(
    notifier: Notifier,
    scheduling: Scheduling,
    reminder_type: str,
    owner: User,
    attempts: int,
    backoff_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> OutgoingMessage:
    """Send one reminder, retrying transient failures with exponential backoff.

    The in-app copy is left uncommitted for the caller to store together with
    the ledger entry.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return notifier.send_reminder(scheduling, reminder_type, owner, commit=False)
        except TransientDispatchError as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            delay = backoff_seconds * (2 ** (attempt - 1))
            current_app.logger.warning(
                "Reminder for scheduling %s failed (attempt %s/%s), retrying in %.1fs: %s",
                scheduling.scheduling_id,
                attempt,
                attempts,
                delay,
                exc,
            )
            sleep(delay)
    raise AssertionError("unreachable")


def _store_delivery(scheduling: Scheduling, reminder_type: str, owner: User, dedupe: bool) -> None:
    """Commit the in-app copy and, with dedupe on, the ledger entry in one go.

    The reminder has already gone out at this point, so when the in-app copy
    cannot be stored the ledger entry is still written on its own.
    """
    logger = current_app.logger
    if dedupe:
        record_reminder_sent(scheduling.scheduling_id, reminder_type, owner.user_id, commit=False)
    try:
        db.session.commit()
        return
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("In-app reminder for scheduling %s not stored", scheduling.scheduling_id, exc_info=exc)

    if not dedupe:
        return
    try:
        record_reminder_sent(scheduling.scheduling_id, reminder_type, owner.user_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Reminder for scheduling %s sent but not recorded", scheduling.scheduling_id, exc_info=exc)


def send_scheduling_reminders(
    reminder_type: str,
    now: datetime | None = None,
    notifier: Notifier | None = None,
    dedupe: bool | None = None,
    timeout_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SweepResult:
    """Run one sweep. Must be called inside an application context.

    Raises ``InvalidReminderType`` before touching the database when
    ``reminder_type`` is not ``24h`` or ``1h``.
    """
    reminder_type = validate_reminder_type(reminder_type)

    config = current_app.config
    logger = current_app.logger
    if dedupe is None:
        dedupe = config.get("REMINDER_DEDUPE_ENABLED", True)
    if timeout_seconds is None:
        timeout_seconds = config.get("REMINDER_SWEEP_TIMEOUT_SECONDS", 300)
    notifier = notifier or get_notifier()
    attempts = config.get("REMINDER_RETRY_ATTEMPTS", 3)
    backoff = config.get("REMINDER_RETRY_BACKOFF_SECONDS", 1.0)
    tz_name = config.get("BUSINESS_TIMEZONE", "America/Sao_Paulo")

    result = SweepResult(reminder_type=reminder_type)

    with sweep_lease(reminder_type, config.get("REMINDER_LEASE_SECONDS", 900)) as acquired:
        if not acquired:
            logger.warning("Skipping %s reminder sweep: another run holds the lease", reminder_type)
            result.skipped_locked = True
            return result

        deadline = time.monotonic() + timeout_seconds
        if now is None:
            now = business_now(tz_name)
        window = compute_reminder_window(now, reminder_type, tz_name)
        result.window = window
        logger.info("Starting %s reminder sweep for %s", reminder_type, window.describe())

        schedulings = find_confirmed_in_window(*window)

        for scheduling in schedulings:
            if time.monotonic() >= deadline:
                result.timed_out = True
                logger.error(
                    "%s reminder sweep exceeded %ss; %s scheduling(s) left unprocessed",
                    reminder_type,
                    timeout_seconds,
                    len(schedulings) - (result.sent + result.skipped + result.failed + result.already_sent),
                )
                break

            try:
                owner = resolve_owner(scheduling)
                if dedupe and reminder_already_sent(scheduling.scheduling_id, reminder_type):
                    result.already_sent += 1
                    continue
                dispatch_with_retry(notifier, scheduling, reminder_type, owner, attempts, backoff, sleep)
            except ResolutionError as exc:
                logger.info("Skipping scheduling %s: %s", scheduling.scheduling_id, exc)
                result.skipped += 1
                continue
            except PermanentDispatchError as exc:
                db.session.rollback()
                logger.error("Dropping reminder for scheduling %s: %s", scheduling.scheduling_id, exc)
                result.failed += 1
                continue
            except DispatchError as exc:
                db.session.rollback()
                logger.error("Giving up on reminder for scheduling %s: %s", scheduling.scheduling_id, exc)
                result.failed += 1
                continue
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.exception("Database error processing scheduling %s", scheduling.scheduling_id, exc_info=exc)
                result.failed += 1
                continue
            except Exception as exc:
                db.session.rollback()
                logger.exception("Unexpected error sending reminder for scheduling %s", scheduling.scheduling_id, exc_info=exc)
                result.failed += 1
                continue

            result.sent += 1
            _store_delivery(scheduling, reminder_type, owner, dedupe)

    logger.info(result.summary())
    return result
