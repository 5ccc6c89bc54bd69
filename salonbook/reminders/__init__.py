"""Reminder sweeps for upcoming schedulings."""
from __future__ import annotations

from .job import SweepResult, send_scheduling_reminders
from .store import find_confirmed_in_window
from .window import (LEAD_TIMES, ReminderWindow, business_now,
                     compute_reminder_window)

__all__ = [
    "LEAD_TIMES",
    "ReminderWindow",
    "SweepResult",
    "business_now",
    "compute_reminder_window",
    "find_confirmed_in_window",
    "send_scheduling_reminders",
]
