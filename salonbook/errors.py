"""Exception hierarchy for the scheduling and reminder code."""
from __future__ import annotations


class SalonbookError(Exception):
    """Base class for application errors."""


class ConfigurationError(SalonbookError):
    """Raised when a job is invoked with settings it cannot run with."""


class InvalidReminderType(ConfigurationError):
    def __init__(self, reminder_type: object) -> None:
        super().__init__(f"Invalid reminder type: {reminder_type!r}")
        self.reminder_type = reminder_type


class ResolutionError(SalonbookError):
    """A scheduling's establishment or owner could not be resolved."""


class DispatchError(SalonbookError):
    """Delivering a notification failed."""


class TransientDispatchError(DispatchError):
    """Delivery failed for a reason that may go away on retry."""


class PermanentDispatchError(DispatchError):
    """Delivery failed and retrying will not help (bad address, bad template)."""


class SchedulingError(SalonbookError):
    """Base class for booking rule violations."""


class InvalidStatusTransition(SchedulingError):
    def __init__(self, current: str, new: str) -> None:
        super().__init__(f"Cannot change status from {current} to {new}")
        self.current = current
        self.new = new


class SlotConflict(SchedulingError):
    """The requested date/time collides with an existing booking."""
