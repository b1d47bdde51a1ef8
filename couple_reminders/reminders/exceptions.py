"""
Reminder notification exceptions.

Batch operations never raise these for a single failing notification; they
collect them into the ``failures`` list of their result instead.
"""
from typing import Optional


class ReminderNotificationError(Exception):
    """Base exception for reminder notification errors."""
    pass


class ReminderValidationError(ReminderNotificationError):
    """Raised when a reminder lacks the fields needed for scheduling."""

    def __init__(self, reminder_id: Optional[str], reason: str):
        self.reminder_id = reminder_id
        self.reason = reason
        super().__init__(f"Reminder {reminder_id or '<unknown>'} cannot be scheduled: {reason}")


class PlatformSubmissionError(ReminderNotificationError):
    """The platform refused (or never answered) one notification request."""

    def __init__(self, message: str, request=None, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.request = request
        self.original_error = original_error


class PlatformCancellationError(ReminderNotificationError):
    """One scheduled notification could not be cancelled."""

    def __init__(self, message: str, handle: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.handle = handle
        self.original_error = original_error


class ReminderNotFoundError(ReminderNotificationError):
    """Raised when a reminder id is not known to the record source."""

    def __init__(self, reminder_id: str):
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} not found")


class SnoozeOutOfRangeError(ReminderNotificationError, ValueError):
    """Raised when a snooze duration falls outside the configured bounds."""

    def __init__(self, minutes: int, minimum: int, maximum: int):
        self.minutes = minutes
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"Snooze of {minutes} minutes is outside [{minimum}, {maximum}]")
