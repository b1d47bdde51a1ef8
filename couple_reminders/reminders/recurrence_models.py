"""
Recurrence rules and next-occurrence arithmetic
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta

from couple_reminders.utils.timezone import ensure_aware


class RecurrenceType(str, Enum):
    """Types of recurrence patterns"""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class RecurrenceRule:
    """A recurrence frequency plus an optional inclusive end date"""
    frequency: RecurrenceType = RecurrenceType.NONE
    end_date: Optional[datetime] = None

    @property
    def is_recurring(self) -> bool:
        return self.frequency != RecurrenceType.NONE

    @property
    def is_bounded(self) -> bool:
        return self.end_date is not None

    def allows(self, instant: datetime) -> bool:
        """True when ``instant`` does not lie past the end date."""
        if self.end_date is None:
            return True
        return ensure_aware(instant) <= ensure_aware(self.end_date)

    def is_expired(self, now: datetime) -> bool:
        return self.is_recurring and self.end_date is not None and ensure_aware(now) > ensure_aware(self.end_date)


@dataclass(frozen=True)
class Occurrence:
    """One concrete firing instant of a reminder"""
    reminder_id: str
    firing_at: datetime


class RecurrenceCalculator:
    """Calculates next occurrence for recurrence rules"""

    @staticmethod
    def nth_occurrence(anchor: datetime, frequency: RecurrenceType, k: int) -> datetime:
        """Occurrence number ``k`` counted from the anchor (k=0 is the anchor).

        Always derived from the anchor, never from a previous occurrence, so
        a Jan 31 anchor yields Feb 29 and then Mar 31 rather than Mar 29.
        """
        if frequency == RecurrenceType.DAILY:
            return anchor + timedelta(days=k)
        elif frequency == RecurrenceType.WEEKLY:
            return anchor + timedelta(weeks=k)
        elif frequency == RecurrenceType.MONTHLY:
            # relativedelta clamps to the last valid day of the target month
            return anchor + relativedelta(months=k)
        elif frequency == RecurrenceType.YEARLY:
            return anchor + relativedelta(years=k)
        raise ValueError(f"Unsupported recurrence type: {frequency}")

    @staticmethod
    def _estimate_index(anchor: datetime, frequency: RecurrenceType, not_before: datetime) -> int:
        if not_before < anchor:
            return 0
        local = not_before.astimezone(anchor.tzinfo)
        if frequency == RecurrenceType.DAILY:
            return (local - anchor).days
        elif frequency == RecurrenceType.WEEKLY:
            return (local - anchor).days // 7
        elif frequency == RecurrenceType.MONTHLY:
            return (local.year - anchor.year) * 12 + (local.month - anchor.month)
        return local.year - anchor.year

    @staticmethod
    def next_occurrence(
        anchor: datetime,
        rule: RecurrenceRule,
        not_before: datetime,
    ) -> Optional[datetime]:
        """Smallest occurrence of ``rule`` strictly after ``not_before``.

        Calendar arithmetic happens on the anchor's wall clock. Returns None
        for non-recurring rules. The end date is not applied here; callers
        decide whether an occurrence past it is still wanted. Also None when the
        next occurrence would fall after year 9999.
        """
        if rule.frequency == RecurrenceType.NONE:
            return None

        anchor = ensure_aware(anchor)
        not_before = ensure_aware(not_before)
        nth = RecurrenceCalculator.nth_occurrence

        try:
            k = max(RecurrenceCalculator._estimate_index(anchor, rule.frequency, not_before), 0)
            # The estimate can overshoot by one around month ends and DST shifts
            while k > 0 and nth(anchor, rule.frequency, k - 1) > not_before:
                k -= 1
            while nth(anchor, rule.frequency, k) <= not_before:
                k += 1
            return nth(anchor, rule.frequency, k)
        except (OverflowError, ValueError):
            # Nothing follows the last representable datetime
            return None
