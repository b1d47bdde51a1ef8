import logging
from datetime import datetime
from typing import List, Optional

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import ensure_aware
from .recurrence_models import Occurrence, RecurrenceCalculator
from .schemas import ReminderRecord


logger = logging.getLogger(__name__)


class OccurrenceExpander:
    """Expands a reminder into a bounded, strictly increasing list of future occurrences.

    Open-ended rules are always cut at ``max_occurrences``; a rule with an end
    date stops before the first occurrence past it, whichever comes first.
    """

    def __init__(self, max_occurrences: Optional[int] = None):
        self.max_occurrences = max_occurrences or settings.MAX_SCHEDULED_OCCURRENCES

    def expand(self, reminder: ReminderRecord, now: datetime) -> List[Occurrence]:
        if reminder.due_date is None:
            return []

        now = ensure_aware(now)
        anchor = reminder.due_date
        reminder_id = reminder.id or ""

        if not reminder.is_recurring:
            if anchor > now:
                return [Occurrence(reminder_id=reminder_id, firing_at=anchor)]
            return []

        rule = reminder.recurrence_rule
        if rule.is_expired(now):
            return []

        occurrences: List[Occurrence] = []
        not_before = now
        while len(occurrences) < self.max_occurrences:
            candidate = RecurrenceCalculator.next_occurrence(anchor, rule, not_before)
            if candidate is None or not rule.allows(candidate):
                break
            occurrences.append(Occurrence(reminder_id=reminder_id, firing_at=candidate))
            not_before = candidate

        logger.debug(
            "[Expander] reminder=%s rule=%s bounded=%s occurrences=%d",
            reminder_id, rule.frequency.value, rule.is_bounded, len(occurrences),
        )
        return occurrences
