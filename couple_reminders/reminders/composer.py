from datetime import datetime, timedelta
from typing import Dict, List, Optional

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import ensure_aware
from .channels import RECURRING_CHANNEL, REMINDERS_CHANNEL, URGENT_CHANNEL
from .recurrence_models import Occurrence
from .schemas import NotificationKind, NotificationRequest, Priority, ReminderRecord


DEFAULT_BODY = "You have a reminder that needs your attention!"


def lead_time_table() -> Dict[str, int]:
    """Minutes of early warning per priority; 0 disables the warning."""
    return {
        Priority.URGENT.value: settings.LEAD_TIME_URGENT_MINUTES,
        Priority.HIGH.value: settings.LEAD_TIME_HIGH_MINUTES,
        Priority.MEDIUM.value: settings.LEAD_TIME_MEDIUM_MINUTES,
        Priority.LOW.value: settings.LEAD_TIME_LOW_MINUTES,
    }


LEAD_TIME_MINUTES = lead_time_table()


def get_warning_minutes(priority, table: Optional[Dict[str, int]] = None) -> int:
    table = LEAD_TIME_MINUTES if table is None else table
    key = priority.value if isinstance(priority, Priority) else str(priority or "").lower()
    return table.get(key, settings.LEAD_TIME_DEFAULT_MINUTES)


def select_channel(reminder: ReminderRecord) -> str:
    if reminder.is_recurring:
        return RECURRING_CHANNEL
    elif reminder.priority == Priority.URGENT.value:
        return URGENT_CHANNEL
    return REMINDERS_CHANNEL


def build_metadata(reminder: ReminderRecord, is_warning: bool) -> dict:
    return {
        "kind": NotificationKind.REMINDER.value,
        "reminder_id": reminder.id,
        "is_warning": is_warning,
        "priority": reminder.priority,
        "category": reminder.category,
        "reminder_type": reminder.reminder_type.value,
        "is_recurring": reminder.is_recurring,
    }


def due_title(reminder: ReminderRecord) -> str:
    marker = "🔄" if reminder.is_recurring else "💕"
    return f"{marker} {reminder.title}"


def due_body(reminder: ReminderRecord) -> str:
    body = reminder.description or DEFAULT_BODY
    if reminder.is_recurring:
        body = f"{body} (recurring reminder)"
    return body


class NotificationComposer:
    """Builds the due notification and the optional early warning for one occurrence."""

    def __init__(self, lead_times: Optional[Dict[str, int]] = None):
        self.lead_times = lead_times

    def warning_minutes(self, priority) -> int:
        return get_warning_minutes(priority, self.lead_times)

    def compose(
        self,
        reminder: ReminderRecord,
        occurrence: Occurrence,
        now: datetime,
    ) -> List[NotificationRequest]:
        now = ensure_aware(now)
        firing_at = ensure_aware(occurrence.firing_at)
        if firing_at <= now:
            return []

        channel = select_channel(reminder)
        requests = [
            NotificationRequest(
                title=due_title(reminder),
                body=due_body(reminder),
                metadata=build_metadata(reminder, is_warning=False),
                trigger_at=firing_at,
                channel=channel,
            )
        ]

        lead = self.warning_minutes(reminder.priority)
        if lead > 0:
            warning_at = firing_at - timedelta(minutes=lead)
            if warning_at > now:
                requests.append(
                    NotificationRequest(
                        title=f"⏰ Coming up: {reminder.title}",
                        body=f"{lead} minutes until your reminder!",
                        metadata=build_metadata(reminder, is_warning=True),
                        trigger_at=warning_at,
                        channel=channel,
                    )
                )
        return requests
