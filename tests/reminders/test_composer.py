from datetime import timedelta

import pytest

from couple_reminders.reminders.composer import DEFAULT_BODY, NotificationComposer, get_warning_minutes
from couple_reminders.reminders.expander import OccurrenceExpander
from couple_reminders.reminders.recurrence_models import Occurrence
from couple_reminders.reminders.schemas import Priority


def occurrence_at(when, reminder_id="r-1"):
    return Occurrence(reminder_id=reminder_id, firing_at=when)


@pytest.mark.parametrize(
    "priority,minutes",
    [("urgent", 60), ("high", 30), ("medium", 15), ("low", 0), (Priority.HIGH, 30), ("whatever", 15), (None, 15)],
)
def test_lead_time_table(priority, minutes):
    assert get_warning_minutes(priority) == minutes


def test_due_and_warning_for_one_time_reminder(make_reminder, now):
    reminder = make_reminder()
    due_at = now + timedelta(days=2)
    due, warning = NotificationComposer().compose(reminder, occurrence_at(due_at), now)

    assert due.title == "💕 Anniversary dinner"
    assert due.body == "Book the table"
    assert due.trigger_at == due_at
    assert due.channel == "reminders"
    assert due.metadata == {
        "kind": "reminder",
        "reminder_id": "r-1",
        "is_warning": False,
        "priority": "medium",
        "category": "dates",
        "reminder_type": "shared",
        "is_recurring": False,
    }

    assert warning.title == "⏰ Coming up: Anniversary dinner"
    assert warning.body == "15 minutes until your reminder!"
    assert warning.trigger_at == due_at - timedelta(minutes=15)
    assert warning.channel == due.channel
    assert warning.metadata["is_warning"] is True


def test_recurring_reminder_uses_marker_and_recurring_channel(make_reminder, now):
    reminder = make_reminder(recurrence="weekly", priority="urgent", description="")
    requests = NotificationComposer().compose(reminder, occurrence_at(now + timedelta(days=1)), now)

    assert requests[0].title == "🔄 Anniversary dinner"
    assert requests[0].body == f"{DEFAULT_BODY} (recurring reminder)"
    assert {r.channel for r in requests} == {"recurring-reminders"}
    assert requests[0].metadata["is_recurring"] is True


def test_urgent_one_time_reminder_uses_urgent_channel(make_reminder, now):
    reminder = make_reminder(priority="urgent")
    requests = NotificationComposer().compose(reminder, occurrence_at(now + timedelta(hours=3)), now)
    assert [r.channel for r in requests] == ["urgent-reminders", "urgent-reminders"]
    assert requests[1].trigger_at == now + timedelta(hours=2)


def test_low_priority_never_warns(make_reminder, now):
    reminder = make_reminder(priority="low")
    requests = NotificationComposer().compose(reminder, occurrence_at(now + timedelta(days=3)), now)
    assert len(requests) == 1
    assert requests[0].metadata["is_warning"] is False


def test_warning_in_the_past_is_dropped(make_reminder, now):
    reminder = make_reminder(priority="urgent")
    requests = NotificationComposer().compose(reminder, occurrence_at(now + timedelta(minutes=10)), now)
    assert len(requests) == 1
    assert requests[0].trigger_at == now + timedelta(minutes=10)


def test_warning_exactly_now_is_dropped(make_reminder, now):
    reminder = make_reminder(priority="high")
    requests = NotificationComposer().compose(reminder, occurrence_at(now + timedelta(minutes=30)), now)
    assert len(requests) == 1


def test_past_occurrence_produces_nothing(make_reminder, now):
    reminder = make_reminder()
    assert NotificationComposer().compose(reminder, occurrence_at(now - timedelta(seconds=1)), now) == []


def test_overdue_urgent_daily_reminder_never_triggers_in_the_past(make_reminder, now):
    reminder = make_reminder(priority="urgent", recurrence="daily", due_date=now - timedelta(minutes=5))
    composer = NotificationComposer()
    requests = [
        request
        for occurrence in OccurrenceExpander().expand(reminder, now)
        for request in composer.compose(reminder, occurrence, now)
    ]
    assert requests
    assert all(r.trigger_at > now for r in requests)
    due_times = sorted(r.trigger_at for r in requests if not r.metadata["is_warning"])
    assert due_times[0] == now - timedelta(minutes=5) + timedelta(days=1)


def test_lead_times_can_be_overridden(make_reminder, now):
    reminder = make_reminder(priority="low")
    composer = NotificationComposer(lead_times={"low": 5})
    requests = composer.compose(reminder, occurrence_at(now + timedelta(hours=1)), now)
    assert requests[1].trigger_at == now + timedelta(minutes=55)
    assert requests[1].body == "5 minutes until your reminder!"
