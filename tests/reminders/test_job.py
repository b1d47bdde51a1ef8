import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from couple_reminders.reminders import job as job_module
from couple_reminders.reminders.job import ReminderNotificationJob
from couple_reminders.reminders.models import Reminder
from couple_reminders.reminders.repository import ReminderRecordSource, SqlAlchemyReminderSource
from couple_reminders.reminders.schemas import NotificationRequest
from couple_reminders.reminders.service import ReminderNotificationService


UTC = timezone.utc


@pytest.fixture
def record_source():
    return MagicMock(spec=ReminderRecordSource)


@pytest.fixture
def job(platform, record_source, clock):
    service = ReminderNotificationService(platform, record_source, clock=clock)
    return ReminderNotificationJob(service, user_id="u-1", couple_id="c-1", clock=clock)


@pytest.fixture
def reminders(make_reminder, now):
    return [
        make_reminder(id="up", due_date=now + timedelta(hours=3)),
        make_reminder(id="far", due_date=now + timedelta(days=3)),
        make_reminder(id="pre", due_date=now + timedelta(hours=2)),
        make_reminder(id="rec", recurrence="daily", due_date=datetime(2025, 3, 8, 9, 0, tzinfo=UTC)),
        make_reminder(
            id="ended",
            recurrence="weekly",
            due_date=datetime(2025, 1, 1, 9, 0, tzinfo=UTC),
            recurrence_end_date=datetime(2025, 2, 1, tzinfo=UTC),
        ),
        make_reminder(id="late-1", due_date=now - timedelta(hours=1)),
        make_reminder(id="late-2", due_date=now - timedelta(days=2)),
    ]


async def preschedule(platform, reminder_id, now):
    await platform.schedule(
        NotificationRequest(
            title="x",
            body="y",
            metadata={"kind": "reminder", "reminder_id": reminder_id},
            trigger_at=now + timedelta(hours=2),
            channel="reminders",
        )
    )


async def test_run_once(job, platform, record_source, reminders, now):
    record_source.list_incomplete.return_value = reminders
    await preschedule(platform, "pre", now)

    report = await job.run_once()

    record_source.list_incomplete.assert_called_with(user_id="u-1", couple_id="c-1", limit=500)
    assert report.scanned == 7
    assert report.scheduled_reminders == 2
    # "up": due + warning; "rec": 30 daily occurrences with warnings
    assert report.notifications_scheduled == 62
    assert report.rolled_forward == 1
    assert report.overdue == 2

    scheduled_ids = {i.reminder_id for i in platform.items.values()}
    assert scheduled_ids == {"up", "pre", "rec"}
    record_source.update_due_date.assert_called_once_with("rec", datetime(2025, 3, 10, 9, 0, tzinfo=UTC))

    assert len(platform.presented) == 1
    overdue = platform.presented[0]
    assert overdue.title == "⚠️ Overdue reminders"
    assert overdue.body == "You have 2 overdue reminders"
    assert overdue.metadata == {"kind": "overdue-reminders", "count": 2}
    assert overdue.channel == "overdue-reminders"


async def test_second_cycle_does_not_repeat_work(job, platform, record_source, reminders):
    record_source.list_incomplete.return_value = reminders
    await job.run_once()
    submitted = platform.submissions

    report = await job.run_once()

    assert report.scheduled_reminders == 0
    assert platform.submissions == submitted
    assert len(platform.presented) == 1
    assert job.cycles == 2


async def test_new_overdue_reminder_triggers_a_fresh_warning(job, platform, record_source, make_reminder, now):
    record_source.list_incomplete.return_value = [make_reminder(id="late-1", due_date=now - timedelta(hours=1))]
    await job.run_once()

    record_source.list_incomplete.return_value = [
        make_reminder(id="late-1", due_date=now - timedelta(hours=1)),
        make_reminder(id="late-2", due_date=now - timedelta(minutes=1)),
    ]
    await job.run_once()

    assert [p.body for p in platform.presented] == [
        "You have 1 overdue reminder",
        "You have 2 overdue reminders",
    ]


async def test_daily_summary_counts_todays_reminders(job, platform, record_source, make_reminder, now):
    record_source.list_incomplete.return_value = [
        make_reminder(id="a", due_date=now + timedelta(hours=2)),
        make_reminder(id="b", due_date=now - timedelta(hours=1)),
        make_reminder(id="c", due_date=now + timedelta(days=2)),
    ]

    count = await job.send_daily_summary()

    assert count == 2
    summary = platform.presented[0]
    assert summary.title == "📋 Today's reminders"
    assert summary.body == "You have 2 reminders to finish today"
    assert summary.metadata["kind"] == "daily-summary"


async def test_daily_summary_is_silent_without_reminders(job, platform, record_source):
    record_source.list_incomplete.return_value = []
    assert await job.send_daily_summary() == 0
    assert platform.presented == []


async def test_weekly_summary_counts_the_local_sunday_to_saturday_week(job, platform, record_source, make_reminder, now):
    # Local zone is UTC+7: the week of Mon 2025-03-10 runs Sun 03-09 00:00 to Sat 03-15 23:59 local
    record_source.list_incomplete.return_value = [
        make_reminder(id="today", due_date=now + timedelta(hours=2)),
        make_reminder(id="sunday", due_date=datetime(2025, 3, 8, 17, 0, tzinfo=UTC)),
        make_reminder(id="saturday", due_date=datetime(2025, 3, 15, 16, 59, tzinfo=UTC)),
        make_reminder(id="last-week", due_date=datetime(2025, 3, 8, 16, 59, tzinfo=UTC)),
        make_reminder(id="next-week", due_date=datetime(2025, 3, 15, 17, 0, tzinfo=UTC)),
        make_reminder(id="undated", due_date=None),
    ]

    count = await job.send_weekly_summary()

    assert count == 3
    summary = platform.presented[0]
    assert summary.title == "📅 This week's reminders"
    assert summary.body == "You have 3 reminders to finish this week"
    assert summary.metadata == {"kind": "weekly-summary", "count": 3}
    assert summary.channel == "default"


async def test_weekly_summary_is_silent_without_reminders_this_week(job, platform, record_source, make_reminder):
    record_source.list_incomplete.return_value = [
        make_reminder(id="next-week", due_date=datetime(2025, 3, 20, 10, 0, tzinfo=UTC)),
    ]
    assert await job.send_weekly_summary() == 0
    assert platform.presented == []


async def test_expired_recurring_reminder_is_left_alone(job, platform, record_source, make_reminder):
    record_source.list_incomplete.return_value = [
        make_reminder(
            id="ended",
            recurrence="daily",
            due_date=datetime(2025, 1, 1, 9, 0, tzinfo=UTC),
            recurrence_end_date=datetime(2025, 2, 1, tzinfo=UTC),
        ),
    ]

    with patch.object(job_module.RecurrenceCalculator, "next_occurrence") as next_occurrence:
        report = await job.run_once()

    next_occurrence.assert_not_called()
    record_source.update_due_date.assert_not_called()
    assert report.rolled_forward == 0
    assert report.overdue == 0
    assert platform.items == {}


async def test_start_and_stop(job, record_source):
    record_source.list_incomplete.return_value = []
    job.interval_seconds = 3600

    job.start()
    await asyncio.sleep(0.05)
    status = job.get_status()
    await job.stop()

    assert status["is_running"] is True
    assert status["cycles"] == 1
    assert status["last_run"] is not None
    assert job.get_status()["is_running"] is False


async def test_failed_cycle_is_not_fatal(job, record_source):
    record_source.list_incomplete.side_effect = RuntimeError("database is down")
    job.interval_seconds = 3600

    job.start()
    await asyncio.sleep(0.05)
    assert job.is_running
    assert job.cycles == 0
    await job.stop()


async def test_sweep_against_sql_store(db_session, platform, clock, now):
    db_session.add_all([
        Reminder(id="d-1", title="Call mum", reminder_type="personal", user_id="u-1",
                 due_date=now + timedelta(hours=5), priority="low"),
        Reminder(id="d-2", title="Water plants", reminder_type="shared", couple_id="c-1",
                 recurrence="weekly", due_date=now - timedelta(days=1), priority="low"),
    ])
    db_session.commit()
    source = SqlAlchemyReminderSource(db_session)
    service = ReminderNotificationService(platform, source, clock=clock)
    job = ReminderNotificationJob(service, user_id="u-1", couple_id="c-1", clock=clock)

    report = await job.run_once()

    assert report.scheduled_reminders == 2
    assert source.get("d-2").due_date == now + timedelta(days=6)
    assert {i.reminder_id for i in platform.items.values()} == {"d-1", "d-2"}
