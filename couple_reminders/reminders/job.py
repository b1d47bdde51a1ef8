"""
Periodic reminder sweep.

Every cycle looks at the incomplete reminders in scope, schedules the ones
coming up soon that the platform does not hold yet, rolls overdue recurring
reminders forward to their next occurrence and warns about the rest.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Set

from pydantic import BaseModel

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import local_date, utc_now
from .metrics import sweep_cycles_total, sweep_failures_total
from .recurrence_models import RecurrenceCalculator
from .repository import ReminderRecordSource
from .schemas import NotificationKind, ReminderRecord
from .service import ReminderNotificationService


logger = logging.getLogger(__name__)


class SweepReport(BaseModel):
    scanned: int = 0
    scheduled_reminders: int = 0
    notifications_scheduled: int = 0
    notifications_rejected: int = 0
    rolled_forward: int = 0
    overdue: int = 0


def _plural(count: int, noun: str) -> str:
    return f"1 {noun}" if count == 1 else f"{count} {noun}s"


class ReminderNotificationJob:
    def __init__(
        self,
        service: ReminderNotificationService,
        record_source: Optional[ReminderRecordSource] = None,
        user_id: Optional[str] = None,
        couple_id: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
        interval_seconds: Optional[int] = None,
    ):
        self.service = service
        self.record_source = record_source or service.record_source
        self.user_id = user_id
        self.couple_id = couple_id
        self.clock = clock
        self.interval_seconds = interval_seconds or settings.SCHEDULER_SCAN_INTERVAL_SECONDS
        self.upcoming_window = timedelta(hours=settings.UPCOMING_WINDOW_HOURS)

        self.is_running = False
        self.cycles = 0
        self.last_run: Optional[datetime] = None
        self.last_report: Optional[SweepReport] = None
        self._task: Optional[asyncio.Task] = None
        self._notified_overdue: Set[str] = set()

    def _incomplete(self) -> List[ReminderRecord]:
        return self.record_source.list_incomplete(
            user_id=self.user_id,
            couple_id=self.couple_id,
            limit=settings.SCHEDULER_BATCH_SIZE,
        )

    async def _scheduled_reminder_ids(self) -> Set[str]:
        items = await self.service.platform.list_scheduled()
        return {item.reminder_id for item in items if item.reminder_id}

    async def _schedule(self, reminder: ReminderRecord, report: SweepReport) -> None:
        result = await self.service.schedule_reminder_notifications(reminder)
        report.scheduled_reminders += 1
        report.notifications_scheduled += result.accepted
        report.notifications_rejected += result.rejected

    async def run_once(self) -> SweepReport:
        now = self.clock()
        window_end = now + self.upcoming_window
        reminders = self._incomplete()
        already_scheduled = await self._scheduled_reminder_ids()
        report = SweepReport(scanned=len(reminders))

        new_overdue: List[str] = []
        overdue_ids: Set[str] = set()
        for reminder in reminders:
            if reminder.due_date is None or not reminder.id:
                continue

            if reminder.due_date > now:
                if reminder.id not in already_scheduled and reminder.due_date <= window_end:
                    await self._schedule(reminder, report)
                continue

            if reminder.is_recurring:
                rule = reminder.recurrence_rule
                next_due = None
                if not rule.is_expired(now):
                    next_due = RecurrenceCalculator.next_occurrence(reminder.due_date, rule, now)
                if next_due is None or not rule.allows(next_due):
                    logger.info("[Sweep] recurring reminder %s has reached its end", reminder.id)
                    continue
                self.record_source.update_due_date(reminder.id, next_due)
                report.rolled_forward += 1
                logger.info("🔄 [Sweep] rolled recurring reminder %s forward to %s", reminder.id, next_due.isoformat())
                if reminder.id not in already_scheduled:
                    await self._schedule(reminder.model_copy(update={"due_date": next_due}), report)
                continue

            overdue_ids.add(reminder.id)
            if reminder.id not in self._notified_overdue:
                new_overdue.append(reminder.id)

        report.overdue = len(overdue_ids)
        # Only warn again when something new became overdue
        self._notified_overdue &= overdue_ids
        if new_overdue:
            self._notified_overdue.update(new_overdue)
            await self.send_overdue_notification(len(overdue_ids))

        self.cycles += 1
        self.last_run = now
        self.last_report = report
        sweep_cycles_total.inc()
        logger.info(
            "🔍 [Sweep] scanned=%d scheduled=%d rolled_forward=%d overdue=%d",
            report.scanned, report.scheduled_reminders, report.rolled_forward, report.overdue,
        )
        return report

    async def send_overdue_notification(self, count: int) -> bool:
        return await self.service.send_immediate_notification(
            "⚠️ Overdue reminders",
            f"You have {_plural(count, 'overdue reminder')}",
            {"kind": NotificationKind.OVERDUE_REMINDERS.value, "count": count},
        )

    async def send_daily_summary(self) -> int:
        """Notify about reminders due on the current local day. Returns their count."""
        today = local_date(self.clock())
        count = sum(
            1 for r in self._incomplete()
            if r.due_date is not None and local_date(r.due_date) == today
        )
        if count:
            await self.service.send_immediate_notification(
                "📋 Today's reminders",
                f"You have {_plural(count, 'reminder')} to finish today",
                {"kind": NotificationKind.DAILY_SUMMARY.value, "count": count},
            )
        return count

    async def send_weekly_summary(self) -> int:
        """Notify about reminders due in the current local Sunday to Saturday week."""
        today = local_date(self.clock())
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        week_end = week_start + timedelta(days=6)
        count = sum(
            1 for r in self._incomplete()
            if r.due_date is not None and week_start <= local_date(r.due_date) <= week_end
        )
        if count:
            await self.service.send_immediate_notification(
                "📅 This week's reminders",
                f"You have {_plural(count, 'reminder')} to finish this week",
                {"kind": NotificationKind.WEEKLY_SUMMARY.value, "count": count},
            )
        return count

    async def _loop(self) -> None:
        while self.is_running:
            try:
                await self.run_once()
            except Exception:
                sweep_failures_total.inc()
                logger.exception("❌ [Sweep] cycle failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start sweeping in the running event loop."""
        if self.is_running:
            logger.info("[Sweep] already running")
            return
        self.is_running = True
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("🚀 [Sweep] started, interval=%ss", self.interval_seconds)

    async def stop(self) -> None:
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("🛑 [Sweep] stopped")

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "cycles": self.cycles,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "interval_seconds": self.interval_seconds,
            "last_report": self.last_report.model_dump() if self.last_report else None,
        }
