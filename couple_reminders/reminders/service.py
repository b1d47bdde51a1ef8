"""
Application-facing reminder notification service.

Wraps the scheduler with channel setup, completion/snooze flows and
immediate notifications. None of the scheduling methods raise for platform
problems: they return the scheduler's aggregate results.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import utc_now
from .channels import CHANNELS, channel_for_kind
from .composer import build_metadata, due_body, due_title, select_channel
from .dispatcher import NotificationDispatcher, notification_dispatcher
from .exceptions import PlatformSubmissionError, ReminderNotFoundError, SnoozeOutOfRangeError
from .platform import NotificationPlatform
from .repository import ReminderRecordSource
from .scheduler import ReminderScheduler, validate_reminder
from .schemas import (
    CancelResult,
    NotificationKind,
    NotificationRequest,
    ReminderRecord,
    RescheduleResult,
    ScheduleResult,
)


logger = logging.getLogger(__name__)


class ReminderNotificationService:
    def __init__(
        self,
        platform: NotificationPlatform,
        record_source: ReminderRecordSource,
        scheduler: Optional[ReminderScheduler] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.platform = platform
        self.record_source = record_source
        self.clock = clock
        self.scheduler = scheduler or ReminderScheduler(platform, clock=clock)
        self.dispatcher = dispatcher or notification_dispatcher
        self._initialized = False

    async def initialize(self) -> bool:
        """
        Set up every notification channel once, before anything is scheduled.

        A channel the platform refuses is logged and skipped. Returns True
        only when every channel is in place; otherwise the next call retries.
        """
        if self._initialized:
            return True
        failed = []
        for channel in CHANNELS.values():
            try:
                await self.platform.set_channel(channel)
            except Exception as e:
                logger.error("❌ [Notifications] channel %s could not be set up: %s", channel.id, e)
                failed.append(channel.id)
        if failed:
            logger.warning("⚠️ [Notifications] %d of %d channels unavailable", len(failed), len(CHANNELS))
            return False
        self._initialized = True
        logger.info("✅ [Notifications] %d channels configured", len(CHANNELS))
        return True

    @staticmethod
    def _channels_unavailable() -> ScheduleResult:
        return ScheduleResult(failures=[PlatformSubmissionError("Notification channels could not be set up")])

    async def schedule_reminder_notifications(self, reminder: ReminderRecord) -> ScheduleResult:
        if not await self.initialize():
            return self._channels_unavailable()
        return await self.scheduler.schedule(reminder)

    async def cancel_reminder_notifications(self, reminder_id: str) -> CancelResult:
        return await self.scheduler.cancel_all(reminder_id)

    async def reschedule_reminder_notifications(self, reminder: ReminderRecord) -> RescheduleResult:
        if not await self.initialize():
            # Stale notifications still go, nothing new is submitted
            cancelled = await self.scheduler.cancel_all(reminder.id) if reminder.id else CancelResult()
            return RescheduleResult(cancelled=cancelled, scheduled=self._channels_unavailable())
        return await self.scheduler.reschedule(reminder)

    async def complete_reminder(
        self,
        reminder_id: str,
        completed_by: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> CancelResult:
        self.record_source.mark_completed(reminder_id, completed_by, completed_at or self.clock())
        return await self.scheduler.cancel_all(reminder_id)

    async def uncomplete_reminder(self, reminder_id: str) -> ScheduleResult:
        self.record_source.mark_incomplete(reminder_id)
        reminder = self.record_source.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        return await self.schedule_reminder_notifications(reminder)

    async def snooze_reminder(self, reminder_id: str, minutes: Optional[int] = None) -> ScheduleResult:
        """Schedule one extra due notification ``minutes`` from now."""
        minutes = settings.SNOOZE_DEFAULT_MINUTES if minutes is None else minutes
        if not settings.SNOOZE_MIN_MINUTES <= minutes <= settings.SNOOZE_MAX_MINUTES:
            raise SnoozeOutOfRangeError(minutes, settings.SNOOZE_MIN_MINUTES, settings.SNOOZE_MAX_MINUTES)

        reminder = self.record_source.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        error = validate_reminder(reminder)
        if error is not None:
            return ScheduleResult(failures=[error])
        if reminder.completed:
            return ScheduleResult()

        if not await self.initialize():
            return self._channels_unavailable()
        metadata = build_metadata(reminder, is_warning=False)
        metadata["is_snoozed"] = True
        request = NotificationRequest(
            title=due_title(reminder),
            body=due_body(reminder),
            metadata=metadata,
            trigger_at=self.clock() + timedelta(minutes=minutes),
            channel=select_channel(reminder),
        )
        logger.info("😴 [Notifications] reminder %s snoozed for %d min", reminder_id, minutes)
        return await self.scheduler.submit_all([request])

    async def send_immediate_notification(
        self,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        data = dict(data or {})
        request = NotificationRequest(
            title=title,
            body=body,
            metadata=data,
            trigger_at=None,
            channel=channel_for_kind(data.get("kind")),
        )
        if not await self.initialize():
            logger.error("❌ [Notifications] immediate notification '%s' skipped: channels unavailable", title)
            return False
        try:
            await self.platform.present(request)
        except Exception as e:
            logger.error("❌ [Notifications] immediate notification '%s' failed: %s", title, e)
            return False
        return True

    async def send_test_notification(self) -> bool:
        return await self.send_immediate_notification(
            "💕 Test notification",
            "Notifications are working!",
            {"kind": NotificationKind.TEST.value},
        )

    def register_handler(self, kind, handler) -> None:
        self.dispatcher.register(kind, handler)

    def register_fallback_handler(self, handler) -> None:
        self.dispatcher.register_fallback(handler)

    def handle_notification(self, metadata: Dict[str, Any]) -> None:
        self.dispatcher.dispatch(metadata)
