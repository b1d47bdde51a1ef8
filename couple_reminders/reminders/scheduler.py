"""
Reminder scheduling orchestration.

Expands a reminder into occurrences, composes their notifications and submits
them one by one to the platform. A failing submission or cancellation is
recorded in the returned result and never aborts the rest of the batch.

Callers must serialize ``reschedule`` per reminder id: a cancel that
interleaves with a concurrent schedule of the same reminder can leave stray
notifications behind.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import utc_now
from .composer import NotificationComposer
from .exceptions import (
    PlatformCancellationError,
    PlatformSubmissionError,
    ReminderValidationError,
)
from .expander import OccurrenceExpander
from .metrics import (
    notifications_cancel_failed_total,
    notifications_cancelled_total,
    notifications_rejected_total,
    notifications_scheduled_total,
    reminders_invalid_total,
)
from .platform import NotificationPlatform
from .schemas import (
    CancelResult,
    NotificationRequest,
    ReminderRecord,
    RescheduleResult,
    ScheduleResult,
)


logger = logging.getLogger(__name__)


def validate_reminder(reminder: ReminderRecord) -> Optional[ReminderValidationError]:
    if not reminder.id:
        return ReminderValidationError(reminder.id, "missing id")
    if not reminder.title or not reminder.title.strip():
        return ReminderValidationError(reminder.id, "missing title")
    if reminder.due_date is None:
        return ReminderValidationError(reminder.id, "missing due date")
    return None


class ReminderScheduler:
    def __init__(
        self,
        platform: NotificationPlatform,
        expander: Optional[OccurrenceExpander] = None,
        composer: Optional[NotificationComposer] = None,
        clock: Callable[[], datetime] = utc_now,
        submission_timeout: Optional[float] = None,
    ):
        self.platform = platform
        self.expander = expander or OccurrenceExpander()
        self.composer = composer or NotificationComposer()
        self.clock = clock
        self.submission_timeout = (
            submission_timeout if submission_timeout is not None else settings.SUBMISSION_TIMEOUT_SECONDS
        )

    def build_requests(self, reminder: ReminderRecord, now: datetime) -> List[NotificationRequest]:
        requests: List[NotificationRequest] = []
        for occurrence in self.expander.expand(reminder, now):
            requests.extend(self.composer.compose(reminder, occurrence, now))
        return requests

    async def _submit(self, request: NotificationRequest) -> str:
        if self.submission_timeout:
            return await asyncio.wait_for(self.platform.schedule(request), timeout=self.submission_timeout)
        return await self.platform.schedule(request)

    async def submit_all(self, requests: List[NotificationRequest]) -> ScheduleResult:
        """Submit each request in order, aggregating per-request outcomes."""
        result = ScheduleResult()
        for request in requests:
            try:
                handle = await self._submit(request)
            except asyncio.TimeoutError as e:
                result.rejected += 1
                result.failures.append(
                    PlatformSubmissionError(
                        f"Platform did not answer within {self.submission_timeout}s",
                        request=request,
                        original_error=e,
                    )
                )
            except PlatformSubmissionError as e:
                result.rejected += 1
                result.failures.append(e)
            except Exception as e:
                result.rejected += 1
                result.failures.append(PlatformSubmissionError(str(e), request=request, original_error=e))
            else:
                result.accepted += 1
                result.handles.append(handle)

        if result.accepted:
            notifications_scheduled_total.inc(result.accepted)
        if result.rejected:
            notifications_rejected_total.inc(result.rejected)
        return result

    async def schedule(self, reminder: ReminderRecord) -> ScheduleResult:
        error = validate_reminder(reminder)
        if error is not None:
            reminders_invalid_total.inc()
            logger.warning("[Scheduler] %s", error)
            return ScheduleResult(failures=[error])

        if reminder.completed:
            logger.debug("[Scheduler] reminder %s is completed, nothing to schedule", reminder.id)
            return ScheduleResult()

        now = self.clock()
        requests = self.build_requests(reminder, now)
        result = await self.submit_all(requests)

        if result.rejected:
            logger.warning(
                "⚠️ [Scheduler] reminder %s: %d scheduled, %d rejected",
                reminder.id, result.accepted, result.rejected,
            )
        else:
            logger.info("📅 [Scheduler] reminder %s: %d notifications scheduled", reminder.id, result.accepted)
        return result

    async def cancel_all(self, reminder_id: str) -> CancelResult:
        result = CancelResult()
        reminder_id = str(reminder_id)
        try:
            items = await self.platform.list_scheduled()
        except Exception as e:
            logger.warning("[Scheduler] could not list scheduled notifications: %s", e)
            result.failures.append(PlatformCancellationError(str(e), original_error=e))
            return result

        for item in items:
            if item.reminder_id != reminder_id:
                continue
            try:
                await self.platform.cancel(item.handle)
            except Exception as e:
                result.failed += 1
                result.failures.append(PlatformCancellationError(str(e), handle=item.handle, original_error=e))
            else:
                result.cancelled += 1

        if result.cancelled:
            notifications_cancelled_total.inc(result.cancelled)
        if result.failed:
            notifications_cancel_failed_total.inc(result.failed)
            logger.warning("[Scheduler] reminder %s: %d cancellations failed", reminder_id, result.failed)
        logger.debug("[Scheduler] reminder %s: %d notifications cancelled", reminder_id, result.cancelled)
        return result

    async def reschedule(self, reminder: ReminderRecord) -> RescheduleResult:
        # Full replacement: already fired occurrences are not tracked
        cancelled = await self.cancel_all(reminder.id) if reminder.id else CancelResult()
        scheduled = await self.schedule(reminder)
        return RescheduleResult(cancelled=cancelled, scheduled=scheduled)
