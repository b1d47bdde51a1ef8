"""
Platform notification service: the thing that actually holds and fires
scheduled notifications.

The platform is the system of record for what is scheduled. Nothing in this
package keeps its own copy of handles; cancellation by reminder id lists the
platform's items and filters on their metadata.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from couple_reminders.core.config import settings
from couple_reminders.utils.timezone import to_utc_aware, utc_now
from .channels import ChannelImportance, NotificationChannel
from .exceptions import PlatformSubmissionError
from .schemas import NotificationRequest, ScheduledItem


logger = logging.getLogger(__name__)

DELIVER_TASK = "reminders.deliver_notification"

# RabbitMQ message priorities, higher is delivered first
IMPORTANCE_PRIORITY = {
    ChannelImportance.MIN: 0,
    ChannelImportance.LOW: 3,
    ChannelImportance.DEFAULT: 5,
    ChannelImportance.HIGH: 7,
    ChannelImportance.MAX: 9,
}


class NotificationPlatform(ABC):
    """Schedules, cancels and lists fire-once notifications."""

    @abstractmethod
    async def schedule(self, request: NotificationRequest) -> str:
        """Accept ``request`` for delivery at ``request.trigger_at`` and return its handle."""

    @abstractmethod
    async def cancel(self, handle: str) -> None:
        """Cancel a handle. Must not raise for fired or already cancelled handles."""

    @abstractmethod
    async def list_scheduled(self) -> List[ScheduledItem]:
        """Every notification still waiting to fire, with its original metadata."""

    @abstractmethod
    async def set_channel(self, channel: NotificationChannel) -> None:
        """Register a channel before anything is scheduled on it."""

    @abstractmethod
    async def present(self, request: NotificationRequest) -> str:
        """Deliver ``request`` right away."""


class CeleryNotificationPlatform(NotificationPlatform):
    """Notification platform backed by Celery ETA tasks.

    Each notification is one ``reminders.deliver_notification`` task whose eta
    is the trigger instant; the Celery task id is the handle. Pending items
    are read back from the workers with ``inspect().scheduled()``.
    """

    def __init__(self, app, inspect_timeout: Optional[float] = None):
        self.app = app
        self.inspect_timeout = inspect_timeout or settings.INSPECT_TIMEOUT_SECONDS
        self.channels: Dict[str, NotificationChannel] = {}

    def _priority_for(self, channel_id: str) -> int:
        channel = self.channels[channel_id]
        return IMPORTANCE_PRIORITY.get(channel.importance, 5)

    def _send(self, request: NotificationRequest, eta: Optional[datetime]) -> str:
        if request.channel not in self.channels:
            raise PlatformSubmissionError(
                f"Channel '{request.channel}' has not been set up", request=request
            )
        result = self.app.send_task(
            DELIVER_TASK,
            kwargs={"notification": request.model_dump(mode="json")},
            eta=eta,
            priority=self._priority_for(request.channel),
            queue=settings.NOTIFICATION_QUEUE,
            routing_key=settings.NOTIFICATION_ROUTING_KEY,
        )
        return result.id

    async def schedule(self, request: NotificationRequest) -> str:
        if request.trigger_at is None:
            raise PlatformSubmissionError("Scheduled notifications need a trigger time", request=request)
        eta = to_utc_aware(request.trigger_at)
        if eta <= utc_now():
            raise PlatformSubmissionError(
                f"Trigger time {eta.isoformat()} is in the past", request=request
            )
        handle = await asyncio.to_thread(self._send, request, eta)
        logger.debug("[Platform] scheduled %s at %s on %s", handle, eta.isoformat(), request.channel)
        return handle

    async def present(self, request: NotificationRequest) -> str:
        handle = await asyncio.to_thread(self._send, request, None)
        logger.debug("[Platform] presented %s on %s", handle, request.channel)
        return handle

    async def cancel(self, handle: str) -> None:
        # revoke is idempotent on the worker side
        await asyncio.to_thread(self.app.control.revoke, handle)
        logger.debug("[Platform] revoked %s", handle)

    def _inspect(self) -> List[ScheduledItem]:
        inspector = self.app.control.inspect(timeout=self.inspect_timeout)
        scheduled = inspector.scheduled() or {}
        revoked = inspector.revoked() or {}
        revoked_ids = {task_id for ids in revoked.values() for task_id in (ids or [])}

        items: List[ScheduledItem] = []
        for entries in scheduled.values():
            for entry in entries or []:
                request = entry.get("request") or {}
                if request.get("name") != DELIVER_TASK or request.get("id") in revoked_ids:
                    continue
                notification = (request.get("kwargs") or {}).get("notification") or {}
                items.append(
                    ScheduledItem(
                        handle=request["id"],
                        metadata=notification.get("metadata") or {},
                        trigger_at=entry.get("eta"),
                        channel=notification.get("channel"),
                    )
                )
        return items

    async def list_scheduled(self) -> List[ScheduledItem]:
        return await asyncio.to_thread(self._inspect)

    async def set_channel(self, channel: NotificationChannel) -> None:
        self.channels[channel.id] = channel
        logger.info("[Platform] channel '%s' ready (importance=%s)", channel.id, channel.importance.value)
