import itertools
import os
import sys
from datetime import datetime, timezone
from typing import Dict, List

# Must be set before importing anything that instantiates the settings
os.environ.setdefault("REMINDER_DATABASE_URL", "sqlite://")
os.environ.setdefault("REMINDER_METRICS_ENABLED", "false")
os.environ.setdefault("REMINDER_CELERY_BROKER_URL", "memory://")

# Ensure project root is in pythonpath
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from couple_reminders.db.base import Base
from couple_reminders.reminders import models  # noqa: F401
from couple_reminders.reminders.platform import NotificationPlatform
from couple_reminders.reminders.schemas import NotificationRequest, ReminderRecord, ScheduledItem


NOW = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


class FakeNotificationPlatform(NotificationPlatform):
    """In-memory platform. ``fail_on`` holds 1-based submission numbers to reject."""

    def __init__(self, fail_on=(), fail_cancel=()):
        self.items: Dict[str, ScheduledItem] = {}
        self.requests: List[NotificationRequest] = []
        self.presented: List[NotificationRequest] = []
        self.channels = {}
        self.submissions = 0
        self.cancel_calls: List[str] = []
        self.list_calls = 0
        self.fail_on = set(fail_on)
        self.fail_cancel = set(fail_cancel)
        self._ids = itertools.count(1)

    async def schedule(self, request: NotificationRequest) -> str:
        self.submissions += 1
        if self.submissions in self.fail_on:
            raise RuntimeError(f"submission {self.submissions} rejected")
        handle = f"n-{next(self._ids)}"
        self.requests.append(request)
        self.items[handle] = ScheduledItem(
            handle=handle,
            metadata=dict(request.metadata),
            trigger_at=request.trigger_at,
            channel=request.channel,
        )
        return handle

    async def cancel(self, handle: str) -> None:
        self.cancel_calls.append(handle)
        if handle in self.fail_cancel:
            raise RuntimeError(f"cannot cancel {handle}")
        self.items.pop(handle, None)

    async def list_scheduled(self) -> List[ScheduledItem]:
        self.list_calls += 1
        return list(self.items.values())

    async def set_channel(self, channel) -> None:
        self.channels[channel.id] = channel

    async def present(self, request: NotificationRequest) -> str:
        self.presented.append(request)
        return f"p-{next(self._ids)}"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def platform():
    return FakeNotificationPlatform()


@pytest.fixture
def make_reminder():
    def _make(**overrides) -> ReminderRecord:
        fields = {
            "id": "r-1",
            "title": "Anniversary dinner",
            "description": "Book the table",
            "category": "dates",
            "priority": "medium",
            "reminder_type": "shared",
            "due_date": datetime(2025, 3, 12, 19, 0, tzinfo=timezone.utc),
            "recurrence": "none",
            "completed": False,
        }
        fields.update(overrides)
        return ReminderRecord(**fields)
    return _make


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def platform_factory():
    return FakeNotificationPlatform
