"""
Schemas shared by the scheduler, the platform adapters and the record source
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from couple_reminders.utils.timezone import ensure_aware
from .recurrence_models import RecurrenceRule, RecurrenceType


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReminderType(str, Enum):
    PERSONAL = "personal"
    SHARED = "shared"


class NotificationKind(str, Enum):
    """Discriminant carried in notification metadata under ``kind``"""
    REMINDER = "reminder"
    LOVE_MESSAGE = "love-message"
    COUPLE_ACTIVITY = "couple-activity"
    OVERDUE_REMINDERS = "overdue-reminders"
    URGENT_REMINDER = "urgent-reminder"
    DAILY_SUMMARY = "daily-summary"
    WEEKLY_SUMMARY = "weekly-summary"
    TEST = "test"


class ReminderRecord(BaseModel):
    """Reminder fields as supplied by the record source"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    title: str = ""
    description: str = ""
    category: str = "other"
    # Kept as a plain string so unknown priorities survive validation
    priority: str = Priority.MEDIUM.value
    reminder_type: ReminderType = ReminderType.PERSONAL
    due_date: Optional[datetime] = None
    recurrence: RecurrenceType = RecurrenceType.NONE
    recurrence_end_date: Optional[datetime] = None
    completed: bool = False
    user_id: Optional[str] = None
    couple_id: Optional[str] = None

    @field_validator("id", "user_id", "couple_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, v):
        if v is None:
            return None
        return str(v)

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, v):
        if v is None:
            return Priority.MEDIUM.value
        if isinstance(v, Enum):
            v = v.value
        return str(v).strip().lower()

    @field_validator("reminder_type", mode="before")
    @classmethod
    def _normalize_reminder_type(cls, v):
        if v is None:
            return ReminderType.PERSONAL
        if isinstance(v, str):
            v = v.strip().lower()
            # Older clients store shared reminders as "couple"
            if v == "couple":
                return ReminderType.SHARED
        return v

    @field_validator("recurrence", mode="before")
    @classmethod
    def _normalize_recurrence(cls, v):
        if v is None or v == "":
            return RecurrenceType.NONE
        return v

    @field_validator("due_date", "recurrence_end_date")
    @classmethod
    def _attach_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != RecurrenceType.NONE

    @property
    def recurrence_rule(self) -> RecurrenceRule:
        return RecurrenceRule(frequency=self.recurrence, end_date=self.recurrence_end_date)


class NotificationRequest(BaseModel):
    """One notification to hand to the platform"""
    title: str
    body: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    # None means present immediately
    trigger_at: Optional[datetime] = None
    channel: str


class ScheduledItem(BaseModel):
    """A notification the platform currently holds"""
    handle: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    trigger_at: Optional[datetime] = None
    channel: Optional[str] = None

    @property
    def reminder_id(self) -> Optional[str]:
        value = self.metadata.get("reminder_id")
        return None if value is None else str(value)


class ScheduleResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    accepted: int = 0
    rejected: int = 0
    handles: List[str] = Field(default_factory=list)
    failures: List[Exception] = Field(default_factory=list)


class CancelResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    cancelled: int = 0
    failed: int = 0
    failures: List[Exception] = Field(default_factory=list)


class RescheduleResult(BaseModel):
    cancelled: CancelResult
    scheduled: ScheduleResult
