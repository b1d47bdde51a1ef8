"""
Reminder table read by the scheduler and updated on completion
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from couple_reminders.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="other")
    priority = Column(String, nullable=False, default="medium")
    reminder_type = Column(String, nullable=False, default="personal")  # personal, shared
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)
    recurrence = Column(String, nullable=False, default="none")
    recurrence_end_date = Column(DateTime(timezone=True), nullable=True)

    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(String, nullable=True)

    user_id = Column(String, nullable=True, index=True)
    couple_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_reminders_completed_due", "completed", "due_date"),
        Index("ix_reminders_couple_type", "couple_id", "reminder_type"),
    )
