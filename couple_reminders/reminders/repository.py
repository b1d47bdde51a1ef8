from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from couple_reminders.utils.timezone import to_utc_aware, utc_now
from .models import Reminder
from .schemas import ReminderRecord, ReminderType


class ReminderRecordSource(ABC):
    """Supplies reminder fields and receives completion-state updates."""

    @abstractmethod
    def get(self, reminder_id: str) -> Optional[ReminderRecord]:
        ...

    @abstractmethod
    def mark_completed(self, reminder_id: str, completed_by: Optional[str], completed_at: datetime) -> None:
        ...

    @abstractmethod
    def mark_incomplete(self, reminder_id: str) -> None:
        ...

    @abstractmethod
    def list_incomplete(
        self,
        user_id: Optional[str] = None,
        couple_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[ReminderRecord]:
        ...

    @abstractmethod
    def update_due_date(self, reminder_id: str, due_date: datetime) -> None:
        ...


class SqlAlchemyReminderSource(ReminderRecordSource):
    def __init__(self, db: Session):
        self.db = db

    def get(self, reminder_id: str) -> Optional[ReminderRecord]:
        row = self.db.get(Reminder, str(reminder_id))
        return ReminderRecord.model_validate(row) if row is not None else None

    def mark_completed(self, reminder_id: str, completed_by: Optional[str], completed_at: datetime) -> None:
        self.db.execute(
            update(Reminder)
            .where(Reminder.id == str(reminder_id))
            .values(
                completed=True,
                completed_by=completed_by,
                completed_at=to_utc_aware(completed_at),
                updated_at=utc_now(),
            )
        )
        self.db.commit()

    def mark_incomplete(self, reminder_id: str) -> None:
        self.db.execute(
            update(Reminder)
            .where(Reminder.id == str(reminder_id))
            .values(completed=False, completed_by=None, completed_at=None, updated_at=utc_now())
        )
        self.db.commit()

    def list_incomplete(
        self,
        user_id: Optional[str] = None,
        couple_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[ReminderRecord]:
        """Incomplete reminders with a due date, oldest first.

        ``user_id`` selects that user's personal reminders and ``couple_id``
        the couple's shared ones; with both, either set qualifies.
        """
        stmt = (
            select(Reminder)
            .where(Reminder.completed.is_(False), Reminder.due_date.is_not(None))
            .order_by(Reminder.due_date.asc())
            .limit(limit)
        )
        scopes = []
        if user_id:
            scopes.append(and_(Reminder.user_id == str(user_id), Reminder.reminder_type == ReminderType.PERSONAL.value))
        if couple_id:
            scopes.append(and_(Reminder.couple_id == str(couple_id), Reminder.reminder_type == ReminderType.SHARED.value))
        if scopes:
            stmt = stmt.where(or_(*scopes))
        return [ReminderRecord.model_validate(row) for row in self.db.execute(stmt).scalars()]

    def update_due_date(self, reminder_id: str, due_date: datetime) -> None:
        self.db.execute(
            update(Reminder)
            .where(Reminder.id == str(reminder_id))
            .values(due_date=to_utc_aware(due_date), updated_at=utc_now())
        )
        self.db.commit()
