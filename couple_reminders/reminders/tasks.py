import asyncio
import logging

from celery import shared_task
from sqlalchemy.orm import Session

from couple_reminders.db.session import SessionLocal
from .celery_app import celery_app
from .dispatcher import notification_dispatcher
from .job import ReminderNotificationJob
from .platform import CeleryNotificationPlatform
from .repository import SqlAlchemyReminderSource
from .service import ReminderNotificationService


logger = logging.getLogger(__name__)


def _build_job(db: Session) -> ReminderNotificationJob:
    source = SqlAlchemyReminderSource(db)
    service = ReminderNotificationService(CeleryNotificationPlatform(celery_app), source)
    return ReminderNotificationJob(service, source)


@shared_task(name="reminders.deliver_notification")
def deliver_notification_task(notification: dict) -> None:
    """Fire a scheduled notification by routing its metadata to the registered handler."""
    logger.info("🔔 [Deliver] %s", notification.get("title"))
    notification_dispatcher.dispatch(notification.get("metadata") or {})


@shared_task(name="reminders.sweep")
def sweep_task() -> dict:
    """Run one sweep cycle over every incomplete reminder. Returns the cycle report."""
    db: Session = SessionLocal()
    try:
        report = asyncio.run(_build_job(db).run_once())
        return report.model_dump()
    finally:
        db.close()


@shared_task(name="reminders.daily_summary")
def daily_summary_task() -> int:
    db: Session = SessionLocal()
    try:
        return asyncio.run(_build_job(db).send_daily_summary())
    finally:
        db.close()


@shared_task(name="reminders.weekly_summary")
def weekly_summary_task() -> int:
    db: Session = SessionLocal()
    try:
        return asyncio.run(_build_job(db).send_weekly_summary())
    finally:
        db.close()
