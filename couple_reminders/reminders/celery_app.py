from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging, worker_ready
from kombu import Exchange, Queue
from prometheus_client import start_http_server

from couple_reminders.core.config import settings
from couple_reminders.core.logger import configure_logging


celery_app = Celery(
    "reminders",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

exchange = Exchange(settings.NOTIFICATION_EXCHANGE, type="direct", durable=True)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    enable_utc=True,
    task_default_queue=settings.NOTIFICATION_QUEUE,
    task_default_exchange=settings.NOTIFICATION_EXCHANGE,
    task_default_routing_key=settings.NOTIFICATION_ROUTING_KEY,
    include=["couple_reminders.reminders.tasks"],
    task_queues=(
        Queue(
            settings.NOTIFICATION_QUEUE,
            exchange=exchange,
            routing_key=settings.NOTIFICATION_ROUTING_KEY,
            durable=True,
            queue_arguments={"x-max-priority": 10},
        ),
    ),
)

# Celery Beat schedule for the periodic sweep
celery_app.conf.beat_schedule = {
    "sweep-reminders": {
        "task": "reminders.sweep",
        "schedule": settings.SCHEDULER_SCAN_INTERVAL_SECONDS,
    },
    "daily-summary": {
        "task": "reminders.daily_summary",
        "schedule": crontab(hour=9, minute=0),
    },
    "weekly-summary": {
        "task": "reminders.weekly_summary",
        "schedule": crontab(hour=9, minute=0, day_of_week="sun"),
    },
}
celery_app.conf.timezone = settings.DEFAULT_TIMEZONE


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()


@worker_ready.connect
def _expose_metrics(**kwargs):
    if settings.METRICS_ENABLED:
        start_http_server(settings.METRICS_PORT)
