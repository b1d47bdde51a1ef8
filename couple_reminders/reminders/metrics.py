from prometheus_client import Counter


notifications_scheduled_total = Counter(
    "reminder_notifications_scheduled_total",
    "Total notification requests accepted by the platform",
)

notifications_rejected_total = Counter(
    "reminder_notifications_rejected_total",
    "Total notification requests rejected by the platform",
)

reminders_invalid_total = Counter(
    "reminders_invalid_total",
    "Total reminders rejected before scheduling",
)

notifications_cancelled_total = Counter(
    "reminder_notifications_cancelled_total",
    "Total scheduled notifications cancelled",
)

notifications_cancel_failed_total = Counter(
    "reminder_notifications_cancel_failed_total",
    "Total scheduled notifications that could not be cancelled",
)

notifications_dispatched_total = Counter(
    "reminder_notifications_dispatched_total",
    "Total delivered notifications routed to a handler",
    ["kind"],
)

sweep_cycles_total = Counter(
    "reminder_sweep_cycles_total",
    "Total reminder sweep cycles",
)

sweep_failures_total = Counter(
    "reminder_sweep_failures_total",
    "Total reminder sweep cycles that failed",
)
