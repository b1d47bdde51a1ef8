"""
Notification channels and their presentation settings
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from .schemas import NotificationKind


class ChannelImportance(str, Enum):
    MIN = "min"
    LOW = "low"
    DEFAULT = "default"
    HIGH = "high"
    MAX = "max"


@dataclass(frozen=True)
class NotificationChannel:
    id: str
    name: str
    importance: ChannelImportance
    vibration_pattern: Tuple[int, ...]
    color: str


DEFAULT_CHANNEL = "default"
REMINDERS_CHANNEL = "reminders"
LOVE_MESSAGES_CHANNEL = "love-messages"
RECURRING_CHANNEL = "recurring-reminders"
OVERDUE_CHANNEL = "overdue-reminders"
URGENT_CHANNEL = "urgent-reminders"
COUPLE_ACTIVITIES_CHANNEL = "couple-activities"


CHANNELS: Dict[str, NotificationChannel] = {
    c.id: c
    for c in (
        NotificationChannel(DEFAULT_CHANNEL, "Default", ChannelImportance.MAX, (0, 250, 250, 250), "#E91E63"),
        NotificationChannel(REMINDERS_CHANNEL, "Reminders", ChannelImportance.HIGH, (0, 250, 250, 250), "#E91E63"),
        NotificationChannel(LOVE_MESSAGES_CHANNEL, "Love Messages", ChannelImportance.DEFAULT, (0, 150, 150, 150), "#FF69B4"),
        NotificationChannel(RECURRING_CHANNEL, "Recurring Reminders", ChannelImportance.HIGH, (0, 200, 100, 200), "#9C27B0"),
        NotificationChannel(OVERDUE_CHANNEL, "Overdue Reminders", ChannelImportance.MAX, (0, 500, 200, 500), "#F44336"),
        NotificationChannel(URGENT_CHANNEL, "Urgent Reminders", ChannelImportance.MAX, (0, 300, 100, 300, 100, 300), "#FF5722"),
        NotificationChannel(COUPLE_ACTIVITIES_CHANNEL, "Couple Activities", ChannelImportance.DEFAULT, (0, 100, 100, 100), "#2196F3"),
    )
}


def channel_for_kind(kind) -> str:
    """Channel used when presenting an immediate notification of ``kind``."""
    try:
        kind = NotificationKind(kind)
    except ValueError:
        return DEFAULT_CHANNEL
    if kind == NotificationKind.OVERDUE_REMINDERS:
        return OVERDUE_CHANNEL
    elif kind == NotificationKind.URGENT_REMINDER:
        return URGENT_CHANNEL
    elif kind == NotificationKind.LOVE_MESSAGE:
        return LOVE_MESSAGES_CHANNEL
    elif kind == NotificationKind.COUPLE_ACTIVITY:
        return COUPLE_ACTIVITIES_CHANNEL
    return DEFAULT_CHANNEL
