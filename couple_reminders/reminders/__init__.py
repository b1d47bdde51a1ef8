"""Reminder notification scheduling (recurrence, composition, platform, dispatch, sweep).

Reminders are expanded into a bounded set of platform-held notifications.
The platform is queried for what is scheduled; nothing is persisted here.
"""
