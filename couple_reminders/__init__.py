"""Couple reminders notification scheduler.

Turns reminder records into bounded sets of scheduled local notifications,
keeps them consistent as reminders change, and routes delivered
notifications back to application handlers.
"""

__version__ = "0.1.0"
