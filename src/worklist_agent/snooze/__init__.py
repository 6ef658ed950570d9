"""Snooze persistence and presets.

Snoozed tasks are hidden from the worklist until their wake time passes.
"""

from .durations import SnoozeDuration, resolve_timezone, wake_time
from .repository import SnoozeStore

__all__ = ["SnoozeDuration", "SnoozeStore", "resolve_timezone", "wake_time"]
