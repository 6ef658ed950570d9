"""Snooze presets and their translation to absolute wake times.

The store only understands absolute timestamps; callers pick a preset and
resolve it against their own clock at the moment the snooze is issued.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

from worklist_agent.utils import ensure_utc


class SnoozeDuration(str, Enum):
    """Preset snooze lengths offered to users."""

    ONE_HOUR = "1h"
    THREE_HOURS = "3h"
    TOMORROW = "tomorrow"
    NEXT_WEEK = "next_week"

    @classmethod
    def parse(cls, value: str) -> SnoozeDuration:
        """Accept the enum value, its name, or a dashed spelling (``next-week``)."""

        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        raise ValueError(f"unknown snooze duration: {value!r}")


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the named IANA zone, or None to follow the system local zone."""

    if name:
        return ZoneInfo(name)
    return None


def wake_time(
    duration: SnoozeDuration,
    now: datetime,
    *,
    tz: tzinfo | None = None,
    wake_hour: int = 9,
) -> datetime:
    """Translate a preset into an absolute UTC wake time.

    ``tomorrow`` is the next calendar day at ``wake_hour`` local time and
    ``next_week`` is Monday of the following calendar week at ``wake_hour``.
    With no ``tz`` the system local zone is used, including its DST rules
    on the target date.
    """

    now = ensure_utc(now)

    if duration is SnoozeDuration.ONE_HOUR:
        return now + timedelta(hours=1)
    if duration is SnoozeDuration.THREE_HOURS:
        return now + timedelta(hours=3)

    local_now = now.astimezone(tz) if tz is not None else now.astimezone()
    if duration is SnoozeDuration.TOMORROW:
        target_date = local_now.date() + timedelta(days=1)
    else:
        target_date = local_now.date() + timedelta(days=7 - local_now.weekday())

    if tz is None:
        # A naive local time picks up the offset in force on that date.
        local_wake = datetime.combine(target_date, time(hour=wake_hour)).astimezone()
    else:
        local_wake = datetime.combine(target_date, time(hour=wake_hour), tzinfo=tz)
    return local_wake.astimezone(timezone.utc)
