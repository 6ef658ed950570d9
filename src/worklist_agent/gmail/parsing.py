"""Helpers for parsing Gmail message metadata into unified tasks."""

from __future__ import annotations

from datetime import datetime, timezone

from worklist_agent.gmail.schemas import GmailMessage
from worklist_agent.models import Task, TaskFlags, TaskSource
from worklist_agent.utils import UNKNOWN_ACTOR, parse_address_header

NO_SUBJECT = "(No Subject)"

_WEB_URL = "https://mail.google.com/mail/u/0/#inbox/{id}"


def _header_map(message: GmailMessage) -> dict[str, str]:
    headers = (message.payload.headers if message.payload else None) or []
    result: dict[str, str] = {}
    for h in headers:
        # Gmail can include duplicates; keep the first for now.
        result.setdefault(h.name.lower(), h.value)
    return result


def _parse_internal_date(value: str | int | None) -> datetime | None:
    if value is None:
        return None
    try:
        millis = int(value)
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def message_to_task(message: GmailMessage, *, fetched_at: datetime) -> Task:
    """Convert a Gmail API message (format=metadata) to a Task.

    Args:
        message: Validated Gmail message.
        fetched_at: Substituted when ``internalDate`` is missing or unparsable.

    Returns:
        Task: Normalized task.
    """

    hm = _header_map(message)

    subject = hm.get("subject") or NO_SUBJECT
    sender_name, sender_address = parse_address_header(hm.get("from") or UNKNOWN_ACTOR)

    labels = message.label_ids
    flags = TaskFlags(
        is_important="IMPORTANT" in (labels or []),
        is_flagged="STARRED" in (labels or []),
        # No label list at all means we cannot tell, so treat as unread.
        is_read=labels is not None and "UNREAD" not in labels,
    )

    return Task(
        id=message.id,
        source=TaskSource.GMAIL,
        title=subject,
        actor_name=sender_name,
        actor_identifier=sender_address,
        timestamp=_parse_internal_date(message.internal_date) or fetched_at,
        summary=message.snippet or "",
        flags=flags,
        url=_WEB_URL.format(id=message.id),
    )
