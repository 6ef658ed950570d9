"""Helpers for normalizing Microsoft Graph messages into unified tasks."""

from __future__ import annotations

from datetime import datetime

from worklist_agent.models import Task, TaskFlags, TaskSource
from worklist_agent.outlook.schemas import GraphMessage
from worklist_agent.utils import UNKNOWN_ACTOR, parse_iso8601

NO_SUBJECT = "(No Subject)"

_WEB_URL = "https://outlook.office.com/mail/inbox/id/{id}"


def is_actionable(message: GraphMessage) -> bool:
    """Flagged or high-importance messages make it into the worklist."""

    return message.is_flagged or message.is_high_importance


def graph_message_to_task(message: GraphMessage, *, fetched_at: datetime) -> Task:
    detail = message.sender.email_address if message.sender else None
    address = ((detail.address if detail else None) or "").strip()
    name = ((detail.name if detail else None) or "").strip()

    return Task(
        id=message.id,
        source=TaskSource.OUTLOOK,
        title=message.subject or NO_SUBJECT,
        actor_name=name or address or UNKNOWN_ACTOR,
        actor_identifier=address or UNKNOWN_ACTOR,
        timestamp=parse_iso8601(message.received_date_time) or fetched_at,
        summary=message.body_preview or "",
        flags=TaskFlags(
            is_important=message.is_high_importance,
            is_flagged=message.is_flagged,
            is_read=bool(message.is_read),
        ),
        url=_WEB_URL.format(id=message.id),
    )
