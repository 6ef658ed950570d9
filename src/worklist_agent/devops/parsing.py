"""Helpers for normalizing Azure DevOps work items into unified tasks."""

from __future__ import annotations

from datetime import datetime

from worklist_agent.devops.schemas import DevOpsWorkItem, IdentityRef
from worklist_agent.models import Task, TaskFlags, TaskSource
from worklist_agent.utils import UNKNOWN_ACTOR, parse_address_header, parse_iso8601

NO_TITLE = "(No Title)"
DEFAULT_PRIORITY = 4


def _assignee(value: IdentityRef | str | None) -> tuple[str, str]:
    if isinstance(value, IdentityRef):
        handle = (value.unique_name or "").strip()
        name = (value.display_name or "").strip()
        return (name or handle or UNKNOWN_ACTOR), (handle or name or UNKNOWN_ACTOR)
    return parse_address_header(value)


def work_item_to_task(
    item: DevOpsWorkItem,
    *,
    fetched_at: datetime,
    web_url: str | None = None,
) -> Task:
    """Convert a work item from ``workitemsbatch`` to a Task.

    Priority 1 maps to important and flagged, priority 2 to important only.
    Work items have no read state and are always reported as read.
    """

    fields = item.fields
    priority = fields.priority if fields.priority is not None else DEFAULT_PRIORITY
    actor_name, actor_identifier = _assignee(fields.assigned_to)
    work_item_type = fields.work_item_type or "Unknown"
    state = fields.state or "Unknown"

    return Task(
        id=str(item.id),
        source=TaskSource.AZURE_DEVOPS,
        title=fields.title or NO_TITLE,
        actor_name=actor_name,
        actor_identifier=actor_identifier,
        timestamp=parse_iso8601(fields.changed_date) or fetched_at,
        summary=f"{work_item_type} • {state}",
        flags=TaskFlags(
            is_important=priority <= 2,
            is_flagged=priority == 1,
            is_read=True,
        ),
        url=web_url or item.url,
    )
