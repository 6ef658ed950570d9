"""Unified task model shared by every source."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskSource(str, Enum):
    """Originating remote service. Values are the persisted form."""

    GMAIL = "gmail"
    OUTLOOK = "outlook"
    AZURE_DEVOPS = "azure_devops"


class TaskPriority(str, Enum):
    """Display priority derived from a task's flags."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"


class TaskAction(str, Enum):
    """User-initiated actions understood by the dispatcher."""

    ARCHIVE = "archive"
    COMPLETE = "complete"
    SNOOZE = "snooze"
    UNSNOOZE = "unsnooze"


TaskKey = tuple[TaskSource, str]


class TaskFlags(BaseModel):
    """Semantic flags normalized from source-specific markers."""

    model_config = ConfigDict(frozen=True)

    is_important: bool = Field(default=False, description="High priority / important marker")
    is_flagged: bool = Field(default=False, description="Flag or star marker")
    is_read: bool = Field(default=False, description="Whether the item has been read")


class Task(BaseModel):
    """An actionable item normalized from any source.

    Tasks are never mutated after a fetch. A state change shows up as a
    different result on the next fetch or as the task's absence.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier, unique only within its source")
    source: TaskSource = Field(description="Originating service")
    title: str = Field(description="Subject or work item title")
    actor_name: str = Field(description="Sender or assignee display name")
    actor_identifier: str = Field(description="Sender address or assignee handle")
    timestamp: datetime = Field(description="When the item was received or last changed")
    summary: str = Field(default="", description="Short preview text")
    flags: TaskFlags = Field(default_factory=TaskFlags)
    url: str | None = Field(default=None, description="Link to the item in its native web UI")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def key(self) -> TaskKey:
        """Global identity of the task."""

        return (self.source, self.id)

    @property
    def priority(self) -> TaskPriority:
        if self.flags.is_important and self.flags.is_flagged:
            return TaskPriority.URGENT
        if self.flags.is_important or self.flags.is_flagged:
            return TaskPriority.HIGH
        return TaskPriority.NORMAL
