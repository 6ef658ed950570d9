"""Snooze record model."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from worklist_agent.models.task import TaskKey, TaskSource


class SnoozedRecord(BaseModel):
    """A time-bounded suppression of one task from the worklist."""

    model_config = ConfigDict(frozen=True)

    source: TaskSource = Field(description="Source of the snoozed task")
    task_id: str = Field(description="Task identifier within its source")
    wake_at: datetime = Field(description="Point in time after which the snooze lapses")
    created_at: datetime = Field(description="When the snooze was issued")

    @field_validator("wake_at", "created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def key(self) -> TaskKey:
        return (self.source, self.task_id)

    def is_active(self, now: datetime) -> bool:
        """Return True while ``now`` is strictly before the wake time."""

        return now < self.wake_at
