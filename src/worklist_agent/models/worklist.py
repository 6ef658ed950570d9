"""Result types produced by adapters, the aggregation engine and the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from worklist_agent.models.task import Task, TaskAction, TaskSource


@dataclass(frozen=True)
class FetchResult:
    """Normalized tasks from one adapter fetch."""

    source: TaskSource
    tasks: tuple[Task, ...]
    skipped: int = 0


@dataclass(frozen=True)
class SourceFailure:
    """A single adapter failure isolated during aggregation."""

    source: TaskSource
    kind: str
    message: str
    status_code: int | None = None


@dataclass(frozen=True)
class RefreshState:
    """Caller-owned record of when each source last refreshed successfully."""

    last_refreshed: dict[TaskSource, datetime] = field(default_factory=dict)

    def updated(self, sources: list[TaskSource], at: datetime) -> RefreshState:
        merged = dict(self.last_refreshed)
        for source in sources:
            merged[source] = at
        return RefreshState(last_refreshed=merged)


@dataclass(frozen=True)
class WorklistResult:
    """One aggregation pass: merged tasks plus what went wrong along the way."""

    tasks: list[Task]
    failures: list[SourceFailure]
    skipped: dict[TaskSource, int]
    snoozed: int
    refreshed_at: datetime
    refresh_state: RefreshState

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)


@dataclass(frozen=True)
class ActionOutcome:
    """Confirmation of a completed action."""

    action: TaskAction
    source: TaskSource
    task_id: str
    performed_at: datetime
    wake_at: datetime | None = None
