"""Data models for Worklist Agent.

This package contains the Pydantic models for tasks and snoozes and the
plain result types passed between the engine and its callers.
"""

from worklist_agent.models.snooze import SnoozedRecord
from worklist_agent.models.task import (
    Task,
    TaskAction,
    TaskFlags,
    TaskKey,
    TaskPriority,
    TaskSource,
)
from worklist_agent.models.worklist import (
    ActionOutcome,
    FetchResult,
    RefreshState,
    SourceFailure,
    WorklistResult,
)

__all__ = [
    "ActionOutcome",
    "FetchResult",
    "RefreshState",
    "SnoozedRecord",
    "SourceFailure",
    "Task",
    "TaskAction",
    "TaskFlags",
    "TaskKey",
    "TaskPriority",
    "TaskSource",
    "WorklistResult",
]
