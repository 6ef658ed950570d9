"""Routing of user actions to the adapter or snooze store that owns them."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime, tzinfo

import structlog
from pydantic import BaseModel, Field

from worklist_agent.exceptions import (
    ActionFailedError,
    AdapterError,
    ConfigurationError,
    InvalidDurationError,
    UnknownSourceError,
    UnsupportedActionError,
)
from worklist_agent.models import ActionOutcome, TaskAction, TaskSource
from worklist_agent.snooze import SnoozeDuration, SnoozeStore, wake_time
from worklist_agent.sources import SourceAdapter
from worklist_agent.utils import ensure_utc, now_utc

logger = structlog.get_logger()

# Remote actions each source offers, independent of which adapters are registered.
SOURCE_ACTIONS: dict[TaskSource, frozenset[TaskAction]] = {
    TaskSource.GMAIL: frozenset({TaskAction.ARCHIVE}),
    TaskSource.OUTLOOK: frozenset({TaskAction.ARCHIVE}),
    TaskSource.AZURE_DEVOPS: frozenset({TaskAction.COMPLETE}),
}


class ActionParams(BaseModel):
    """Extra arguments for an action. Only snooze takes any."""

    duration: SnoozeDuration | None = Field(default=None, description="Snooze preset")
    wake_at: datetime | None = Field(default=None, description="Absolute snooze wake time")


class ActionDispatcher:
    """Performs archive, complete and snooze on behalf of the caller.

    The dispatcher holds no worklist. After a successful action the caller
    re-runs aggregation or drops the task from its own view.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        snooze_store: SnoozeStore,
        *,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
        wake_hour: int = 9,
    ) -> None:
        self._adapters: dict[TaskSource, SourceAdapter] = {}
        for adapter in adapters:
            if adapter.source in self._adapters:
                raise ConfigurationError(f"Duplicate adapter for {adapter.source.value}")
            self._adapters[adapter.source] = adapter

        self._snooze_store = snooze_store
        self._clock = clock or now_utc
        self._tz = tz
        self._wake_hour = wake_hour

    async def perform_action(
        self,
        action: TaskAction | str,
        source: TaskSource | str,
        task_id: str,
        params: ActionParams | None = None,
    ) -> ActionOutcome:
        """Perform ``action`` on the task identified by (source, task_id).

        Raises:
            UnknownSourceError: If the source is unknown or has no adapter.
            UnsupportedActionError: If the source has no such action.
            InvalidDurationError: If a snooze lacks a future wake time.
            ActionFailedError: If the remote mutation failed.
        """

        action = self._coerce_action(action)
        source = self._coerce_source(source)
        params = params or ActionParams()

        logger.info("action_requested", action=action.value, source=source.value, task_id=task_id)

        if action is TaskAction.SNOOZE:
            return await self._snooze(source, task_id, params)
        if action is TaskAction.UNSNOOZE:
            await asyncio.to_thread(self._snooze_store.remove_snooze, source, task_id)
            return ActionOutcome(
                action=action, source=source, task_id=task_id, performed_at=self._clock()
            )

        if action not in SOURCE_ACTIONS[source]:
            raise UnsupportedActionError(f"{source.value} does not support {action.value}")
        adapter = self._adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(f"No adapter registered for {source.value}")
        if not adapter.supports(action):
            raise UnsupportedActionError(f"{source.value} does not support {action.value}")

        try:
            if action is TaskAction.ARCHIVE:
                await adapter.archive(task_id)
            else:
                await adapter.complete(task_id)
        except AdapterError as exc:
            logger.warning(
                "action_failed",
                action=action.value,
                source=source.value,
                task_id=task_id,
                kind=exc.kind.value,
                status_code=exc.status_code,
                error=str(exc),
            )
            raise ActionFailedError(
                f"{action.value} failed for {source.value}/{task_id}: {exc}",
                adapter_error=exc,
            ) from exc

        logger.info("action_completed", action=action.value, source=source.value, task_id=task_id)
        return ActionOutcome(action=action, source=source, task_id=task_id, performed_at=self._clock())

    async def _snooze(self, source: TaskSource, task_id: str, params: ActionParams) -> ActionOutcome:
        now = self._clock()
        if params.duration is not None:
            wake_at = wake_time(params.duration, now, tz=self._tz, wake_hour=self._wake_hour)
        elif params.wake_at is not None:
            wake_at = ensure_utc(params.wake_at)
        else:
            raise InvalidDurationError("snooze requires a duration or a wake time")

        record = await asyncio.to_thread(
            self._snooze_store.upsert_snooze, source, task_id, wake_at, now
        )
        return ActionOutcome(
            action=TaskAction.SNOOZE,
            source=source,
            task_id=task_id,
            performed_at=now,
            wake_at=record.wake_at,
        )

    @staticmethod
    def _coerce_action(action: TaskAction | str) -> TaskAction:
        try:
            return TaskAction(action)
        except ValueError as exc:
            raise UnsupportedActionError(f"Unknown action: {action!r}") from exc

    @staticmethod
    def _coerce_source(source: TaskSource | str) -> TaskSource:
        try:
            return TaskSource(source)
        except ValueError as exc:
            raise UnknownSourceError(f"Unknown source: {source!r}") from exc
