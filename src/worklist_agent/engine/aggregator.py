"""Aggregation of every source into one worklist.

Adapters are fetched concurrently and in isolation: a source that fails or
hangs contributes nothing and is reported, while the others still make it
into the result. Only when no source succeeds does the call fail.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

import structlog

from worklist_agent.exceptions import (
    AdapterError,
    ConfigurationError,
    UnreachableError,
    WorklistUnavailableError,
)
from worklist_agent.models import (
    FetchResult,
    RefreshState,
    SourceFailure,
    Task,
    TaskKey,
    TaskPriority,
    TaskSource,
    WorklistResult,
)
from worklist_agent.snooze import SnoozeStore
from worklist_agent.sources import SourceAdapter
from worklist_agent.utils import now_utc

logger = structlog.get_logger()

FailureReporter = Callable[[SourceFailure], None]

INTERNAL_FAILURE = "internal"


def sort_worklist(tasks: Iterable[Task]) -> list[Task]:
    """Most recent first; equal timestamps ordered by source then id."""

    by_identity = sorted(tasks, key=lambda t: (t.source.value, t.id))
    # sorted() is stable, so identity order survives among equal timestamps.
    return sorted(by_identity, key=lambda t: t.timestamp, reverse=True)


def filter_worklist(
    tasks: Iterable[Task],
    sources: Iterable[TaskSource] | None = None,
    priorities: Iterable[TaskPriority] | None = None,
) -> list[Task]:
    """Keep tasks from the given sources and priorities. Empty means all."""

    source_set = set(sources or [])
    priority_set = set(priorities or [])
    return [
        t
        for t in tasks
        if (not source_set or t.source in source_set)
        and (not priority_set or t.priority in priority_set)
    ]


class AggregationEngine:
    """Builds the unified worklist from registered adapters."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        snooze_store: SnoozeStore,
        *,
        fetch_timeout: float = 60.0,
        clock: Callable[[], datetime] | None = None,
        failure_reporter: FailureReporter | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            adapters: One adapter per source.
            snooze_store: Consulted on every pass to hide snoozed tasks.
            fetch_timeout: Seconds a single adapter fetch may take.
            clock: Returns the current time; defaults to UTC wall clock.
            failure_reporter: Receives each isolated source failure.
        """

        sources = [a.source for a in adapters]
        if len(set(sources)) != len(sources):
            raise ConfigurationError("Only one adapter per source may be registered")

        self._adapters = list(adapters)
        self._snooze_store = snooze_store
        self._fetch_timeout = fetch_timeout
        self._clock = clock or now_utc
        self._failure_reporter = failure_reporter

    @property
    def sources(self) -> list[TaskSource]:
        return [a.source for a in self._adapters]

    async def get_unified_worklist(self, state: RefreshState | None = None) -> WorklistResult:
        """Fetch every source, merge, drop snoozed tasks and sort.

        Args:
            state: Refresh bookkeeping from the caller's previous pass.

        Returns:
            WorklistResult, possibly partial when some sources failed.

        Raises:
            WorklistUnavailableError: If no source could be fetched.
        """

        state = state or RefreshState()
        if not self._adapters:
            raise WorklistUnavailableError("No sources are configured")

        outcomes = await asyncio.gather(*(self._fetch_one(a) for a in self._adapters))
        now = self._clock()

        results = [o for o in outcomes if isinstance(o, FetchResult)]
        failures = [o for o in outcomes if isinstance(o, SourceFailure)]

        if not results:
            logger.error(
                "worklist_unavailable",
                failures=[f"{f.source.value}:{f.kind}" for f in failures],
            )
            raise WorklistUnavailableError(
                "Every source failed: "
                + "; ".join(f"{f.source.value} ({f.kind}): {f.message}" for f in failures),
                failures=failures,
            )

        merged = self._merge(results)
        snoozed_keys = await self._active_snooze_keys(now)
        visible = [t for t in merged if t.key not in snoozed_keys]
        tasks = sort_worklist(visible)

        logger.info(
            "worklist_refreshed",
            task_count=len(tasks),
            snoozed=len(merged) - len(visible),
            failed_sources=[f.source.value for f in failures],
        )

        return WorklistResult(
            tasks=tasks,
            failures=failures,
            skipped={r.source: r.skipped for r in results},
            snoozed=len(merged) - len(visible),
            refreshed_at=now,
            refresh_state=state.updated([r.source for r in results], now),
        )

    async def _fetch_one(self, adapter: SourceAdapter) -> FetchResult | SourceFailure:
        source = adapter.source
        try:
            result = await asyncio.wait_for(adapter.fetch_actionable(), timeout=self._fetch_timeout)
        except asyncio.TimeoutError:
            error = UnreachableError(
                f"{source.value} fetch timed out after {self._fetch_timeout}s", source=source
            )
            return self._record_failure(source, error.kind.value, str(error), None)
        except AdapterError as exc:
            return self._record_failure(source, exc.kind.value, str(exc), exc.status_code)
        except Exception as exc:  # noqa: BLE001
            logger.exception("worklist_fetch_crashed", source=source.value, error=str(exc))
            return self._record_failure(source, INTERNAL_FAILURE, str(exc), None)

        if result.skipped:
            logger.warning("worklist_items_skipped", source=source.value, skipped=result.skipped)
        return result

    def _record_failure(
        self,
        source: TaskSource,
        kind: str,
        message: str,
        status_code: int | None,
    ) -> SourceFailure:
        failure = SourceFailure(source=source, kind=kind, message=message, status_code=status_code)
        logger.warning(
            "worklist_fetch_failed",
            source=source.value,
            kind=kind,
            status_code=status_code,
            error=message,
        )
        if self._failure_reporter is not None:
            try:
                self._failure_reporter(failure)
            except Exception as exc:  # noqa: BLE001
                logger.exception("failure_reporter_crashed", error=str(exc))
        return failure

    def _merge(self, results: list[FetchResult]) -> list[Task]:
        seen: set[TaskKey] = set()
        merged: list[Task] = []
        for result in results:
            for task in result.tasks:
                if task.key in seen:
                    logger.debug("worklist_duplicate_dropped", source=task.source.value, task_id=task.id)
                    continue
                seen.add(task.key)
                merged.append(task)
        return merged

    async def _active_snooze_keys(self, now: datetime) -> set[TaskKey]:
        try:
            return await asyncio.to_thread(self._snooze_store.active_snooze_keys, now)
        except Exception as exc:  # noqa: BLE001
            # Showing snoozed items beats showing nothing.
            logger.exception("snooze_lookup_failed", error=str(exc))
            return set()
