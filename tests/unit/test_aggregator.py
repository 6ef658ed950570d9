"""Unit tests for the aggregation engine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0, FakeAdapter, make_task
from worklist_agent.engine import AggregationEngine, filter_worklist, sort_worklist
from worklist_agent.exceptions import (
    ConfigurationError,
    RateLimitedError,
    UnauthorizedError,
    WorklistUnavailableError,
)
from worklist_agent.models import RefreshState, TaskPriority, TaskSource


def _engine(adapters, store, **kwargs) -> AggregationEngine:
    kwargs.setdefault("clock", lambda: T0)
    return AggregationEngine(adapters, store, **kwargs)


class TestSorting:
    """Test suite for worklist ordering."""

    def test_most_recent_first(self) -> None:
        tasks = [
            make_task("old", timestamp=T0 - timedelta(hours=2)),
            make_task("new", timestamp=T0),
            make_task("mid", timestamp=T0 - timedelta(hours=1)),
        ]

        assert [t.id for t in sort_worklist(tasks)] == ["new", "mid", "old"]

    def test_ties_break_by_source_then_id(self) -> None:
        tasks = [
            make_task("b", TaskSource.OUTLOOK),
            make_task("9", TaskSource.AZURE_DEVOPS),
            make_task("a", TaskSource.OUTLOOK),
            make_task("z", TaskSource.GMAIL),
        ]

        assert [t.key for t in sort_worklist(tasks)] == [
            (TaskSource.AZURE_DEVOPS, "9"),
            (TaskSource.GMAIL, "z"),
            (TaskSource.OUTLOOK, "a"),
            (TaskSource.OUTLOOK, "b"),
        ]

    def test_order_is_independent_of_input_order(self) -> None:
        tasks = [make_task(str(i), timestamp=T0 - timedelta(minutes=i % 3)) for i in range(9)]

        assert sort_worklist(tasks) == sort_worklist(list(reversed(tasks)))


class TestFilterWorklist:
    """Test suite for filter_worklist."""

    def test_filters_by_source_and_priority(self) -> None:
        tasks = [
            make_task("1", TaskSource.GMAIL, important=True, flagged=True),
            make_task("2", TaskSource.GMAIL),
            make_task("3", TaskSource.OUTLOOK, flagged=True),
        ]

        assert [t.id for t in filter_worklist(tasks, sources=[TaskSource.GMAIL])] == ["1", "2"]
        assert [t.id for t in filter_worklist(tasks, priorities=[TaskPriority.HIGH])] == ["3"]
        assert [
            t.id
            for t in filter_worklist(
                tasks, [TaskSource.GMAIL], [TaskPriority.URGENT, TaskPriority.HIGH]
            )
        ] == ["1"]
        assert filter_worklist(tasks) == tasks


class TestAggregationEngine:
    """Test suite for AggregationEngine.get_unified_worklist."""

    @pytest.mark.asyncio
    async def test_merges_all_sources(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("g1", timestamp=T0 - timedelta(hours=1))])
        outlook = FakeAdapter(TaskSource.OUTLOOK, [make_task("o1", TaskSource.OUTLOOK)])
        devops = FakeAdapter(
            TaskSource.AZURE_DEVOPS,
            [make_task("7", TaskSource.AZURE_DEVOPS, timestamp=T0 - timedelta(hours=2))],
        )

        result = await _engine([gmail, outlook, devops], snooze_store).get_unified_worklist()

        assert [t.id for t in result.tasks] == ["o1", "g1", "7"]
        assert result.failures == []
        assert result.is_partial is False
        assert result.refreshed_at == T0
        assert set(result.refresh_state.last_refreshed) == {
            TaskSource.GMAIL,
            TaskSource.OUTLOOK,
            TaskSource.AZURE_DEVOPS,
        }

    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self, snooze_store) -> None:
        """Test that one failing source does not hide the others."""
        reported = []
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("g1")])
        outlook = FakeAdapter(
            TaskSource.OUTLOOK,
            error=UnauthorizedError("token expired", source=TaskSource.OUTLOOK, status_code=401),
        )
        devops = FakeAdapter(TaskSource.AZURE_DEVOPS, [make_task("7", TaskSource.AZURE_DEVOPS)])

        result = await _engine(
            [gmail, outlook, devops], snooze_store, failure_reporter=reported.append
        ).get_unified_worklist()

        assert {t.key for t in result.tasks} == {
            (TaskSource.GMAIL, "g1"),
            (TaskSource.AZURE_DEVOPS, "7"),
        }
        assert result.is_partial is True
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.source is TaskSource.OUTLOOK
        assert failure.kind == "unauthorized"
        assert failure.status_code == 401
        assert reported == result.failures

    @pytest.mark.asyncio
    async def test_failed_source_keeps_previous_refresh_time(self, snooze_store) -> None:
        earlier = T0 - timedelta(minutes=10)
        state = RefreshState(last_refreshed={TaskSource.OUTLOOK: earlier})
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("g1")])
        outlook = FakeAdapter(TaskSource.OUTLOOK, error=RateLimitedError("slow down"))

        result = await _engine([gmail, outlook], snooze_store).get_unified_worklist(state)

        assert result.refresh_state.last_refreshed == {
            TaskSource.GMAIL: T0,
            TaskSource.OUTLOOK: earlier,
        }

    @pytest.mark.asyncio
    async def test_all_sources_failing_raises(self, snooze_store) -> None:
        adapters = [
            FakeAdapter(TaskSource.GMAIL, error=UnauthorizedError("no token")),
            FakeAdapter(TaskSource.OUTLOOK, error=RateLimitedError("429")),
        ]

        with pytest.raises(WorklistUnavailableError) as exc_info:
            await _engine(adapters, snooze_store).get_unified_worklist()

        assert [f.kind for f in exc_info.value.failures] == ["unauthorized", "rate_limited"]

    @pytest.mark.asyncio
    async def test_no_adapters_is_unavailable(self, snooze_store) -> None:
        with pytest.raises(WorklistUnavailableError):
            await _engine([], snooze_store).get_unified_worklist()

    @pytest.mark.asyncio
    async def test_empty_sources_are_not_failures(self, snooze_store) -> None:
        result = await _engine(
            [FakeAdapter(TaskSource.GMAIL), FakeAdapter(TaskSource.OUTLOOK)], snooze_store
        ).get_unified_worklist()

        assert result.tasks == []
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("g1")])
        outlook = FakeAdapter(TaskSource.OUTLOOK, [make_task("o1", TaskSource.OUTLOOK)], delay=5)

        result = await _engine(
            [gmail, outlook], snooze_store, fetch_timeout=0.05
        ).get_unified_worklist()

        assert [t.id for t in result.tasks] == ["g1"]
        assert result.failures[0].source is TaskSource.OUTLOOK
        assert result.failures[0].kind == "unreachable"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_isolated(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("g1")])
        broken = FakeAdapter(TaskSource.OUTLOOK, error=KeyError("boom"))

        result = await _engine([gmail, broken], snooze_store).get_unified_worklist()

        assert [t.id for t in result.tasks] == ["g1"]
        assert result.failures[0].kind == "internal"

    @pytest.mark.asyncio
    async def test_same_id_in_different_sources_both_kept(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("1")])
        devops = FakeAdapter(TaskSource.AZURE_DEVOPS, [make_task("1", TaskSource.AZURE_DEVOPS)])

        result = await _engine([gmail, devops], snooze_store).get_unified_worklist()

        assert len(result.tasks) == 2

    @pytest.mark.asyncio
    async def test_duplicates_within_a_source_keep_first(self, snooze_store) -> None:
        gmail = FakeAdapter(
            TaskSource.GMAIL,
            [make_task("1", title="first"), make_task("1", title="second")],
        )

        result = await _engine([gmail], snooze_store).get_unified_worklist()

        assert [t.title for t in result.tasks] == ["first"]

    @pytest.mark.asyncio
    async def test_skipped_counts_are_reported(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("1")], skipped=2)

        result = await _engine([gmail], snooze_store).get_unified_worklist()

        assert result.skipped == {TaskSource.GMAIL: 2}

    def test_duplicate_source_registration_rejected(self, snooze_store) -> None:
        with pytest.raises(ConfigurationError):
            _engine([FakeAdapter(TaskSource.GMAIL), FakeAdapter(TaskSource.GMAIL)], snooze_store)


class TestSnoozeFiltering:
    """Test suite for snooze suppression during aggregation."""

    @pytest.mark.asyncio
    async def test_snoozed_task_hidden_until_wake(self, snooze_store) -> None:
        """A task snoozed for one hour is hidden at +30m and back at +90m."""
        adapter = FakeAdapter(TaskSource.GMAIL, [make_task("m1"), make_task("m2")])
        snooze_store.upsert_snooze(TaskSource.GMAIL, "m1", T0 + timedelta(hours=1), now=T0)

        during = await _engine(
            [adapter], snooze_store, clock=lambda: T0 + timedelta(minutes=30)
        ).get_unified_worklist()
        after = await _engine(
            [adapter], snooze_store, clock=lambda: T0 + timedelta(minutes=90)
        ).get_unified_worklist()

        assert [t.id for t in during.tasks] == ["m2"]
        assert during.snoozed == 1
        assert {t.id for t in after.tasks} == {"m1", "m2"}
        assert after.snoozed == 0

    @pytest.mark.asyncio
    async def test_snooze_is_scoped_to_source(self, snooze_store) -> None:
        gmail = FakeAdapter(TaskSource.GMAIL, [make_task("1")])
        devops = FakeAdapter(TaskSource.AZURE_DEVOPS, [make_task("1", TaskSource.AZURE_DEVOPS)])
        snooze_store.upsert_snooze(TaskSource.GMAIL, "1", T0 + timedelta(hours=1), now=T0)

        result = await _engine([gmail, devops], snooze_store).get_unified_worklist()

        assert [t.key for t in result.tasks] == [(TaskSource.AZURE_DEVOPS, "1")]

    @pytest.mark.asyncio
    async def test_snooze_store_failure_leaves_worklist_unfiltered(self, snooze_store) -> None:
        class BrokenStore:
            def active_snooze_keys(self, now):
                raise OSError("disk I/O error")

        adapter = FakeAdapter(TaskSource.GMAIL, [make_task("m1")])

        result = await _engine([adapter], BrokenStore()).get_unified_worklist()

        assert [t.id for t in result.tasks] == ["m1"]
