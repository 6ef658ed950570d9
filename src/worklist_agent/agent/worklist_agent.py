"""Worklist agent implementation.

This module provides the facade that wires adapters, the snooze store, the
aggregation engine and the action dispatcher from application settings.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from worklist_agent.auth import GoogleTokenProvider, StaticTokenProvider
from worklist_agent.config import Settings
from worklist_agent.devops import DevOpsAdapter
from worklist_agent.engine import ActionDispatcher, ActionParams, AggregationEngine
from worklist_agent.engine.aggregator import FailureReporter
from worklist_agent.gmail import GmailAdapter
from worklist_agent.models import (
    ActionOutcome,
    RefreshState,
    TaskAction,
    TaskSource,
    WorklistResult,
)
from worklist_agent.outlook import OutlookAdapter
from worklist_agent.snooze import SnoozeStore, resolve_timezone
from worklist_agent.sources import SourceAdapter

logger = structlog.get_logger()


def build_adapters(settings: Settings) -> list[SourceAdapter]:
    """Create an adapter for every source that has credentials configured.

    Args:
        settings: Application settings.

    Returns:
        Adapters in a stable order: Gmail, Outlook, Azure DevOps.
    """

    adapters: list[SourceAdapter] = []

    if settings.gmail_token_path.exists() or settings.gmail_credentials_path.exists():
        adapters.append(GmailAdapter(GoogleTokenProvider(settings), settings))
    else:
        logger.info("source_not_configured", source=TaskSource.GMAIL.value)

    if settings.outlook_access_token is not None:
        token = StaticTokenProvider(settings.outlook_access_token.get_secret_value())
        adapters.append(OutlookAdapter(token, settings))
    else:
        logger.info("source_not_configured", source=TaskSource.OUTLOOK.value)

    if (
        settings.devops_access_token is not None
        and settings.devops_organization
        and settings.devops_project
    ):
        token = StaticTokenProvider(settings.devops_access_token.get_secret_value())
        adapters.append(DevOpsAdapter(token, settings))
    else:
        logger.info("source_not_configured", source=TaskSource.AZURE_DEVOPS.value)

    return adapters


class WorklistAgent:
    """Main worklist agent.

    This agent coordinates fetching the unified worklist and performing
    actions on its tasks. Callers own the refresh state between passes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        adapters: Sequence[SourceAdapter] | None = None,
        snooze_store: SnoozeStore | None = None,
        failure_reporter: FailureReporter | None = None,
    ) -> None:
        """Initialize the worklist agent.

        Args:
            settings: Application settings. If None, uses default settings.
            adapters: Source adapters. If None, builds them from settings.
            snooze_store: Snooze store. If None, opens the configured database.
            failure_reporter: Receives isolated source failures.
        """
        from worklist_agent.config import get_settings

        self.settings = settings or get_settings()
        self.adapters = list(adapters) if adapters is not None else build_adapters(self.settings)

        if snooze_store is None:
            snooze_store = SnoozeStore(self.settings.snooze_db_path)
            snooze_store.initialize()
        self.snooze_store = snooze_store

        self.engine = AggregationEngine(
            self.adapters,
            self.snooze_store,
            fetch_timeout=self.settings.fetch_timeout_seconds,
            failure_reporter=failure_reporter,
        )
        self.dispatcher = ActionDispatcher(
            self.adapters,
            self.snooze_store,
            tz=resolve_timezone(self.settings.snooze_timezone),
            wake_hour=self.settings.snooze_wake_hour,
        )
        logger.info(
            "worklist_agent_initialized",
            sources=[a.source.value for a in self.adapters],
        )

    async def refresh(self, state: RefreshState | None = None) -> WorklistResult:
        """Fetch the unified worklist.

        Args:
            state: Refresh state returned by the previous pass, if any.

        Returns:
            The merged, snooze-filtered and sorted worklist.
        """
        return await self.engine.get_unified_worklist(state)

    async def perform_action(
        self,
        action: TaskAction | str,
        source: TaskSource | str,
        task_id: str,
        params: ActionParams | None = None,
    ) -> ActionOutcome:
        """Perform an action on one task. See ``ActionDispatcher.perform_action``."""
        return await self.dispatcher.perform_action(action, source, task_id, params)

    async def aclose(self) -> None:
        """Release every adapter's transport."""
        for adapter in self.adapters:
            await adapter.aclose()

    async def __aenter__(self) -> WorklistAgent:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
