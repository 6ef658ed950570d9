"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import structlog

from worklist_agent.exceptions import AdapterError
from worklist_agent.models import FetchResult, Task, TaskAction, TaskFlags, TaskSource
from worklist_agent.sources import SourceAdapter

T0 = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_settings(tmp_path):
    """Provide mock settings for testing."""
    from worklist_agent.config import Settings

    return Settings(
        gmail_credentials_path=tmp_path / "credentials.json",
        gmail_token_path=tmp_path / "token.json",
        devops_organization="contoso",
        devops_project="Web App",
        snooze_db_path=tmp_path / "snoozes.sqlite3",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def sample_email_data() -> dict:
    """Provide a Gmail message as returned with format=metadata."""
    return {
        "id": "msg123456",
        "threadId": "thread789",
        "labelIds": ["INBOX", "UNREAD", "IMPORTANT", "STARRED"],
        "snippet": "Can you review the Q3 numbers before Friday?",
        "internalDate": "1709553600000",
        "payload": {
            "headers": [
                {"name": "Subject", "value": "Q3 review"},
                {"name": "From", "value": "\"Dana Scully\" <dana@example.com>"},
            ],
        },
    }


@pytest.fixture
def t0() -> datetime:
    return T0


def make_task(
    task_id: str,
    source: TaskSource = TaskSource.GMAIL,
    timestamp: datetime = T0,
    *,
    important: bool = False,
    flagged: bool = False,
    title: str = "Task",
) -> Task:
    return Task(
        id=task_id,
        source=source,
        title=title,
        actor_name="Someone",
        actor_identifier="someone@example.com",
        timestamp=timestamp,
        flags=TaskFlags(is_important=important, is_flagged=flagged),
    )


class StaticTokens:
    """Token provider returning a fixed token."""

    def __init__(self, token: str = "test-token") -> None:
        self.token = token
        self.calls = 0

    async def get_access_token(self) -> str:
        self.calls += 1
        return self.token


class FakeAdapter(SourceAdapter):
    """In-memory adapter whose fetch result or failure is set by the test."""

    supported_actions = frozenset({TaskAction.ARCHIVE, TaskAction.COMPLETE})

    def __init__(
        self,
        source: TaskSource,
        tasks: list[Task] | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
        skipped: int = 0,
        supported: frozenset[TaskAction] | None = None,
    ) -> None:
        super().__init__(StaticTokens())
        self.source = source  # type: ignore[misc]
        self.tasks = list(tasks or [])
        self.error = error
        self.delay = delay
        self.skipped = skipped
        if supported is not None:
            self.supported_actions = supported  # type: ignore[misc]
        self.archived: list[str] = []
        self.completed: list[str] = []
        self.action_error: AdapterError | None = None
        self.closed = False

    async def fetch_actionable(self) -> FetchResult:
        if self.delay:
            import asyncio

            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return FetchResult(source=self.source, tasks=tuple(self.tasks), skipped=self.skipped)

    async def archive(self, task_id: str) -> None:
        if self.action_error is not None:
            raise self.action_error
        self.archived.append(task_id)

    async def complete(self, task_id: str) -> None:
        if self.action_error is not None:
            raise self.action_error
        self.completed.append(task_id)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def snooze_store(tmp_path):
    """Provide an initialized snooze store backed by a temporary file."""
    from worklist_agent.snooze import SnoozeStore

    store = SnoozeStore(tmp_path / "snoozes.sqlite3")
    store.initialize()
    return store
