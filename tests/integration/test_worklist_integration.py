"""Integration tests wiring real adapters to mocked remote services.

Gmail, Graph and Azure DevOps are replaced by in-process fakes; everything
between them and the caller (token providers, adapters, aggregation, the
SQLite snooze store and the dispatcher) is real.
"""

from __future__ import annotations

import json

import httpx
import pytest

from worklist_agent.agent import WorklistAgent
from worklist_agent.auth import StaticTokenProvider
from worklist_agent.devops import DevOpsAdapter
from worklist_agent.engine import ActionParams
from worklist_agent.exceptions import ActionFailedError
from worklist_agent.gmail import GmailAdapter, GmailClient
from worklist_agent.models import TaskPriority, TaskSource
from worklist_agent.outlook import OutlookAdapter
from worklist_agent.snooze import SnoozeDuration


class _Request:
    def __init__(self, result):
        self._result = result

    def execute(self):
        return self._result


class GmailStub:
    """A single starred message; modify removes it from the results."""

    def __init__(self) -> None:
        self.archived: list[str] = []

    def users(self):
        return self

    def messages(self):
        return self

    def list(self, **kwargs):
        ids = [] if "g1" in self.archived else [{"id": "g1"}]
        return _Request({"messages": ids})

    def get(self, **kwargs):
        return _Request(
            {
                "id": kwargs["id"],
                "labelIds": ["INBOX", "STARRED"],
                "internalDate": "1709553600000",
                "payload": {
                    "headers": [
                        {"name": "From", "value": "CFO <cfo@example.com>"},
                        {"name": "Subject", "value": "Budget sign-off"},
                    ]
                },
            }
        )

    def modify(self, **kwargs):
        self.archived.append(kwargs["id"])
        return _Request({})


def graph_handler(request: httpx.Request) -> httpx.Response:
    if request.method == "GET":
        return httpx.Response(
            200,
            json={
                "value": [
                    {
                        "id": "o1",
                        "subject": "Incident review",
                        "from": {"emailAddress": {"name": "SRE", "address": "sre@example.com"}},
                        "receivedDateTime": "2024-03-04T13:00:00Z",
                        "importance": "high",
                        "flag": {"flagStatus": "flagged"},
                        "isRead": False,
                    }
                ]
            },
        )
    return httpx.Response(503)


def devops_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/wiql"):
        return httpx.Response(200, json={"workItems": [{"id": 42}]})
    if path.endswith("/workitemsbatch"):
        return httpx.Response(
            200,
            json={
                "count": 1,
                "value": [
                    {
                        "id": 42,
                        "fields": {
                            "System.Title": "Login fails on Safari",
                            "System.State": "Active",
                            "System.WorkItemType": "Bug",
                            "Microsoft.VSTS.Common.Priority": 2,
                            "System.ChangedDate": "2024-03-04T11:00:00Z",
                        },
                    }
                ],
            },
        )
    if request.method == "PATCH":
        body = json.loads(request.content)
        assert body[0]["value"] == "Closed"
        return httpx.Response(200, json={"id": 42})
    return httpx.Response(404)


@pytest.mark.integration
class TestWorklistIntegration:
    """End-to-end worklist scenarios."""

    @pytest.fixture
    def gmail_stub(self) -> GmailStub:
        return GmailStub()

    @pytest.fixture
    def agent(self, mock_settings, gmail_stub) -> WorklistAgent:
        gmail = GmailAdapter(
            StaticTokenProvider("google"),
            mock_settings,
            client=GmailClient(mock_settings, service_factory=lambda token: gmail_stub),
        )
        outlook = OutlookAdapter(
            StaticTokenProvider("graph"),
            mock_settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(graph_handler)),
        )
        devops = DevOpsAdapter(
            StaticTokenProvider("pat"),
            mock_settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(devops_handler)),
        )
        return WorklistAgent(mock_settings, adapters=[gmail, outlook, devops])

    @pytest.mark.asyncio
    async def test_unified_worklist_across_sources(self, agent) -> None:
        """Test that all three sources merge into one sorted worklist."""
        result = await agent.refresh()

        assert [(t.source, t.id) for t in result.tasks] == [
            (TaskSource.OUTLOOK, "o1"),
            (TaskSource.GMAIL, "g1"),
            (TaskSource.AZURE_DEVOPS, "42"),
        ]
        assert [t.priority for t in result.tasks] == [
            TaskPriority.URGENT,
            TaskPriority.HIGH,
            TaskPriority.HIGH,
        ]
        assert result.is_partial is False

    @pytest.mark.asyncio
    async def test_actions_and_snooze(self, agent, gmail_stub) -> None:
        """Test archive, complete, snooze and a failed remote action."""
        await agent.perform_action("archive", "gmail", "g1")
        await agent.perform_action("complete", "azure_devops", "42")
        await agent.perform_action(
            "snooze", "azure_devops", "42", ActionParams(duration=SnoozeDuration.NEXT_WEEK)
        )

        with pytest.raises(ActionFailedError):
            await agent.perform_action("archive", "outlook", "o1")

        result = await agent.refresh()

        assert gmail_stub.archived == ["g1"]
        assert [t.key for t in result.tasks] == [(TaskSource.OUTLOOK, "o1")]
        assert result.snoozed == 1

        await agent.aclose()
