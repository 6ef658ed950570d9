"""Unit tests for the worklist agent facade."""

from datetime import timedelta

import pytest
from pydantic import SecretStr

from conftest import T0, FakeAdapter, make_task
from worklist_agent.agent import WorklistAgent, build_adapters
from worklist_agent.devops import DevOpsAdapter
from worklist_agent.engine import ActionParams
from worklist_agent.gmail import GmailAdapter
from worklist_agent.models import TaskSource
from worklist_agent.outlook import OutlookAdapter


class TestBuildAdapters:
    """Test suite for settings-driven adapter construction."""

    def test_nothing_configured(self, mock_settings) -> None:
        settings = mock_settings.model_copy(update={"devops_organization": None})

        assert build_adapters(settings) == []

    @pytest.mark.asyncio
    async def test_every_source_configured(self, mock_settings) -> None:
        mock_settings.gmail_credentials_path.write_text("{}", encoding="utf-8")
        settings = mock_settings.model_copy(
            update={
                "outlook_access_token": SecretStr("graph-token"),
                "devops_access_token": SecretStr("pat"),
            }
        )

        adapters = build_adapters(settings)

        assert [type(a) for a in adapters] == [GmailAdapter, OutlookAdapter, DevOpsAdapter]
        for adapter in adapters:
            await adapter.aclose()

    def test_devops_needs_project(self, mock_settings) -> None:
        settings = mock_settings.model_copy(
            update={"devops_access_token": SecretStr("pat"), "devops_project": None}
        )

        assert build_adapters(settings) == []


class TestWorklistAgent:
    """Test suite for WorklistAgent."""

    def test_agent_initialization_opens_store(self, mock_settings) -> None:
        agent = WorklistAgent(mock_settings, adapters=[])

        assert agent.settings is mock_settings
        assert mock_settings.snooze_db_path.exists()

    @pytest.mark.asyncio
    async def test_refresh_and_snooze_round(self, mock_settings, snooze_store) -> None:
        adapter = FakeAdapter(TaskSource.GMAIL, [make_task("m1"), make_task("m2")])

        async with WorklistAgent(mock_settings, adapters=[adapter], snooze_store=snooze_store) as agent:
            first = await agent.refresh()
            await agent.perform_action("snooze", "gmail", "m1", ActionParams(wake_at=T0 + timedelta(days=3650)))
            second = await agent.refresh(first.refresh_state)

        assert {t.id for t in first.tasks} == {"m1", "m2"}
        assert [t.id for t in second.tasks] == ["m2"]
        assert adapter.closed is True
