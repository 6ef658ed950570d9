"""Azure DevOps source adapter: open work items assigned to the current user.

Fetching is a two-step pattern: a WIQL query returns ids, then
``workitemsbatch`` returns the fields for those ids in chunks.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from worklist_agent.auth import AccessTokenProvider
from worklist_agent.config import Settings
from worklist_agent.devops.parsing import work_item_to_task
from worklist_agent.devops.schemas import (
    BATCH_FIELDS,
    BATCH_LIMIT,
    DevOpsWorkItem,
    JsonPatchOperation,
    WiqlRequest,
    WiqlResponse,
    WorkItemsBatchRequest,
    WorkItemsBatchResponse,
)
from worklist_agent.exceptions import ConfigurationError, MalformedResponseError, RequestRejectedError
from worklist_agent.models import FetchResult, Task, TaskAction, TaskSource
from worklist_agent.sources.base import SourceAdapter
from worklist_agent.sources.http import build_client, decode_json, send
from worklist_agent.utils import chunked, now_utc

logger = structlog.get_logger()

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


def _wiql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class DevOpsAdapter(SourceAdapter):
    """Adapter over the Azure DevOps work item tracking API."""

    source = TaskSource.AZURE_DEVOPS
    supported_actions = frozenset({TaskAction.COMPLETE})

    def __init__(
        self,
        token_provider: AccessTokenProvider,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        from worklist_agent.config import get_settings

        super().__init__(token_provider)
        self.settings = settings or get_settings()

        organization = self.settings.devops_organization
        project = self.settings.devops_project
        if not organization or not project:
            raise ConfigurationError(
                "Azure DevOps requires WORKLIST_DEVOPS_ORGANIZATION and WORKLIST_DEVOPS_PROJECT"
            )

        self._base_url = self.settings.devops_base_url.rstrip("/")
        self._org_url = f"{self._base_url}/{quote(organization, safe='')}"
        self._project_url = f"{self._org_url}/{quote(project, safe='')}"
        self._owns_client = client is None
        self._client = client or build_client(self.settings.request_timeout_seconds)

    @property
    def wiql_query(self) -> str:
        closed = _wiql_literal(self.settings.devops_closed_state)
        return (
            "SELECT [System.Id] FROM WorkItems "
            "WHERE [System.AssignedTo] = @Me "
            f"AND [System.State] <> {closed} "
            "AND [System.State] <> 'Removed' "
            "ORDER BY [Microsoft.VSTS.Common.Priority] ASC, [System.ChangedDate] DESC"
        )

    def web_url(self, work_item_id: int | str) -> str:
        return f"{self._project_url}/_workitems/edit/{work_item_id}"

    async def fetch_actionable(self) -> FetchResult:
        token = await self._access_token()
        fetched_at = now_utc()
        max_results = self.settings.devops_max_results

        response = await send(
            self._client,
            "POST",
            f"{self._project_url}/_apis/wit/wiql",
            source=self.source,
            token=token,
            params={"api-version": self.settings.devops_api_version, "$top": str(max_results)},
            body=WiqlRequest(query=self.wiql_query).model_dump(),
            fetch=True,
        )
        try:
            wiql = WiqlResponse.model_validate(decode_json(response, source=self.source))
        except ValidationError as exc:
            raise MalformedResponseError(
                "wiql response did not match schema", source=self.source
            ) from exc

        ids = [ref.id for ref in (wiql.work_items or [])][:max_results]
        if not ids:
            logger.info("devops_fetch_complete", task_count=0, skipped=0)
            return FetchResult(source=self.source, tasks=(), skipped=0)

        tasks: list[Task] = []
        skipped = 0
        for chunk in chunked(ids, BATCH_LIMIT):
            items = await self._fetch_batch(token, chunk)
            for item in items:
                try:
                    work_item = DevOpsWorkItem.model_validate(item)
                except ValidationError as exc:
                    skipped += 1
                    logger.warning("devops_work_item_skipped", errors=exc.error_count())
                    continue
                tasks.append(
                    work_item_to_task(
                        work_item,
                        fetched_at=fetched_at,
                        web_url=self.web_url(work_item.id),
                    )
                )

        logger.info("devops_fetch_complete", task_count=len(tasks), skipped=skipped)
        return FetchResult(source=self.source, tasks=tuple(tasks), skipped=skipped)

    async def complete(self, task_id: str) -> None:
        """Move the work item to the closed state with a JSON Patch update.

        Only ``System.State`` is sent so concurrent edits to other fields
        are preserved.
        """

        if not task_id.isdigit():
            raise RequestRejectedError(
                f"azure_devops work item id must be numeric, got {task_id!r}",
                source=self.source,
            )

        token = await self._access_token()
        patch = [
            JsonPatchOperation(
                op="add",
                path="/fields/System.State",
                value=self.settings.devops_closed_state,
            ).model_dump()
        ]
        await send(
            self._client,
            "PATCH",
            f"{self._org_url}/_apis/wit/workitems/{task_id}",
            source=self.source,
            token=token,
            params={"api-version": self.settings.devops_api_version},
            body=patch,
            content_type=JSON_PATCH_CONTENT_TYPE,
        )
        logger.info(
            "devops_work_item_completed",
            work_item_id=task_id,
            state=self.settings.devops_closed_state,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _fetch_batch(self, token: str, ids: list[int]) -> list[dict]:
        response = await send(
            self._client,
            "POST",
            f"{self._org_url}/_apis/wit/workitemsbatch",
            source=self.source,
            token=token,
            params={"api-version": self.settings.devops_api_version},
            body=WorkItemsBatchRequest(ids=ids, fields=list(BATCH_FIELDS)).model_dump(),
            fetch=True,
        )
        try:
            batch = WorkItemsBatchResponse.model_validate(decode_json(response, source=self.source))
        except ValidationError as exc:
            raise MalformedResponseError(
                "workitemsbatch response did not match schema", source=self.source
            ) from exc
        return batch.value
