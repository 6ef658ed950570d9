"""Outlook source adapter: flagged or high-importance mail via Microsoft Graph.

Graph rejects ``$filter`` on flag/importance combined with ``$orderby`` as an
inefficient filter, so the most recent messages are fetched and filtered
here. Flagged or important mail older than the newest ``outlook_top``
messages is not seen.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from worklist_agent.auth import AccessTokenProvider
from worklist_agent.config import Settings
from worklist_agent.exceptions import MalformedResponseError
from worklist_agent.models import FetchResult, Task, TaskAction, TaskSource
from worklist_agent.outlook.parsing import graph_message_to_task, is_actionable
from worklist_agent.outlook.schemas import (
    SELECT_FIELDS,
    GraphMessage,
    GraphMessagesEnvelope,
    MoveMessageRequest,
)
from worklist_agent.sources.base import SourceAdapter
from worklist_agent.sources.http import build_client, decode_json, send
from worklist_agent.utils import now_utc

logger = structlog.get_logger()

ARCHIVE_FOLDER = "archive"

# Immutable ids survive a move, so archiving the same task twice hits the same message.
IMMUTABLE_ID_HEADERS = {"Prefer": 'IdType="ImmutableId"'}


class OutlookAdapter(SourceAdapter):
    """Adapter over Microsoft Graph mail. Archiving moves to the Archive folder."""

    source = TaskSource.OUTLOOK
    supported_actions = frozenset({TaskAction.ARCHIVE})

    def __init__(
        self,
        token_provider: AccessTokenProvider,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        from worklist_agent.config import get_settings

        super().__init__(token_provider)
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or build_client(self.settings.request_timeout_seconds)
        self._base_url = self.settings.graph_base_url.rstrip("/")

    async def fetch_actionable(self) -> FetchResult:
        token = await self._access_token()
        fetched_at = now_utc()

        response = await send(
            self._client,
            "GET",
            f"{self._base_url}/me/messages",
            source=self.source,
            token=token,
            params={
                "$select": ",".join(SELECT_FIELDS),
                "$orderby": "receivedDateTime desc",
                "$top": str(self.settings.outlook_top),
            },
            headers=IMMUTABLE_ID_HEADERS,
            fetch=True,
        )

        try:
            envelope = GraphMessagesEnvelope.model_validate(decode_json(response, source=self.source))
        except ValidationError as exc:
            raise MalformedResponseError(
                "graph message list did not match schema",
                source=self.source,
                status_code=response.status_code,
            ) from exc

        tasks: list[Task] = []
        skipped = 0
        for item in envelope.value:
            try:
                message = GraphMessage.model_validate(item)
            except ValidationError as exc:
                skipped += 1
                logger.warning("outlook_message_skipped", errors=exc.error_count())
                continue

            if is_actionable(message):
                tasks.append(graph_message_to_task(message, fetched_at=fetched_at))

        logger.info(
            "outlook_fetch_complete",
            scanned=len(envelope.value),
            task_count=len(tasks),
            skipped=skipped,
        )
        return FetchResult(source=self.source, tasks=tuple(tasks), skipped=skipped)

    async def archive(self, task_id: str) -> None:
        token = await self._access_token()
        await send(
            self._client,
            "POST",
            f"{self._base_url}/me/messages/{quote(task_id, safe='')}/move",
            source=self.source,
            token=token,
            body=MoveMessageRequest(destination_id=ARCHIVE_FOLDER).to_body(),
            headers=IMMUTABLE_ID_HEADERS,
        )
        logger.info("outlook_message_archived", message_id=task_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
