"""Gmail source adapter: starred or important mail."""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from worklist_agent.auth import AccessTokenProvider
from worklist_agent.config import Settings
from worklist_agent.exceptions import RequestRejectedError
from worklist_agent.gmail.client import GmailClient
from worklist_agent.gmail.parsing import message_to_task
from worklist_agent.gmail.schemas import GmailMessage, ModifyMessageRequest
from worklist_agent.models import FetchResult, Task, TaskAction, TaskSource
from worklist_agent.sources.base import SourceAdapter
from worklist_agent.utils import now_utc

logger = structlog.get_logger()


class GmailAdapter(SourceAdapter):
    """Adapter over the Gmail API.

    Archiving removes the ``INBOX`` label; the message stays in All Mail.
    """

    source = TaskSource.GMAIL
    supported_actions = frozenset({TaskAction.ARCHIVE})

    def __init__(
        self,
        token_provider: AccessTokenProvider,
        settings: Settings | None = None,
        client: GmailClient | None = None,
    ) -> None:
        from worklist_agent.config import get_settings

        super().__init__(token_provider)
        self.settings = settings or get_settings()
        self._client = client or GmailClient(self.settings)

    async def fetch_actionable(self) -> FetchResult:
        token = await self._access_token()
        fetched_at = now_utc()

        refs = await self._client.list_messages(
            token,
            query=self.settings.gmail_query,
            max_results=self.settings.gmail_max_results,
        )

        tasks: list[Task] = []
        skipped = 0
        for ref in refs:
            try:
                raw = await self._client.get_message(token, ref.id)
            except RequestRejectedError as exc:
                if exc.status_code != 404:
                    raise
                # Deleted between list and get.
                skipped += 1
                logger.info("gmail_message_vanished", message_id=ref.id)
                continue

            try:
                message = GmailMessage.model_validate(raw)
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "gmail_message_skipped",
                    message_id=ref.id,
                    errors=exc.error_count(),
                )
                continue

            tasks.append(message_to_task(message, fetched_at=fetched_at))

        logger.info("gmail_fetch_complete", task_count=len(tasks), skipped=skipped)
        return FetchResult(source=self.source, tasks=tuple(tasks), skipped=skipped)

    async def archive(self, task_id: str) -> None:
        token = await self._access_token()
        # Removing a label the message no longer has is a no-op on Gmail's side.
        await self._client.modify_message(
            token,
            task_id,
            ModifyMessageRequest(remove_label_ids=["INBOX"]),
        )
        logger.info("gmail_message_archived", message_id=task_id)
