"""Gmail API client implementation.

This module provides a client for interacting with the Gmail API.

Notes:
    The Google API client is synchronous. This project wraps those calls using
    `asyncio.to_thread` so the rest of the codebase can remain async-friendly.
    The underlying httplib2 connection is not thread-safe, so every call goes
    through a single lock per client. The lock is taken inside the worker
    thread, which keeps holding it after the awaiting coroutine is cancelled.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from worklist_agent.config import Settings
from worklist_agent.exceptions import (
    AdapterError,
    MalformedResponseError,
    UnauthorizedError,
    UnreachableError,
)
from worklist_agent.gmail.schemas import GmailMessageList, GmailMessageRef, ModifyMessageRequest
from worklist_agent.models import TaskSource
from worklist_agent.sources.http import error_for_status

logger = structlog.get_logger()

ServiceFactory = Callable[[str], Any]

METADATA_HEADERS: tuple[str, ...] = ("From", "Subject")

_USER_ID = "me"


class GmailClient:
    """Gmail API client for message operations.

    A ``gmail v1`` service is built from the caller's bearer token and reused
    until the token changes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        service_factory: ServiceFactory | None = None,
    ) -> None:
        """Initialize Gmail client.

        Args:
            settings: Application settings. If None, uses default settings.
            service_factory: Builds a Gmail service for an access token.
                Defaults to the discovery-based google-api-python-client service.
        """
        from worklist_agent.config import get_settings

        self.settings = settings or get_settings()
        self._service_factory = service_factory or self._build_service
        self._service: Any | None = None
        self._service_token: str | None = None
        self._lock = threading.Lock()
        logger.info("gmail_client_initialized")

    async def list_messages(
        self,
        token: str,
        *,
        query: str | None,
        max_results: int,
    ) -> list[GmailMessageRef]:
        """List message ids matching a Gmail search query.

        Args:
            token: OAuth access token.
            query: Gmail search query string.
            max_results: Maximum number of messages to return.

        Returns:
            Message references, newest first as returned by Gmail.

        Raises:
            AdapterError: If the API request fails or the response is malformed.
        """

        logger.info("listing_messages", max_results=max_results, query=query)
        return await self._call(token, self._list_messages_sync, max_results, query)

    async def get_message(self, token: str, message_id: str) -> dict[str, Any]:
        """Get a message's metadata (labels, snippet, From and Subject headers).

        Raises:
            AdapterError: If the API request fails.
        """

        logger.debug("getting_message", message_id=message_id)
        return await self._call(token, self._get_message_sync, message_id)

    async def modify_message(
        self,
        token: str,
        message_id: str,
        request: ModifyMessageRequest,
    ) -> dict[str, Any]:
        """Add or remove labels on a message.

        Raises:
            AdapterError: If the API request fails.
        """

        logger.info(
            "modifying_message",
            message_id=message_id,
            add_label_ids=request.add_label_ids,
            remove_label_ids=request.remove_label_ids,
        )
        return await self._call(token, self._modify_message_sync, message_id, request.to_body())

    async def _call(self, token: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(self._invoke, token, func, *args)
        except AdapterError:
            raise
        except Exception as exc:  # noqa: BLE001
            error = self._translate_error(exc)
            logger.warning(
                "gmail_request_failed",
                operation=func.__name__,
                kind=error.kind.value,
                status_code=error.status_code,
                error=str(exc),
            )
            raise error from exc

    def _invoke(self, token: str, func: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            if self._service is None or self._service_token != token:
                self._service = self._service_factory(token)
                self._service_token = token
            return func(*args)

    def _translate_error(self, exc: Exception) -> AdapterError:
        from google.auth.exceptions import RefreshError
        from googleapiclient.errors import HttpError

        if isinstance(exc, HttpError):
            status = getattr(getattr(exc, "resp", None), "status", None)
            reason: str | None = None
            details = getattr(exc, "error_details", None)
            if isinstance(details, list) and details:
                first = details[0]
                if isinstance(first, dict) and first.get("reason"):
                    reason = str(first["reason"])
            if status is None:
                return UnreachableError(str(exc), source=TaskSource.GMAIL)
            return error_for_status(
                int(status),
                source=TaskSource.GMAIL,
                detail=str(getattr(exc, "reason", "") or ""),
                reason=reason,
            )
        if isinstance(exc, RefreshError):
            return UnauthorizedError(str(exc), source=TaskSource.GMAIL)
        return UnreachableError(f"gmail unreachable: {exc}", source=TaskSource.GMAIL)

    def _build_service(self, token: str) -> Any:
        # Imported lazily to keep import-time cost low and tests fast.
        import httplib2
        from google.oauth2.credentials import Credentials
        from google_auth_httplib2 import AuthorizedHttp
        from googleapiclient.discovery import build

        creds = Credentials(token=token)
        http = AuthorizedHttp(creds, http=httplib2.Http(timeout=self.settings.request_timeout_seconds))
        # cache_discovery=False prevents writing discovery docs to disk.
        return build("gmail", "v1", http=http, cache_discovery=False)

    def _list_messages_sync(self, max_results: int, query: str | None) -> list[GmailMessageRef]:
        assert self._service is not None
        messages: list[GmailMessageRef] = []

        page_token: str | None = None
        while len(messages) < max_results:
            per_page = min(500, max_results - len(messages))
            request = (
                self._service.users()
                .messages()
                .list(userId=_USER_ID, maxResults=per_page, q=query, pageToken=page_token)
            )
            response = request.execute()
            try:
                page = GmailMessageList.model_validate(response)
            except ValidationError as exc:
                raise MalformedResponseError(
                    f"gmail message list did not match schema: {exc.error_count()} errors",
                    source=TaskSource.GMAIL,
                ) from exc

            messages.extend(page.messages or [])
            page_token = page.next_page_token
            if page_token is None:
                break

        return messages[:max_results]

    def _get_message_sync(self, message_id: str) -> dict[str, Any]:
        assert self._service is not None
        request = (
            self._service.users()
            .messages()
            .get(
                userId=_USER_ID,
                id=message_id,
                format="metadata",
                metadataHeaders=list(METADATA_HEADERS),
            )
        )
        return request.execute()

    def _modify_message_sync(self, message_id: str, body: dict[str, Any]) -> dict[str, Any]:
        assert self._service is not None
        request = self._service.users().messages().modify(userId=_USER_ID, id=message_id, body=body)
        return request.execute()
