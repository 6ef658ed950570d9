"""Common contract implemented by every source adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from worklist_agent.auth import AccessTokenProvider
from worklist_agent.exceptions import (
    AuthenticationError,
    ConfigurationError,
    UnauthorizedError,
    UnsupportedActionError,
)
from worklist_agent.models import FetchResult, TaskAction, TaskSource


class SourceAdapter(ABC):
    """Translates one remote service into unified tasks and actions.

    An adapter instance owns its transport and token state. It is only
    used through its async methods and is never shared between sources.
    """

    source: ClassVar[TaskSource]
    supported_actions: ClassVar[frozenset[TaskAction]] = frozenset()

    def __init__(self, token_provider: AccessTokenProvider) -> None:
        self._token_provider = token_provider

    @abstractmethod
    async def fetch_actionable(self) -> FetchResult:
        """Fetch and normalize the source's actionable items.

        Returns:
            FetchResult with every decodable item and the number skipped.

        Raises:
            AdapterError: If the fetch as a whole fails.
        """

    async def archive(self, task_id: str) -> None:
        """Remove the item from the source's active inbox or queue."""

        raise UnsupportedActionError(f"{self.source.value} does not support archive")

    async def complete(self, task_id: str) -> None:
        """Move the item to a terminal workflow state."""

        raise UnsupportedActionError(f"{self.source.value} does not support complete")

    def supports(self, action: TaskAction) -> bool:
        return action in self.supported_actions

    async def aclose(self) -> None:
        """Release transports owned by the adapter."""

    async def _access_token(self) -> str:
        try:
            return await self._token_provider.get_access_token()
        except (AuthenticationError, ConfigurationError) as exc:
            raise UnauthorizedError(str(exc), source=self.source) from exc
