"""Access token providers.

Adapters never acquire or store credentials themselves; they ask an
``AccessTokenProvider`` for a bearer token before each remote call.

Notes:
    The Google auth libraries are synchronous. ``GoogleTokenProvider`` wraps
    them using `asyncio.to_thread` so the rest of the codebase can remain
    async-friendly.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog

from worklist_agent.config import Settings
from worklist_agent.exceptions import AuthenticationError, ConfigurationError

logger = structlog.get_logger()


@runtime_checkable
class AccessTokenProvider(Protocol):
    """Supplies bearer tokens for one remote service."""

    async def get_access_token(self) -> str: ...


class StaticTokenProvider:
    """Hands out a token obtained elsewhere (environment, secret store)."""

    def __init__(self, token: str) -> None:
        if not token:
            raise ConfigurationError("Access token must not be empty")
        self._token = token

    async def get_access_token(self) -> str:
        return self._token


class GoogleTokenProvider:
    """Google OAuth token backed by a local ``token.json``.

    The token is refreshed when expired. When no usable token exists the
    installed-app flow runs once and writes a new token file.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the provider.

        Args:
            settings: Application settings. If None, uses default settings.
        """
        from worklist_agent.config import get_settings

        self.settings = settings or get_settings()
        self._credentials: Any | None = None
        self._lock = asyncio.Lock()

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing or authorizing as needed.

        Raises:
            ConfigurationError: If neither a token file nor client credentials exist.
            AuthenticationError: If the token cannot be refreshed or obtained.
        """

        credentials_path = Path(self.settings.gmail_credentials_path)
        token_path = Path(self.settings.gmail_token_path)

        if not token_path.exists() and not credentials_path.exists():
            raise ConfigurationError(
                f"Gmail credentials file not found: {credentials_path}. "
                "Download OAuth client credentials from the Google Cloud console."
            )

        async with self._lock:
            try:
                self._credentials = await asyncio.to_thread(
                    self._load_credentials,
                    credentials_path,
                    token_path,
                    self.settings.gmail_scope,
                )
            except Exception as exc:  # noqa: BLE001
                logger.exception("google_token_acquisition_failed", error=str(exc))
                raise AuthenticationError(str(exc)) from exc

            return str(self._credentials.token)

    def _load_credentials(self, credentials_path: Path, token_path: Path, scope: str) -> Any:
        # Imported lazily to keep import-time cost low and tests fast.
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow

        creds = self._credentials
        if creds is not None and creds.valid:
            return creds

        if creds is None and token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), scopes=[scope])

        if creds is not None and creds.expired and creds.refresh_token:
            creds.refresh(Request())
            token_path.write_text(creds.to_json(), encoding="utf-8")
            logger.info("google_token_refreshed", token_path=str(token_path))

        if creds is None or not creds.valid:
            logger.info(
                "google_authorization_started",
                credentials_path=str(credentials_path),
                token_path=str(token_path),
                scope=scope,
            )
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=[scope])
            creds = flow.run_local_server(port=0)
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(creds.to_json(), encoding="utf-8")
            logger.info("google_authorization_completed")

        return creds
