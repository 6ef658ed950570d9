"""Configuration management for Worklist Agent.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the WORKLIST_ prefix (e.g., WORKLIST_DEVOPS_ORGANIZATION).
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKLIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gmail Configuration
    gmail_credentials_path: Path = Field(
        default=Path("credentials.json"),
        description="Path to Gmail API OAuth client credentials file",
    )
    gmail_token_path: Path = Field(
        default=Path("token.json"),
        description="Path to Gmail API token file",
    )
    gmail_scope: str = Field(
        default="https://www.googleapis.com/auth/gmail.modify",
        description=(
            "OAuth scope used for Gmail access. Archiving removes the INBOX label, "
            "which requires gmail.modify."
        ),
    )
    gmail_query: str = Field(
        default="is:starred OR is:important",
        description="Gmail search query selecting actionable messages",
    )
    gmail_max_results: int = Field(
        default=50,
        ge=1,
        description="Maximum number of Gmail messages to fetch per refresh",
    )

    # Microsoft Graph (Outlook) Configuration
    graph_base_url: str = Field(
        default="https://graph.microsoft.com/v1.0",
        description="Microsoft Graph API base URL",
    )
    outlook_access_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for Microsoft Graph mail access",
    )
    outlook_top: int = Field(
        default=100,
        ge=1,
        description="Number of most recent Outlook messages scanned for flags/importance",
    )

    # Azure DevOps Configuration
    devops_base_url: str = Field(
        default="https://dev.azure.com",
        description="Azure DevOps REST API base URL",
    )
    devops_organization: str | None = Field(
        default=None,
        description="Azure DevOps organization name",
    )
    devops_project: str | None = Field(
        default=None,
        description="Azure DevOps project name",
    )
    devops_access_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for Azure DevOps",
    )
    devops_max_results: int = Field(
        default=100,
        ge=1,
        description="Maximum number of open work items to fetch per refresh",
    )
    devops_closed_state: str = Field(
        default="Closed",
        description="Workflow state a work item is moved to when completed",
    )
    devops_api_version: str = Field(
        default="7.1",
        description="Azure DevOps REST API version",
    )

    # Network Configuration
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single HTTP request in seconds",
    )
    fetch_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for one source's complete fetch during aggregation",
    )

    # Snooze Configuration
    snooze_db_path: Path = Field(
        default=Path("worklist_snoozes.sqlite3"),
        description="Path to local SQLite database storing snoozed tasks",
    )
    snooze_wake_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Local hour used by the 'tomorrow' and 'next week' snooze presets",
    )
    snooze_timezone: str | None = Field(
        default=None,
        description="IANA timezone for snooze presets (default: system local time)",
    )
    snooze_cleanup_after_days: int = Field(
        default=7,
        ge=0,
        description="Expired snoozes older than this many days are removed by cleanup",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
