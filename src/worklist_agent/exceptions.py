"""Custom exceptions for Worklist Agent."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worklist_agent.models import SourceFailure, TaskSource


class WorklistError(Exception):
    """Base exception for all Worklist Agent errors."""


class ConfigurationError(WorklistError):
    """Exception raised for configuration related errors."""


class AuthenticationError(WorklistError):
    """Exception raised when an access token cannot be obtained."""


class AdapterErrorKind(str, Enum):
    """Failure categories shared by every source adapter."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UNREACHABLE = "unreachable"
    MALFORMED_RESPONSE = "malformed_response"
    REQUEST_REJECTED = "request_rejected"


class AdapterError(WorklistError):
    """Exception raised when a remote source call fails."""

    kind: AdapterErrorKind = AdapterErrorKind.UNREACHABLE

    def __init__(
        self,
        message: str,
        *,
        source: TaskSource | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class UnauthorizedError(AdapterError):
    """Token missing, invalid or expired. Surface for re-authentication."""

    kind = AdapterErrorKind.UNAUTHORIZED


class RateLimitedError(AdapterError):
    """The remote service throttled the request."""

    kind = AdapterErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        source: TaskSource | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, source=source, status_code=status_code)
        self.retry_after = retry_after


class UnreachableError(AdapterError):
    """Transport failure, timeout or 5xx from the remote service."""

    kind = AdapterErrorKind.UNREACHABLE


class MalformedResponseError(AdapterError):
    """A response body did not match the expected schema."""

    kind = AdapterErrorKind.MALFORMED_RESPONSE


class RequestRejectedError(AdapterError):
    """The remote service refused the request (e.g. 400, 404, 409)."""

    kind = AdapterErrorKind.REQUEST_REJECTED


class DispatchError(WorklistError):
    """Base exception for user-initiated action failures."""


class UnsupportedActionError(DispatchError):
    """The action has no meaning for the task's source."""


class UnknownSourceError(DispatchError):
    """No adapter is registered for the requested source."""


class InvalidDurationError(DispatchError):
    """A snooze was requested with a wake time that is not in the future."""


class ActionFailedError(DispatchError):
    """The remote mutation behind an action failed."""

    def __init__(self, message: str, *, adapter_error: AdapterError) -> None:
        super().__init__(message)
        self.adapter_error = adapter_error


class WorklistUnavailableError(WorklistError):
    """No source produced a result during aggregation."""

    def __init__(self, message: str, *, failures: list[SourceFailure] | None = None) -> None:
        super().__init__(message)
        self.failures = list(failures or [])
