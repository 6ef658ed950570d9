"""HTTP helpers shared by the httpx-based adapters.

Every remote failure is translated into one of the ``AdapterError``
subclasses here so that adapters agree on what a status code means.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from worklist_agent.exceptions import (
    AdapterError,
    MalformedResponseError,
    RateLimitedError,
    RequestRejectedError,
    UnauthorizedError,
    UnreachableError,
)
from worklist_agent.models import TaskSource

logger = structlog.get_logger()

_RATE_LIMIT_REASONS = {"ratelimitexceeded", "userratelimitexceeded", "quotaexceeded"}


def error_for_status(
    status: int,
    *,
    source: TaskSource,
    detail: str = "",
    reason: str | None = None,
    retry_after: float | None = None,
) -> AdapterError:
    """Map a non-success HTTP status to the matching adapter error."""

    message = f"{source.value} returned HTTP {status}"
    if detail:
        message = f"{message}: {detail}"

    if status == 429 or (status == 403 and (reason or "").lower() in _RATE_LIMIT_REASONS):
        return RateLimitedError(message, source=source, status_code=status, retry_after=retry_after)
    if status in (401, 403):
        return UnauthorizedError(message, source=source, status_code=status)
    if status >= 500:
        return UnreachableError(message, source=source, status_code=status)
    return RequestRejectedError(message, source=source, status_code=status)


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def build_client(timeout: float, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create the AsyncClient an adapter owns for its lifetime."""

    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: TaskSource,
    token: str,
    params: dict[str, str] | None = None,
    body: Any = None,
    content_type: str | None = None,
    headers: dict[str, str] | None = None,
    fetch: bool = False,
) -> httpx.Response:
    """Send one authorized request and check its status.

    Args:
        headers: Extra request headers.
        fetch: Pure reads must answer exactly 200; mutations accept any 2xx.

    Raises:
        AdapterError: On transport failure or an unexpected status.
    """

    headers = {"Authorization": f"Bearer {token}", "Accept": "application/json", **(headers or {})}

    try:
        if body is not None and content_type:
            headers["Content-Type"] = content_type
            response = await client.request(
                method,
                url,
                params=params,
                content=json.dumps(body).encode("utf-8"),
                headers=headers,
            )
        else:
            response = await client.request(method, url, params=params, json=body, headers=headers)
    except httpx.TimeoutException as exc:
        logger.warning("http_request_timed_out", source=source.value, method=method, url=url)
        raise UnreachableError(f"{source.value} request timed out", source=source) from exc
    except httpx.HTTPError as exc:
        logger.warning(
            "http_request_failed", source=source.value, method=method, url=url, error=str(exc)
        )
        raise UnreachableError(f"{source.value} unreachable: {exc}", source=source) from exc

    status = response.status_code
    if fetch and status == 200:
        return response
    if not fetch and 200 <= status < 300:
        return response

    if 200 <= status < 300:
        raise MalformedResponseError(
            f"{source.value} answered a read with HTTP {status}", source=source, status_code=status
        )

    logger.warning(
        "http_request_rejected",
        source=source.value,
        method=method,
        url=url,
        status_code=status,
        body=response.text[:500],
    )
    raise error_for_status(
        status,
        source=source,
        detail=response.text[:200],
        reason=_error_reason(response),
        retry_after=parse_retry_after(response.headers.get("Retry-After")),
    )


def decode_json(response: httpx.Response, *, source: TaskSource) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError(
            f"{source.value} returned a body that is not JSON",
            source=source,
            status_code=response.status_code,
        ) from exc


def _error_reason(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        return str(code) if code else None
    return None
