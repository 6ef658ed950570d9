"""Utility functions for Worklist Agent."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime, timezone
from typing import TypeVar

T = TypeVar("T")

UNKNOWN_ACTOR = "Unknown"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso8601(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp such as ``2024-03-01T09:30:00.1234567Z``.

    Returns None when the value is missing or unparsable.
    """

    if not value or not isinstance(value, str):
        return None

    raw = value.strip()
    # ISO-8601 parsing: allow trailing Z.
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"

    # Graph and DevOps emit up to 7 fractional digits; fromisoformat accepts 6.
    if "." in raw:
        head, _, rest = raw.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        raw = f"{head}.{digits[:6].ljust(6, '0')}{rest}" if digits else f"{head}{rest}"

    try:
        return ensure_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None


def parse_address_header(value: str | None) -> tuple[str, str]:
    """Split ``"Display Name <address>"`` into (name, address).

    A value without a bracketed address is used as both name and address,
    and an empty display name falls back to the address.
    """

    if value is None or not value.strip():
        return UNKNOWN_ACTOR, UNKNOWN_ACTOR

    text = value.strip()
    open_idx = text.find("<")
    close_idx = text.find(">", open_idx + 1) if open_idx >= 0 else -1
    if open_idx < 0 or close_idx < 0:
        return text, text

    name = text[:open_idx].strip().strip('"').strip()
    address = text[open_idx + 1 : close_idx].strip()
    if not address:
        address = name or UNKNOWN_ACTOR
    return (name or address), address


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items."""

    if size <= 0:
        raise ValueError("size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
