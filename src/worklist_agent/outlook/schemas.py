"""Typed request/response structures for the Microsoft Graph mail endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SELECT_FIELDS: tuple[str, ...] = (
    "id",
    "subject",
    "from",
    "receivedDateTime",
    "bodyPreview",
    "importance",
    "flag",
    "isRead",
)


class _GraphModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GraphEmailAddressDetail(_GraphModel):
    name: str | None = None
    address: str | None = None


class GraphEmailAddress(_GraphModel):
    email_address: GraphEmailAddressDetail | None = Field(default=None, alias="emailAddress")


class GraphFlag(_GraphModel):
    flag_status: str | None = Field(default=None, alias="flagStatus")


class GraphMessage(_GraphModel):
    id: str
    subject: str | None = None
    sender: GraphEmailAddress | None = Field(default=None, alias="from")
    received_date_time: str | None = Field(default=None, alias="receivedDateTime")
    body_preview: str | None = Field(default=None, alias="bodyPreview")
    importance: str | None = None
    flag: GraphFlag | None = None
    is_read: bool | None = Field(default=None, alias="isRead")

    @property
    def is_flagged(self) -> bool:
        return bool(self.flag and (self.flag.flag_status or "").lower() == "flagged")

    @property
    def is_high_importance(self) -> bool:
        return (self.importance or "").lower() == "high"


class GraphMessagesEnvelope(_GraphModel):
    """``GET /me/messages`` response. Items are validated one at a time."""

    value: list[Any]
    next_link: str | None = Field(default=None, alias="@odata.nextLink")


class MoveMessageRequest(_GraphModel):
    """Body of ``POST /me/messages/{id}/move``."""

    destination_id: str = Field(alias="destinationId")

    def to_body(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
