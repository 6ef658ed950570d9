"""Typed request/response structures for the Gmail API endpoints we call."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _GmailModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GmailHeader(_GmailModel):
    name: str
    value: str


class GmailPayload(_GmailModel):
    headers: list[GmailHeader] | None = None


class GmailMessageRef(_GmailModel):
    """Entry of ``users.messages.list`` (ids only)."""

    id: str
    thread_id: str | None = Field(default=None, alias="threadId")


class GmailMessageList(_GmailModel):
    messages: list[GmailMessageRef] | None = None
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
    result_size_estimate: int | None = Field(default=None, alias="resultSizeEstimate")


class GmailMessage(_GmailModel):
    """``users.messages.get`` with ``format=metadata``."""

    id: str
    thread_id: str | None = Field(default=None, alias="threadId")
    label_ids: list[str] | None = Field(default=None, alias="labelIds")
    snippet: str | None = None
    payload: GmailPayload | None = None
    # Milliseconds since epoch, sent as a string.
    internal_date: str | int | None = Field(default=None, alias="internalDate")


class ModifyMessageRequest(_GmailModel):
    """Body of ``users.messages.modify``."""

    add_label_ids: list[str] = Field(default_factory=list, alias="addLabelIds")
    remove_label_ids: list[str] = Field(default_factory=list, alias="removeLabelIds")

    def to_body(self) -> dict[str, list[str]]:
        return self.model_dump(by_alias=True, exclude_defaults=True)
