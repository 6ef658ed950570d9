"""Typed request/response structures for the Azure DevOps work item endpoints."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BATCH_FIELDS: tuple[str, ...] = (
    "System.Id",
    "System.Title",
    "System.State",
    "System.WorkItemType",
    "Microsoft.VSTS.Common.Priority",
    "System.ChangedDate",
    "System.AssignedTo",
)

# workitemsbatch accepts at most this many ids per request.
BATCH_LIMIT = 200


class _DevOpsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WiqlRequest(_DevOpsModel):
    query: str


class WiqlWorkItemRef(_DevOpsModel):
    id: int
    url: str | None = None


class WiqlResponse(_DevOpsModel):
    work_items: list[WiqlWorkItemRef] | None = Field(default=None, alias="workItems")


class WorkItemsBatchRequest(_DevOpsModel):
    ids: list[int]
    fields: list[str]


class WorkItemsBatchResponse(_DevOpsModel):
    """Items are validated one at a time so a bad item is skipped, not fatal."""

    count: int | None = None
    value: list[Any]


class IdentityRef(_DevOpsModel):
    display_name: str | None = Field(default=None, alias="displayName")
    unique_name: str | None = Field(default=None, alias="uniqueName")


class WorkItemFields(_DevOpsModel):
    title: str | None = Field(default=None, alias="System.Title")
    state: str | None = Field(default=None, alias="System.State")
    work_item_type: str | None = Field(default=None, alias="System.WorkItemType")
    priority: int | None = Field(default=None, alias="Microsoft.VSTS.Common.Priority")
    changed_date: str | None = Field(default=None, alias="System.ChangedDate")
    # Identity object on current API versions, "Name <address>" on older ones.
    assigned_to: IdentityRef | str | None = Field(default=None, alias="System.AssignedTo")


class DevOpsWorkItem(_DevOpsModel):
    id: int
    rev: int | None = None
    fields: WorkItemFields
    url: str | None = None


class JsonPatchOperation(_DevOpsModel):
    """One operation of an ``application/json-patch+json`` document."""

    op: Literal["add", "replace", "remove", "test"]
    path: str
    value: Any = None
