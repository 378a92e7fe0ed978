"""Approval model and type-specific payload schemas.

Approvals gate structural changes to a project. Payloads are stored
opaquely and only validated against the schema for their type when an
approval is applied.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.base import BaseEntity
from src.models.timeline import DependencyInput


class ApprovalType(str, Enum):
    """Structural mutation requested by an approval."""

    PROJECT_EMAIL_LINK = "project_email_link"
    TIMELINE_ITEM_CREATE = "timeline_item_create"
    PROJECT_TASK_CREATE = "project_task_create"
    TIMELINE_ITEM_FROM_EMAIL = "timeline_item_from_email"


class ApprovalStatus(str, Enum):
    """Approval lifecycle: pending -> approved | declined."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class ApprovalAction(str, Enum):
    """Reviewer decision."""

    APPROVE = "approve"
    DECLINE = "decline"


class Approval(BaseEntity):
    """A pending or resolved request to mutate project state."""

    project_id: str | None = Field(default=None)
    type: str = Field(description="ApprovalType value; unknown types are stored")
    status: ApprovalStatus = Field(default=ApprovalStatus.PENDING)
    payload: dict[str, Any] = Field(default_factory=dict)
    requested_by: str | None = Field(default=None)
    created_by: str | None = Field(default=None)
    approver_id: str | None = Field(default=None)
    approved_at: datetime | None = Field(default=None)
    declined_at: datetime | None = Field(default=None)
    resolution_note: str | None = Field(default=None)

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING


class PayloadModel(BaseModel):
    """Base for payload schemas: accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TimelineSeed(PayloadModel):
    """Timeline item to create alongside a record link."""

    title: str | None = None
    type: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    lane: str | None = None
    territory: str | None = None
    metadata: dict[str, Any] | None = None
    dependencies: list[DependencyInput] = Field(default_factory=list)


class EmailLinkPayload(PayloadModel):
    """Payload of a project_email_link approval."""

    project_id: str | None = None
    email_id: str | None = None
    confidence: float | None = None
    source: str | None = None
    timeline_seed: TimelineSeed | None = None


class TimelineItemPayload(PayloadModel):
    """Payload of timeline_item_create / timeline_item_from_email approvals."""

    project_id: str | None = None
    title: str | None = None
    type: str | None = None
    kind: str | None = None
    description: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    due_at: str | None = None
    timezone: str | None = None
    lane: str | None = None
    territory: str | None = None
    priority: float | None = None
    metadata: dict[str, Any] | None = None
    links: dict[str, Any] | None = None
    email_id: str | None = None
    dependencies: list[DependencyInput] = Field(default_factory=list)


class ProjectTaskPayload(PayloadModel):
    """Payload of a project_task_create approval."""

    project_id: str | None = None
    title: str | None = None
    description: str | None = None
    status: str | None = None
    due_at: str | None = None
    priority: float | None = None
    assignee_id: str | None = None
