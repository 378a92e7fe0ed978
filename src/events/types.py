"""Typed audit events.

- ApprovalRequested: A pending approval was created
- ApprovalApproved: An approval was applied and resolved
- ApprovalDeclined: An approval was declined
- TimelineItemCreated / TimelineItemUpdated / TimelineItemDeleted
- DependenciesReplaced: An item's incoming edge set was swapped
- LaneReapplied: Auto-assignment was re-run for a lane
- RecordLinked / RecordUnlinked: Project/record link changes
"""

from pydantic import Field

from src.events.base import Event


class ApprovalRequested(Event):
    """Emitted when a pending approval is created."""

    aggregate_type: str = "Approval"
    approval_type: str = Field(description="Requested mutation type")
    project_id: str | None = Field(default=None)


class ApprovalApproved(Event):
    """Emitted after the applier ran and the approval was resolved."""

    aggregate_type: str = "Approval"
    approval_type: str
    project_id: str | None = Field(default=None)
    created_ids: list[str] = Field(
        default_factory=list, description="Rows written by the applier"
    )


class ApprovalDeclined(Event):
    """Emitted when an approval is declined."""

    aggregate_type: str = "Approval"
    approval_type: str
    project_id: str | None = Field(default=None)
    note: str | None = Field(default=None)


class TimelineItemCreated(Event):
    aggregate_type: str = "TimelineItem"
    project_id: str
    lane: str | None = Field(default=None)
    auto_assigned: bool = Field(
        default=False, description="Lane came from an auto-assign rule"
    )


class TimelineItemUpdated(Event):
    aggregate_type: str = "TimelineItem"
    project_id: str
    changed_fields: list[str] = Field(default_factory=list)


class TimelineItemDeleted(Event):
    aggregate_type: str = "TimelineItem"
    project_id: str


class DependenciesReplaced(Event):
    aggregate_type: str = "TimelineItem"
    project_id: str
    edge_count: int = Field(default=0)


class LaneReapplied(Event):
    """Emitted after a bulk lane reapplication."""

    aggregate_type: str = "LaneDefinition"
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0


class RecordLinked(Event):
    aggregate_type: str = "ProjectRecordLink"
    project_id: str
    record_id: str
    source: str
    rule_id: str | None = Field(default=None)


class RecordUnlinked(Event):
    aggregate_type: str = "ProjectRecordLink"
    project_id: str
    record_id: str
