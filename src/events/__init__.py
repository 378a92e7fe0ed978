"""Audit event infrastructure.

Provides:
- Event: Base class for audit events
- EventStore: Append-only audit log persistence
"""

from src.events.base import Event
from src.events.store import EventStore
from src.events.types import (
    ApprovalApproved,
    ApprovalDeclined,
    ApprovalRequested,
    DependenciesReplaced,
    LaneReapplied,
    RecordLinked,
    RecordUnlinked,
    TimelineItemCreated,
    TimelineItemDeleted,
    TimelineItemUpdated,
)

__all__ = [
    # Base
    "Event",
    # Infrastructure
    "EventStore",
    # Event types
    "ApprovalRequested",
    "ApprovalApproved",
    "ApprovalDeclined",
    "TimelineItemCreated",
    "TimelineItemUpdated",
    "TimelineItemDeleted",
    "DependenciesReplaced",
    "LaneReapplied",
    "RecordLinked",
    "RecordUnlinked",
]
