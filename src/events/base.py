"""Base Event class for audit events."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """Base class for audit events.

    Events are immutable records of state changes that already
    happened. They are written after the change and never read back
    by the core services.

    Attributes:
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred
        aggregate_id: ID of the entity this event relates to
        aggregate_type: Type of the entity (e.g., "Approval", "TimelineItem")
        actor_id: Who caused the change
        metadata: Additional context about the event
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event occurred",
    )
    aggregate_id: str | None = Field(
        default=None,
        description="ID of the related entity",
    )
    aggregate_type: str | None = Field(
        default=None,
        description="Type of the related entity",
    )
    actor_id: str | None = Field(
        default=None,
        description="User who caused the change",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event context",
    )

    @property
    def event_type(self) -> str:
        """Return the event type name (class name)."""
        return self.__class__.__name__

    def to_store_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for storage."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "actor_id": self.actor_id,
            "data": self.model_dump(
                mode="json",
                exclude={
                    "event_id",
                    "timestamp",
                    "aggregate_id",
                    "aggregate_type",
                    "actor_id",
                },
            ),
        }
