"""Timeline item and dependency models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from src.models.base import BaseEntity


class TimelineItemType(str, Enum):
    """Kind of scheduled work."""

    EVENT = "event"
    TASK = "task"
    MILESTONE = "milestone"
    HOLD = "hold"
    OTHER = "other"


class TimelineItemStatus(str, Enum):
    """Lifecycle status of a timeline item."""

    PLANNED = "planned"
    CONFIRMED = "confirmed"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TimelineItemStatus.DONE, TimelineItemStatus.CANCELLED})


class DependencyKind(str, Enum):
    """Precedence between two items."""

    FS = "FS"  # from must finish before to starts
    SS = "SS"  # from must start before to starts


# Lane used when neither an explicit lane nor an auto-assign rule applies
DEFAULT_LANE_BY_TYPE: dict[TimelineItemType, str] = {
    TimelineItemType.EVENT: "LIVE_HOLDS",
    TimelineItemType.HOLD: "LIVE_HOLDS",
    TimelineItemType.MILESTONE: "RELEASE",
    TimelineItemType.TASK: "PROMO",
    TimelineItemType.OTHER: "PROMO",
}


def normalise_item_type(value: str | TimelineItemType | None) -> TimelineItemType:
    """Map free-form type input onto the enum.

    Missing input is an event; anything unrecognised is OTHER.
    """
    if isinstance(value, TimelineItemType):
        return value
    raw = (value or "").strip().lower()
    if not raw:
        return TimelineItemType.EVENT
    try:
        return TimelineItemType(raw)
    except ValueError:
        return TimelineItemType.OTHER


def normalise_item_status(
    value: str | TimelineItemStatus | None,
) -> TimelineItemStatus:
    """Map free-form status input onto the enum, falling back to PLANNED."""
    if isinstance(value, TimelineItemStatus):
        return value
    raw = (value or "").strip().lower()
    if raw == "canceled":
        return TimelineItemStatus.CANCELLED
    try:
        return TimelineItemStatus(raw)
    except ValueError:
        return TimelineItemStatus.PLANNED


def normalise_dependency_kind(value: str | DependencyKind | None) -> DependencyKind:
    """Unrecognised kinds default to finish-to-start."""
    if isinstance(value, DependencyKind):
        return value
    return DependencyKind.SS if (value or "").strip().upper() == "SS" else DependencyKind.FS


def lane_for_type(item_type: str | TimelineItemType | None) -> str:
    """Default lane slug for an item type."""
    return DEFAULT_LANE_BY_TYPE[normalise_item_type(item_type)]


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are treated as UTC.

    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class TimelineItem(BaseEntity):
    """A unit of scheduled work within a project.

    An item may carry only a due date; items without ``starts_at``
    never take part in overlap math.
    """

    project_id: str = Field(description="Owning project")
    type: TimelineItemType = Field(default=TimelineItemType.EVENT)
    lane: str | None = Field(default=None, description="Lane slug")
    kind: str | None = Field(default=None, description="Free-form kind tag")
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None)
    starts_at: datetime | None = Field(default=None)
    ends_at: datetime | None = Field(default=None)
    due_at: datetime | None = Field(default=None)
    timezone: str | None = Field(default=None, description="IANA timezone name")
    status: TimelineItemStatus = Field(default=TimelineItemStatus.PLANNED)
    priority_score: float | None = Field(default=None)
    priority_components: dict[str, Any] = Field(default_factory=dict)
    labels: dict[str, Any] = Field(default_factory=dict)
    links: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = Field(default=None)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> TimelineItemType:
        return normalise_item_type(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> TimelineItemStatus:
        return normalise_item_status(value)

    @field_validator("starts_at", "ends_at", "due_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def effective_lane(self) -> str:
        """Lane used for grouping: labels override, then column, then type."""
        override = self.labels.get("lane")
        if isinstance(override, str) and override.strip():
            return override.strip()
        return self.lane or lane_for_type(self.type)

    @property
    def territory(self) -> str | None:
        value = self.labels.get("territory")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @property
    def city(self) -> str | None:
        value = self.labels.get("city")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_travel(self) -> bool:
        """Whether the item represents travel between engagements."""
        if self.effective_lane.upper() == "TRAVEL":
            return True
        if bool(self.labels.get("travel")):
            return True
        return (self.kind or "").strip().lower() == "travel"


class DependencyInput(BaseModel):
    """Incoming edge as supplied by callers and approval payloads."""

    from_item_id: str = Field(
        default="",
        validation_alias=AliasChoices("from_item_id", "fromItemId", "itemId"),
        description="Predecessor item",
    )
    kind: DependencyKind = Field(default=DependencyKind.FS)
    note: str | None = Field(default=None)

    model_config = {"populate_by_name": True}

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> DependencyKind:
        return normalise_dependency_kind(value)


class TimelineDependency(BaseEntity):
    """Directed precedence edge between two items of one project."""

    project_id: str
    from_item_id: str
    to_item_id: str
    kind: DependencyKind = Field(default=DependencyKind.FS)
    note: str | None = Field(default=None)
    created_by: str | None = Field(default=None)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> DependencyKind:
        return normalise_dependency_kind(value)
