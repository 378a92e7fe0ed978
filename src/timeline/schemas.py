"""Input schemas for timeline item operations.

Keys are accepted in camelCase or snake_case. Timestamps stay strings
here and are parsed by the service so that bad input surfaces as a
validation error naming the field.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.timeline import DependencyInput


class TimelineInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimelineItemCreate(TimelineInput):
    """Fields for a new timeline item."""

    title: str = Field(default="")
    type: str | None = Field(default=None)
    kind: str | None = Field(default=None)
    description: str | None = Field(default=None)
    starts_at: str | None = Field(default=None)
    ends_at: str | None = Field(default=None)
    due_at: str | None = Field(default=None)
    timezone: str | None = Field(default=None)
    lane: str | None = Field(default=None, description="Explicit lane slug")
    territory: str | None = Field(default=None)
    status: str | None = Field(default=None)
    priority: float | None = Field(default=None)
    priority_components: dict[str, Any] | None = Field(default=None)
    labels: dict[str, Any] | None = Field(default=None)
    links: dict[str, Any] | None = Field(default=None)
    dependencies: list[DependencyInput] = Field(default_factory=list)


class TimelineItemUpdate(TimelineInput):
    """Partial update; only fields present in the request are applied.

    ``territory: null`` removes the territory label. ``dependencies``,
    when present, replaces the item's incoming edges.
    """

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
    status: str | None = None
    priority: float | None = None
    priority_components: dict[str, Any] | None = None
    labels: dict[str, Any] | None = None
    links: dict[str, Any] | None = None
    dependencies: list[DependencyInput] | None = None
