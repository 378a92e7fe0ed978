"""Input and result schemas for lane registry operations."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.lane import LaneScope


class LaneInput(BaseModel):
    """Shared config: accept camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LaneCreate(LaneInput):
    """Fields for a new lane; the slug is derived from the name if omitted."""

    name: str = Field(min_length=1, max_length=200)
    slug: str | None = Field(default=None)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)
    icon: str | None = Field(default=None)
    sort_order: int | None = Field(default=None, description="Defaults to max + 100")
    is_default: bool = Field(default=True)
    auto_assign_rules: dict[str, Any] | None = Field(default=None)
    scope: LaneScope = Field(default=LaneScope.USER)


class LaneUpdate(LaneInput):
    """Partial update; only fields present in the request are applied."""

    name: str | None = Field(default=None)
    slug: str | None = Field(default=None)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)
    icon: str | None = Field(default=None)
    sort_order: int | None = Field(default=None)
    is_default: bool | None = Field(default=None)
    auto_assign_rules: dict[str, Any] | None = Field(default=None)


class ReapplyResult(BaseModel):
    """Counts from a bulk lane reapplication."""

    updated: int = 0
    unchanged: int = 0
    skipped: int = 0


class LaneResolution(BaseModel):
    """Lane chosen for a new item and how it was chosen."""

    slug: str
    auto_assigned: bool = False
    lane_id: str | None = None
