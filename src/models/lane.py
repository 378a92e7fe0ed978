"""Lane definition model for scheduling categories."""

import re
import time
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from src.models.base import BaseEntity


class LaneScope(str, Enum):
    """Visibility of a lane definition."""

    GLOBAL = "global"  # visible to every user, no owner
    USER = "user"


def slugify_lane(name: str) -> str:
    """Build the stable uppercase key for a lane name.

    Examples:
        >>> slugify_lane("Live / Holds")
        'LIVE_HOLDS'
    """
    base = re.sub(r"[^A-Z0-9]+", "_", name.strip().upper())
    base = re.sub(r"_{2,}", "_", base).strip("_")
    return base or f"LANE_{int(time.time() * 1000)}"


def normalise_color(value: Any) -> str | None:
    """Return a '#'-prefixed color or None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed if trimmed.startswith("#") else f"#{trimmed}"


class LaneDefinition(BaseEntity):
    """A named scheduling category with optional auto-assignment rules.

    ``auto_assign_rules`` holds a predicate tree in the grammar
    understood by ``src.lanes.conditions``. Lanes are evaluated in
    ascending ``sort_order`` (ties broken by name).
    """

    slug: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)
    icon: str | None = Field(default=None)
    sort_order: int = Field(default=0)
    is_default: bool = Field(default=True)
    auto_assign_rules: dict[str, Any] | None = Field(default=None)
    user_id: str | None = Field(
        default=None,
        description="Owner; None for workspace-wide lanes",
    )

    @field_validator("slug", mode="before")
    @classmethod
    def _upper_slug(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("color", mode="before")
    @classmethod
    def _normalise_color(cls, value: Any) -> str | None:
        return normalise_color(value)

    @property
    def scope(self) -> LaneScope:
        return LaneScope.GLOBAL if self.user_id is None else LaneScope.USER

    @property
    def has_rules(self) -> bool:
        return bool(self.auto_assign_rules)


# Workspace lanes created on first start
DEFAULT_LANES: list[dict[str, Any]] = [
    {
        "name": "Live / Holds",
        "slug": "LIVE_HOLDS",
        "description": "Active show bookings and confirmed holds",
        "color": "#7c3aed",
        "sort_order": 100,
    },
    {
        "name": "Travel",
        "slug": "TRAVEL",
        "description": "Flights, hotels, and itinerary segments",
        "color": "#0284c7",
        "sort_order": 200,
    },
    {
        "name": "Promo",
        "slug": "PROMO",
        "description": "Press, promo slots, and marketing beats",
        "color": "#0f766e",
        "sort_order": 300,
    },
    {
        "name": "Release",
        "slug": "RELEASE",
        "description": "Release milestones and content drops",
        "color": "#f97316",
        "sort_order": 400,
    },
    {
        "name": "Legal",
        "slug": "LEGAL",
        "description": "Contracts, compliance, and legal checkpoints",
        "color": "#dc2626",
        "sort_order": 500,
    },
    {
        "name": "Finance",
        "slug": "FINANCE",
        "description": "Budgeting, payments, and financial tasks",
        "color": "#06b6d4",
        "sort_order": 600,
    },
]
