"""Links between projects and inbound external records."""

from enum import Enum
from typing import Any

from pydantic import Field

from src.models.base import BaseEntity


class LinkSource(str, Enum):
    """Who established a project/record link."""

    AI = "ai"
    MANUAL = "manual"
    RULE = "rule"


class ProjectRecordLink(BaseEntity):
    """An external record (e.g. an email) attached to a project.

    Unique per (project_id, record_id); writes upsert on that key.
    """

    project_id: str
    record_id: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    source: LinkSource = Field(default=LinkSource.AI)
    metadata: dict[str, Any] = Field(default_factory=dict)


def link_key(project_id: str, record_id: str) -> str:
    """Set key for a (project, record) pair."""
    return f"{project_id}:{record_id}"
