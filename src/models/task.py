"""Project task model (tracked separately from timeline items)."""

from datetime import datetime

from pydantic import Field

from src.models.base import BaseEntity


class ProjectTask(BaseEntity):
    """A to-do item assigned to a project member."""

    project_id: str
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None)
    status: str = Field(default="todo")
    due_at: datetime | None = Field(default=None)
    priority: float | None = Field(default=None)
    assignee_id: str | None = Field(default=None)
    created_by: str | None = Field(default=None)

    @property
    def is_assigned(self) -> bool:
        return self.assignee_id is not None
