"""Repository layer for data persistence.

Provides repository classes for persisting domain data to the database.
Repositories encapsulate data access logic and provide a clean interface
for the service layer.
"""

from src.repositories.approval_repo import ApprovalRepository
from src.repositories.lane_repo import LaneRepository
from src.repositories.link_repo import LinkRepository
from src.repositories.rule_repo import RuleRepository
from src.repositories.task_repo import TaskRepository
from src.repositories.timeline_repo import TimelineRepository

__all__ = [
    "ApprovalRepository",
    "LaneRepository",
    "LinkRepository",
    "RuleRepository",
    "TaskRepository",
    "TimelineRepository",
]
