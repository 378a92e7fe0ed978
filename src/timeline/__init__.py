"""Timeline items and their dependency graph.

Provides:
- TimelineService: Item create/update/delete plus conflict and slot queries
- DependencyGraph: Validated replacement of an item's incoming edges
"""

from src.timeline.dependency_graph import DependencyGraph, find_cycle
from src.timeline.schemas import TimelineItemCreate, TimelineItemUpdate
from src.timeline.service import TimelineService

__all__ = [
    "DependencyGraph",
    "find_cycle",
    "TimelineItemCreate",
    "TimelineItemUpdate",
    "TimelineService",
]
