"""Lane registry and rule-driven lane auto-assignment.

Provides:
- resolve_auto_assigned_lane: First lane whose rules match an item
- evaluate_lane_assignment: Test a single lane's rules
- LaneService: Lane CRUD, item resolution and bulk reapplication
"""

from src.lanes.resolver import evaluate_lane_assignment, resolve_auto_assigned_lane
from src.lanes.schemas import LaneCreate, LaneResolution, LaneUpdate, ReapplyResult
from src.lanes.service import LaneService

__all__ = [
    "evaluate_lane_assignment",
    "resolve_auto_assigned_lane",
    "LaneCreate",
    "LaneUpdate",
    "LaneResolution",
    "ReapplyResult",
    "LaneService",
]
