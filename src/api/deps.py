"""Shared API dependencies: caller identity, project role and services.

Authentication happens upstream; the gateway forwards the caller as
``X-Actor-Id`` and their role in the addressed project as
``X-Project-Role``.
"""

from collections.abc import Callable

from fastapi import Header, HTTPException, Request

from src.approvals.state_machine import ApprovalStateMachine
from src.errors import AuthenticationRequiredError, AuthorizationError
from src.lanes.service import LaneService
from src.rules.service import AssignmentRuleService
from src.timeline.service import TimelineService

ROLE_RANK = {"viewer": 0, "editor": 1, "owner": 2}


def get_actor_id(x_actor_id: str | None = Header(default=None)) -> str:
    """Caller identity; every non-health route needs one."""
    if not x_actor_id or not x_actor_id.strip():
        raise AuthenticationRequiredError("Authentication required")
    return x_actor_id.strip()


def require_role(minimum: str) -> Callable[..., str]:
    """Dependency factory checking the caller's project role.

    Args:
        minimum: Lowest role allowed (viewer, editor or owner)

    Returns:
        Dependency returning the actor id
    """

    def dependency(
        x_actor_id: str | None = Header(default=None),
        x_project_role: str | None = Header(default=None),
    ) -> str:
        actor_id = get_actor_id(x_actor_id)
        role = (x_project_role or "").strip().lower()
        if role not in ROLE_RANK:
            raise AuthorizationError("Project access required")
        if ROLE_RANK[role] < ROLE_RANK[minimum]:
            raise AuthorizationError(f"Requires {minimum} role")
        return actor_id

    return dependency


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=500, detail=f"{label} not initialized")
    return service


def get_timeline_service(request: Request) -> TimelineService:
    """Get TimelineService from app state."""
    return _from_state(request, "timeline_service", "TimelineService")


def get_lane_service(request: Request) -> LaneService:
    """Get LaneService from app state."""
    return _from_state(request, "lane_service", "LaneService")


def get_approval_machine(request: Request) -> ApprovalStateMachine:
    """Get ApprovalStateMachine from app state."""
    return _from_state(request, "approval_machine", "ApprovalStateMachine")


def get_rule_service(request: Request) -> AssignmentRuleService:
    """Get AssignmentRuleService from app state."""
    return _from_state(request, "rule_service", "AssignmentRuleService")
