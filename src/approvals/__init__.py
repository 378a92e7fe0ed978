"""Approval workflow for structural project changes.

Provides:
- ApprovalStateMachine: Request, list and decide approvals
- ApprovalApplier: Per-type mutations run on approve
"""

from src.approvals.appliers import ApprovalApplier, derived_id
from src.approvals.state_machine import ApprovalStateMachine, parse_action

__all__ = [
    "ApprovalApplier",
    "derived_id",
    "ApprovalStateMachine",
    "parse_action",
]
