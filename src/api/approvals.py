"""Approval request and decision endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, Field

from src.api.deps import get_approval_machine, require_role
from src.approvals.state_machine import ApprovalStateMachine, parse_action
from src.errors import ApprovalAlreadyResolvedError
from src.models.approval import Approval, ApprovalStatus

router = APIRouter(prefix="/approvals", tags=["approvals"])


class ApprovalCreateRequest(BaseModel):
    """New pending approval."""

    type: str = Field(description="Approval type, e.g. project_email_link")
    project_id: str | None = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    payload: dict[str, Any] = Field(default_factory=dict)
    requested_by: str | None = Field(
        default=None, validation_alias=AliasChoices("requested_by", "requestedBy")
    )


class DecisionRequest(BaseModel):
    """Reviewer decision: approve/decline (or approved/declined)."""

    action: str = Field(validation_alias=AliasChoices("action", "status"))
    note: str | None = Field(
        default=None,
        validation_alias=AliasChoices("note", "resolution_note", "resolutionNote"),
    )


class ApprovalResponse(BaseModel):
    approval: Approval


class ApprovalListResponse(BaseModel):
    approvals: list[Approval]


@router.get("", response_model=ApprovalListResponse)
async def list_approvals(
    project_id: str | None = Query(default=None, alias="projectId"),
    status: ApprovalStatus | None = Query(default=None),
    actor_id: str = Depends(require_role("viewer")),
    machine: ApprovalStateMachine = Depends(get_approval_machine),
) -> ApprovalListResponse:
    """List approvals, newest first."""
    return ApprovalListResponse(approvals=await machine.list(project_id, status))


@router.post("", response_model=ApprovalResponse, status_code=201)
async def create_approval(
    body: ApprovalCreateRequest,
    actor_id: str = Depends(require_role("editor")),
    machine: ApprovalStateMachine = Depends(get_approval_machine),
) -> ApprovalResponse:
    """Request a structural change; it is applied only once approved."""
    approval = await machine.request(
        body.type,
        body.payload,
        project_id=body.project_id,
        requested_by=body.requested_by or actor_id,
        created_by=actor_id,
    )
    return ApprovalResponse(approval=approval)


@router.post("/{approval_id}/decision", response_model=ApprovalResponse)
async def decide_approval(
    approval_id: str,
    body: DecisionRequest,
    actor_id: str = Depends(require_role("editor")),
    machine: ApprovalStateMachine = Depends(get_approval_machine),
) -> ApprovalResponse:
    """Approve or decline a pending approval.

    A decision on an approval that is no longer pending is answered
    with 409 and the stored approval.
    """
    action = parse_action(body.action)
    existing = await machine.get(approval_id)
    if not existing.is_pending:
        raise ApprovalAlreadyResolvedError("Approval already resolved", current=existing)

    approval = await machine.decide(approval_id, action, actor_id, body.note)
    return ApprovalResponse(approval=approval)
