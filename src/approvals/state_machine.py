"""Approval lifecycle: pending -> approved | declined.

Approving runs the type-specific applier first and writes the
resolution only once the applier has succeeded. A failed applier leaves
the approval pending so it can be approved again.
"""

from typing import Any

import structlog

from src.approvals.appliers import ApprovalApplier
from src.errors import ApprovalNotFoundError, PayloadValidationError
from src.events.store import EventStore
from src.events.types import ApprovalApproved, ApprovalDeclined, ApprovalRequested
from src.models.approval import Approval, ApprovalAction, ApprovalStatus
from src.models.base import utc_now
from src.repositories.approval_repo import ApprovalRepository

logger = structlog.get_logger()

# Decision inputs accepted in addition to the ApprovalAction values
ACTION_ALIASES = {
    "approved": ApprovalAction.APPROVE,
    "declined": ApprovalAction.DECLINE,
    "reject": ApprovalAction.DECLINE,
    "rejected": ApprovalAction.DECLINE,
}


def parse_action(value: str | ApprovalAction) -> ApprovalAction:
    """Map a decision input onto approve/decline.

    Raises:
        PayloadValidationError: Anything else
    """
    if isinstance(value, ApprovalAction):
        return value
    raw = (value or "").strip().lower()
    if raw in ACTION_ALIASES:
        return ACTION_ALIASES[raw]
    try:
        return ApprovalAction(raw)
    except ValueError as e:
        raise PayloadValidationError("action must be approve or decline") from e


class ApprovalStateMachine:
    """Creates approvals and applies reviewer decisions exactly once."""

    def __init__(
        self,
        repo: ApprovalRepository,
        applier: ApprovalApplier,
        event_store: EventStore | None = None,
    ):
        self._repo = repo
        self._applier = applier
        self._events = event_store

    async def request(
        self,
        approval_type: str,
        payload: dict[str, Any],
        *,
        project_id: str | None = None,
        requested_by: str | None = None,
        created_by: str | None = None,
    ) -> Approval:
        """Create a pending approval.

        The payload is stored as given and only validated when the
        approval is applied.
        """
        approval_type = (approval_type or "").strip()
        if not approval_type:
            raise PayloadValidationError("type is required")

        approval = Approval(
            project_id=project_id or payload.get("projectId") or payload.get("project_id"),
            type=approval_type,
            payload=payload,
            requested_by=requested_by,
            created_by=created_by or requested_by,
        )
        await self._repo.insert(approval)
        logger.info(
            "approval requested",
            approval_id=approval.id,
            approval_type=approval_type,
            project_id=approval.project_id,
        )
        if self._events:
            await self._events.record(
                ApprovalRequested(
                    aggregate_id=approval.id,
                    actor_id=created_by or requested_by,
                    approval_type=approval_type,
                    project_id=approval.project_id,
                )
            )
        return approval

    async def get(self, approval_id: str) -> Approval:
        approval = await self._repo.get(approval_id)
        if approval is None:
            raise ApprovalNotFoundError("Approval not found")
        return approval

    async def list(
        self,
        project_id: str | None = None,
        status: ApprovalStatus | None = None,
    ) -> list[Approval]:
        return await self._repo.list_approvals(project_id, status)

    async def decide(
        self,
        approval_id: str,
        action: str | ApprovalAction,
        actor_id: str,
        note: str | None = None,
    ) -> Approval:
        """Approve or decline a pending approval.

        Args:
            approval_id: Approval to resolve
            action: approve or decline
            actor_id: Reviewer
            note: Optional resolution note

        Returns:
            The resolved approval, or the stored one unchanged if it was
            no longer pending

        Raises:
            ApprovalNotFoundError: Unknown approval
            UnsupportedApprovalTypeError / ApprovalPayloadError: Approve
                could not be applied; the approval stays pending
        """
        decision = parse_action(action)
        approval = await self.get(approval_id)
        if not approval.is_pending:
            logger.info(
                "approval already resolved",
                approval_id=approval_id,
                status=approval.status.value,
            )
            return approval

        created_ids: list[str] = []
        if decision == ApprovalAction.APPROVE:
            created_ids = await self._applier.apply(approval, actor_id)

        now = utc_now()
        resolved = approval.model_copy(
            update={
                "status": (
                    ApprovalStatus.APPROVED
                    if decision == ApprovalAction.APPROVE
                    else ApprovalStatus.DECLINED
                ),
                "approver_id": actor_id,
                "resolution_note": note,
                "approved_at": now if decision == ApprovalAction.APPROVE else None,
                "declined_at": now if decision == ApprovalAction.DECLINE else None,
                "updated_at": now,
            }
        )
        if not await self._repo.resolve(resolved):
            logger.warning("approval resolved concurrently", approval_id=approval_id)
            return await self.get(approval_id)

        logger.info(
            "approval resolved",
            approval_id=approval_id,
            status=resolved.status.value,
            created=len(created_ids),
        )
        if self._events:
            if decision == ApprovalAction.APPROVE:
                event = ApprovalApproved(
                    aggregate_id=approval_id,
                    actor_id=actor_id,
                    approval_type=approval.type,
                    project_id=approval.project_id,
                    created_ids=created_ids,
                )
            else:
                event = ApprovalDeclined(
                    aggregate_id=approval_id,
                    actor_id=actor_id,
                    approval_type=approval.type,
                    project_id=approval.project_id,
                    note=note,
                )
            await self._events.record(event)
        return resolved
