"""Type-specific mutations applied when an approval is approved.

Each applier validates its payload before writing anything. Rows an
applier creates get ids derived from the approval id and are inserted
with ``if_absent``, so approving again after a partial failure fills in
what is missing instead of duplicating it.
"""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import NAMESPACE_URL, uuid5

import structlog
from pydantic import ValidationError

from src.errors import ApprovalPayloadError, UnsupportedApprovalTypeError
from src.models.approval import (
    Approval,
    ApprovalType,
    EmailLinkPayload,
    ProjectTaskPayload,
    TimelineItemPayload,
)
from src.models.link import LinkSource, ProjectRecordLink
from src.models.task import ProjectTask
from src.models.timeline import DependencyInput, TimelineItem, lane_for_type, parse_timestamp
from src.repositories.link_repo import LinkRepository
from src.repositories.task_repo import TaskRepository
from src.repositories.timeline_repo import TimelineRepository
from src.timeline.dependency_graph import DependencyGraph

logger = structlog.get_logger()

DEFAULT_ITEM_TYPE = "event"
DEFAULT_PRIORITY = 50.0


def derived_id(approval_id: str, *parts: str) -> str:
    """Stable id for a row created while applying an approval.

    Examples:
        >>> derived_id("a1", "item") == derived_id("a1", "item")
        True
    """
    return str(uuid5(NAMESPACE_URL, ":".join(("approval", approval_id, *parts))))


def assert_string(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ApprovalPayloadError(f"Approval payload missing {field}")
    return value.strip()


def _parse_payload(model, approval: Approval):
    try:
        return model.model_validate(approval.payload or {})
    except ValidationError as e:
        msg = f"Invalid {approval.type} payload: {e.errors()[0]['msg']}"
        raise ApprovalPayloadError(msg) from e


class ApprovalApplier:
    """Dispatches an approved approval to the mutation for its type."""

    def __init__(
        self,
        timeline_repo: TimelineRepository,
        link_repo: LinkRepository,
        task_repo: TaskRepository,
        graph: DependencyGraph,
    ):
        self._timeline = timeline_repo
        self._links = link_repo
        self._tasks = task_repo
        self._graph = graph
        self._handlers: dict[str, Callable[[Approval, str], Awaitable[list[str]]]] = {
            ApprovalType.PROJECT_EMAIL_LINK.value: self.apply_email_link,
            ApprovalType.TIMELINE_ITEM_CREATE.value: self.apply_timeline_item,
            ApprovalType.TIMELINE_ITEM_FROM_EMAIL.value: self.apply_timeline_item,
            ApprovalType.PROJECT_TASK_CREATE.value: self.apply_project_task,
        }

    @property
    def supported_types(self) -> list[str]:
        return sorted(self._handlers)

    async def apply(self, approval: Approval, actor_id: str) -> list[str]:
        """Run the applier for the approval's type.

        Args:
            approval: Pending approval being approved
            actor_id: Reviewer

        Returns:
            Ids of rows created or refreshed by the applier

        Raises:
            UnsupportedApprovalTypeError: No applier for the type
            ApprovalPayloadError: Payload is missing required fields
        """
        handler = self._handlers.get(approval.type)
        if handler is None:
            msg = f"Unsupported approval type: {approval.type}"
            raise UnsupportedApprovalTypeError(msg)
        return await handler(approval, actor_id)

    async def _attach_dependencies(
        self,
        approval: Approval,
        project_id: str,
        item_id: str,
        edges: list[DependencyInput],
        actor_id: str,
    ) -> None:
        if not edges:
            return
        try:
            written = await self._graph.add_dependencies(project_id, item_id, edges, actor_id)
        except Exception as e:
            logger.warning(
                "approval dependency insert failed",
                approval_id=approval.id,
                item_id=item_id,
                error=str(e),
            )
            return
        logger.debug("approval dependencies inserted", item_id=item_id, count=written)

    async def apply_email_link(self, approval: Approval, actor_id: str) -> list[str]:
        """Link an email to the project, optionally seeding a timeline item."""
        payload = _parse_payload(EmailLinkPayload, approval)
        project_id = assert_string(payload.project_id or approval.project_id, "projectId")
        email_id = assert_string(payload.email_id, "emailId")

        seed = payload.timeline_seed
        seed_title = assert_string(seed.title, "timelineSeed.title") if seed else None

        try:
            source = LinkSource(payload.source or LinkSource.AI.value)
        except ValueError as e:
            raise ApprovalPayloadError(f"Unknown link source: {payload.source}") from e
        if payload.confidence is not None and not 0.0 <= payload.confidence <= 1.0:
            raise ApprovalPayloadError("Link confidence must be between 0 and 1")

        link = ProjectRecordLink(
            id=derived_id(approval.id, "link"),
            project_id=project_id,
            record_id=email_id,
            confidence=payload.confidence,
            source=source,
            metadata={"approval_id": approval.id, "linked_by": actor_id},
        )
        await self._links.upsert_link(link)
        created = [link.id]

        if seed is None:
            return created

        item_type = seed.type or DEFAULT_ITEM_TYPE
        labels: dict[str, Any] = dict(seed.metadata or {"source": "email_seed"})
        if seed.territory:
            labels["territory"] = seed.territory
        item = TimelineItem(
            id=derived_id(approval.id, "timeline_seed"),
            project_id=project_id,
            type=item_type,
            lane=seed.lane or lane_for_type(item_type),
            title=seed_title,
            starts_at=parse_timestamp(seed.starts_at),
            ends_at=parse_timestamp(seed.ends_at),
            priority_score=DEFAULT_PRIORITY,
            labels=labels,
            links={"email_id": email_id, "approval_id": approval.id},
            created_by=actor_id,
        )
        await self._timeline.insert_item(item, if_absent=True)
        created.append(item.id)
        await self._attach_dependencies(
            approval, project_id, item.id, seed.dependencies, actor_id
        )
        return created

    async def apply_timeline_item(self, approval: Approval, actor_id: str) -> list[str]:
        """Create one timeline item (plus edges) from the payload."""
        payload = _parse_payload(TimelineItemPayload, approval)
        project_id = assert_string(payload.project_id or approval.project_id, "projectId")
        title = assert_string(payload.title, "title")

        item_type = payload.type or DEFAULT_ITEM_TYPE
        labels: dict[str, Any] = dict(payload.metadata or {})
        if payload.territory:
            labels["territory"] = payload.territory
        label_lane = labels.pop("lane", None)
        lane = payload.lane or (label_lane if isinstance(label_lane, str) else None)

        links = dict(payload.links or {})
        if payload.email_id:
            links["email_id"] = payload.email_id
        links["approval_id"] = approval.id

        item = TimelineItem(
            id=derived_id(approval.id, "timeline_item"),
            project_id=project_id,
            type=item_type,
            lane=lane or lane_for_type(item_type),
            kind=payload.kind,
            title=title,
            description=payload.description,
            starts_at=parse_timestamp(payload.starts_at),
            ends_at=parse_timestamp(payload.ends_at),
            due_at=parse_timestamp(payload.due_at),
            timezone=payload.timezone,
            priority_score=DEFAULT_PRIORITY if payload.priority is None else payload.priority,
            labels=labels,
            links=links,
            created_by=actor_id,
        )
        await self._timeline.insert_item(item, if_absent=True)
        await self._attach_dependencies(
            approval, project_id, item.id, payload.dependencies, actor_id
        )
        return [item.id]

    async def apply_project_task(self, approval: Approval, actor_id: str) -> list[str]:
        """Create a project task; the requester is the default assignee."""
        payload = _parse_payload(ProjectTaskPayload, approval)
        project_id = assert_string(payload.project_id or approval.project_id, "projectId")
        title = assert_string(payload.title, "title")

        task = ProjectTask(
            id=derived_id(approval.id, "task"),
            project_id=project_id,
            title=title,
            description=payload.description,
            status=(payload.status or "todo").strip().lower() or "todo",
            due_at=parse_timestamp(payload.due_at),
            priority=payload.priority,
            assignee_id=payload.assignee_id or approval.requested_by or actor_id,
            created_by=actor_id,
        )
        await self._tasks.insert(task, if_absent=True)
        return [task.id]
