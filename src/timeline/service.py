"""Timeline item lifecycle and read-side scheduling queries."""

from datetime import datetime
from typing import Any

import structlog

from src.config import settings
from src.errors import PayloadValidationError, TimelineItemNotFoundError
from src.events.store import EventStore
from src.events.types import TimelineItemCreated, TimelineItemDeleted, TimelineItemUpdated
from src.lanes.service import LaneService
from src.models.timeline import (
    TimelineDependency,
    TimelineItem,
    normalise_item_status,
    normalise_item_type,
    parse_timestamp,
)
from src.repositories.timeline_repo import TimelineRepository
from src.scheduling.conflicts import ConflictRecord, detect_conflicts
from src.scheduling.slots import SlotSearchOptions, SlotSearchResult, find_slots
from src.timeline.dependency_graph import DependencyGraph
from src.timeline.schemas import TimelineItemCreate, TimelineItemUpdate

logger = structlog.get_logger()


def parse_optional_timestamp(value: str | None, field: str) -> datetime | None:
    """Parse a timestamp field; blank means unset, garbage is an error."""
    if value is None or not value.strip():
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        msg = f"{field} must be an ISO 8601 timestamp"
        raise PayloadValidationError(msg)
    return parsed


class TimelineService:
    """Creates, edits and queries timeline items for a project."""

    def __init__(
        self,
        repo: TimelineRepository,
        lane_service: LaneService,
        graph: DependencyGraph,
        event_store: EventStore | None = None,
    ):
        self._repo = repo
        self._lanes = lane_service
        self._graph = graph
        self._events = event_store

    async def list_items(self, project_id: str) -> list[TimelineItem]:
        return await self._repo.list_items(project_id)

    async def get_item(self, project_id: str, item_id: str) -> TimelineItem:
        item = await self._repo.get_item(item_id)
        if item is None or item.project_id != project_id:
            raise TimelineItemNotFoundError("Timeline item not found")
        return item

    async def create_item(
        self,
        project_id: str,
        data: TimelineItemCreate,
        actor_id: str | None = None,
    ) -> tuple[TimelineItem, list[TimelineDependency]]:
        """Create an item, resolve its lane and attach predecessors.

        An explicit lane (``lane`` or ``labels.lane``) always wins;
        otherwise lane auto-assignment runs, then the type default.

        Returns:
            The stored item and its incoming edges

        Raises:
            PayloadValidationError: Missing title or bad timestamps
            DependencyValidationError: A predecessor is outside the project
        """
        title = (data.title or "").strip()
        if not title:
            raise PayloadValidationError("title is required")

        item_type = normalise_item_type(data.type)
        labels: dict[str, Any] = dict(data.labels or {})
        if data.territory:
            labels["territory"] = data.territory
        label_lane = labels.pop("lane", None)
        explicit_lane = data.lane or label_lane

        starts_at = parse_optional_timestamp(data.starts_at, "startsAt")
        ends_at = parse_optional_timestamp(data.ends_at, "endsAt")
        due_at = parse_optional_timestamp(data.due_at, "dueAt")

        edges = await self._graph.validate_predecessors(project_id, data.dependencies)

        resolution = await self._lanes.resolve_for_item(
            actor_id,
            {
                "type": item_type.value,
                "kind": data.kind,
                "title": title,
                "description": data.description,
                "status": normalise_item_status(data.status).value,
                "priority": data.priority,
                "category": labels.get("category"),
                "labels": labels,
            },
            explicit_lane if isinstance(explicit_lane, str) else None,
        )

        item = TimelineItem(
            project_id=project_id,
            type=item_type,
            lane=resolution.slug,
            kind=data.kind,
            title=title,
            description=data.description,
            starts_at=starts_at,
            ends_at=ends_at,
            due_at=due_at,
            timezone=data.timezone,
            status=data.status,
            priority_score=data.priority,
            priority_components=data.priority_components or {},
            labels=labels,
            links=data.links or {},
            created_by=actor_id,
        )
        await self._repo.insert_item(item)

        dependencies: list[TimelineDependency] = []
        if edges:
            dependencies = await self._graph.set_dependencies(
                project_id, item.id, edges, actor_id
            )

        logger.info(
            "timeline item created",
            project_id=project_id,
            item_id=item.id,
            lane=item.lane,
            auto_assigned=resolution.auto_assigned,
        )
        if self._events:
            await self._events.record(
                TimelineItemCreated(
                    aggregate_id=item.id,
                    actor_id=actor_id,
                    project_id=project_id,
                    lane=item.lane,
                    auto_assigned=resolution.auto_assigned,
                )
            )
        return item, dependencies

    async def update_item(
        self,
        project_id: str,
        item_id: str,
        changes: TimelineItemUpdate,
        actor_id: str | None = None,
    ) -> TimelineItem:
        """Apply a partial update.

        Labels and links are merged into the stored ones. When
        ``dependencies`` is present the incoming edge set is replaced
        first, so a rejected edge set leaves the item untouched.

        Raises:
            TimelineItemNotFoundError: Unknown item for the project
            PayloadValidationError: Blank title or bad timestamps
            DependencyValidationError / DependencyCycleError: Bad edges
        """
        existing = await self.get_item(project_id, item_id)
        provided = changes.model_fields_set
        updates: dict[str, Any] = {}

        if "title" in provided:
            title = (changes.title or "").strip()
            if not title:
                raise PayloadValidationError("title cannot be empty")
            updates["title"] = title
        for field in ("kind", "description", "timezone"):
            if field in provided:
                updates[field] = getattr(changes, field)
        if "starts_at" in provided:
            updates["starts_at"] = parse_optional_timestamp(changes.starts_at, "startsAt")
        if "ends_at" in provided:
            updates["ends_at"] = parse_optional_timestamp(changes.ends_at, "endsAt")
        if "due_at" in provided:
            updates["due_at"] = parse_optional_timestamp(changes.due_at, "dueAt")
        if "priority" in provided:
            updates["priority_score"] = changes.priority
        if "priority_components" in provided and changes.priority_components is not None:
            updates["priority_components"] = changes.priority_components
        if "type" in provided:
            updates["type"] = normalise_item_type(changes.type)
        if "status" in provided:
            updates["status"] = normalise_item_status(changes.status)

        labels = dict(existing.labels)
        if changes.labels:
            labels.update(changes.labels)
        if "territory" in provided:
            if changes.territory is None:
                labels.pop("territory", None)
            else:
                labels["territory"] = changes.territory
        label_lane = labels.pop("lane", None)
        if "lane" in provided and changes.lane:
            updates["lane"] = changes.lane.strip()
        elif isinstance(label_lane, str) and label_lane.strip():
            updates["lane"] = label_lane.strip()
        updates["labels"] = labels

        if changes.links:
            updates["links"] = {**existing.links, **changes.links}

        if "dependencies" in provided and changes.dependencies is not None:
            await self._graph.set_dependencies(
                project_id, item_id, changes.dependencies, actor_id
            )

        item = existing.model_copy(update=updates)
        item.touch()
        await self._repo.update_item(item)

        changed = sorted(k for k, v in updates.items() if getattr(existing, k) != v)
        logger.info(
            "timeline item updated",
            project_id=project_id,
            item_id=item_id,
            fields=changed,
        )
        if self._events:
            await self._events.record(
                TimelineItemUpdated(
                    aggregate_id=item_id,
                    actor_id=actor_id,
                    project_id=project_id,
                    changed_fields=changed,
                )
            )
        return item

    async def delete_item(
        self,
        project_id: str,
        item_id: str,
        actor_id: str | None = None,
    ) -> None:
        """Delete an item together with every edge touching it."""
        if not await self._repo.delete_item(item_id, project_id):
            raise TimelineItemNotFoundError("Timeline item not found")
        logger.info("timeline item deleted", project_id=project_id, item_id=item_id)
        if self._events:
            await self._events.record(
                TimelineItemDeleted(
                    aggregate_id=item_id,
                    actor_id=actor_id,
                    project_id=project_id,
                )
            )

    async def set_dependencies(
        self,
        project_id: str,
        item_id: str,
        edges: list,
        actor_id: str | None = None,
    ) -> list[TimelineDependency]:
        await self.get_item(project_id, item_id)
        return await self._graph.set_dependencies(project_id, item_id, edges, actor_id)

    async def list_dependencies(self, project_id: str) -> list[TimelineDependency]:
        return await self._graph.list_dependencies(project_id)

    async def detect_conflicts(
        self,
        project_id: str,
        buffer_hours: float | None = None,
        *,
        travel_buffer: bool = False,
    ) -> list[ConflictRecord]:
        """Conflicts for the project's current items (never persisted)."""
        items = await self._repo.list_items(project_id)
        return detect_conflicts(
            items,
            settings.territory_buffer_hours if buffer_hours is None else buffer_hours,
            exclude_terminal=settings.conflict_exclude_terminal,
            travel_buffer=travel_buffer,
        )

    async def suggest_slots(self, options: SlotSearchOptions) -> SlotSearchResult:
        """Free slots within the requested range."""
        range_start, range_end = options.date_range
        items = await self._repo.list_items(
            options.project_id,
            starts_from=range_start,
            starts_until=range_end,
        )
        return find_slots(items, options)
