"""Lane registry and auto-assignment orchestration."""

from typing import Any

import structlog

from src.config import settings
from src.errors import (
    AuthorizationError,
    LaneInUseError,
    LaneNotFoundError,
    LaneSlugConflictError,
    PayloadValidationError,
)
from src.events.store import EventStore
from src.events.types import LaneReapplied
from src.lanes.resolver import resolve_auto_assigned_lane
from src.lanes.schemas import LaneCreate, LaneResolution, LaneUpdate, ReapplyResult
from src.models.base import utc_now
from src.models.lane import LaneDefinition, LaneScope, normalise_color, slugify_lane
from src.models.timeline import TimelineItem, lane_for_type
from src.repositories.lane_repo import LaneRepository
from src.repositories.timeline_repo import TimelineRepository

logger = structlog.get_logger()

SORT_ORDER_STEP = 100


def item_context(item: TimelineItem) -> dict[str, Any]:
    """Auto-assignment context for a stored item."""
    return {
        "type": item.type.value,
        "kind": item.kind,
        "title": item.title,
        "description": item.description,
        "status": item.status.value,
        "priority": item.priority_score,
        "category": item.labels.get("category"),
        "labels": item.labels,
    }


class LaneService:
    """Lane CRUD, resolution for new items, and bulk reapplication."""

    def __init__(
        self,
        lane_repo: LaneRepository,
        timeline_repo: TimelineRepository,
        event_store: EventStore | None = None,
        *,
        allow_global_edits: bool | None = None,
    ):
        self._lanes = lane_repo
        self._items = timeline_repo
        self._events = event_store
        self._allow_global_edits = (
            settings.allow_global_lane_edits
            if allow_global_edits is None
            else allow_global_edits
        )

    async def list_lanes(self, user_id: str | None) -> list[LaneDefinition]:
        return await self._lanes.list_visible(user_id)

    async def _load_visible(self, lane_id: str, user_id: str) -> LaneDefinition:
        lane = await self._lanes.get(lane_id)
        if lane is None:
            raise LaneNotFoundError("Lane not found")
        if lane.user_id is not None and lane.user_id != user_id:
            raise AuthorizationError("You cannot modify this lane")
        return lane

    def _require_global_edits(self) -> None:
        if not self._allow_global_edits:
            msg = "Workspace lanes can only be changed when global lane edits are enabled"
            raise AuthorizationError(msg)

    async def create_lane(self, user_id: str, data: LaneCreate) -> LaneDefinition:
        """Create a lane owned by the user (or a global one).

        Raises:
            PayloadValidationError: Blank name
            AuthorizationError: Global scope without global edits enabled
            LaneSlugConflictError: Slug already visible to the user
        """
        name = data.name.strip()
        if not name:
            raise PayloadValidationError("Lane name is required")
        if data.scope == LaneScope.GLOBAL:
            self._require_global_edits()

        slug = data.slug.strip().upper() if data.slug and data.slug.strip() else slugify_lane(name)
        if await self._lanes.slug_taken(slug, user_id):
            raise LaneSlugConflictError("A lane with this name already exists")

        sort_order = data.sort_order
        if sort_order is None:
            sort_order = await self._lanes.max_sort_order(user_id) + SORT_ORDER_STEP

        lane = LaneDefinition(
            slug=slug,
            name=name,
            description=data.description,
            color=data.color,
            icon=(data.icon or "").strip() or None,
            sort_order=sort_order,
            is_default=data.is_default,
            auto_assign_rules=data.auto_assign_rules,
            user_id=None if data.scope == LaneScope.GLOBAL else user_id,
        )
        await self._lanes.insert(lane)
        logger.info("lane created", lane_id=lane.id, slug=slug, scope=lane.scope.value)
        return lane

    async def update_lane(
        self, lane_id: str, user_id: str, changes: LaneUpdate
    ) -> LaneDefinition:
        """Apply a partial update.

        Renaming re-derives the slug unless an explicit slug is given.

        Raises:
            LaneNotFoundError / AuthorizationError: Lane not editable
            PayloadValidationError: Blank name or no changes
            LaneSlugConflictError: New slug already visible to the user
        """
        lane = await self._load_visible(lane_id, user_id)
        if lane.user_id is None:
            self._require_global_edits()

        provided = changes.model_fields_set
        if not provided:
            raise PayloadValidationError("No changes provided")

        updates: dict[str, Any] = {}
        next_slug = None
        if "name" in provided and changes.name is not None:
            name = changes.name.strip()
            if not name:
                raise PayloadValidationError("Lane name cannot be empty")
            updates["name"] = name
            next_slug = slugify_lane(name)
        if changes.slug and changes.slug.strip():
            next_slug = changes.slug.strip().upper()
        if next_slug and next_slug != lane.slug:
            if await self._lanes.slug_taken(next_slug, user_id, exclude_id=lane.id):
                raise LaneSlugConflictError(
                    "Another lane already uses this name", current=lane
                )
            updates["slug"] = next_slug

        if "description" in provided:
            updates["description"] = changes.description
        if "color" in provided:
            updates["color"] = normalise_color(changes.color)
        if "icon" in provided:
            updates["icon"] = (changes.icon or "").strip() or None
        if "is_default" in provided and changes.is_default is not None:
            updates["is_default"] = changes.is_default
        if "sort_order" in provided and changes.sort_order is not None:
            updates["sort_order"] = changes.sort_order
        if "auto_assign_rules" in provided:
            updates["auto_assign_rules"] = changes.auto_assign_rules

        updated = lane.model_copy(update=updates)
        updated.touch()
        await self._lanes.update(updated)
        logger.info("lane updated", lane_id=lane.id, fields=sorted(updates))
        return updated

    async def delete_lane(self, lane_id: str, user_id: str) -> None:
        """Delete a lane that no item references.

        Raises:
            LaneInUseError: Items still use the lane's slug
        """
        lane = await self._load_visible(lane_id, user_id)
        if lane.user_id is None:
            self._require_global_edits()
        usage = await self._items.count_items_in_lane(lane.slug)
        if usage > 0:
            raise LaneInUseError("Lane is still used by timeline items", current=lane)
        await self._lanes.delete(lane.id)
        logger.info("lane deleted", lane_id=lane.id, slug=lane.slug)

    async def resolve_for_item(
        self,
        user_id: str | None,
        context: dict[str, Any],
        explicit_lane: str | None = None,
    ) -> LaneResolution:
        """Pick the lane for a new item.

        An explicit lane always wins; otherwise the first matching
        auto-assign rule, otherwise the default lane for the type.
        """
        if explicit_lane and explicit_lane.strip():
            return LaneResolution(slug=explicit_lane.strip())
        lanes = await self._lanes.list_visible(user_id)
        lane = resolve_auto_assigned_lane(lanes, context)
        if lane is not None:
            return LaneResolution(slug=lane.slug, auto_assigned=True, lane_id=lane.id)
        return LaneResolution(slug=lane_for_type(context.get("type")))

    async def reapply(self, lane_id: str, user_id: str) -> ReapplyResult:
        """Re-run auto-assignment for items with no lane or this lane.

        Items that no rule matches keep their current lane, including none.

        Each item is written on its own; a failed write is counted as
        skipped and does not stop the batch.
        """
        lanes = await self._lanes.list_visible(user_id)
        target = next((lane for lane in lanes if lane.id == lane_id), None)
        if target is None:
            raise LaneNotFoundError("Lane not found")

        result = ReapplyResult()
        for item in await self._items.list_items_for_lane(target.slug):
            suggested = resolve_auto_assigned_lane(lanes, item_context(item))
            next_lane = suggested.slug if suggested else item.lane
            if next_lane == item.lane:
                result.unchanged += 1
                continue
            try:
                written = await self._items.update_lane(item.id, item.project_id, next_lane)
            except Exception as e:
                logger.warning("lane reapply write failed", item_id=item.id, error=str(e))
                written = False
            if written:
                result.updated += 1
            else:
                result.skipped += 1

        logger.info(
            "lane reapplied",
            lane_id=lane_id,
            updated=result.updated,
            unchanged=result.unchanged,
            skipped=result.skipped,
        )
        if self._events:
            await self._events.record(
                LaneReapplied(
                    aggregate_id=lane_id,
                    actor_id=user_id,
                    **result.model_dump(),
                )
            )
        return result
