"""Timeline item, dependency, conflict and slot endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from src.api.deps import get_timeline_service, require_role
from src.errors import PayloadValidationError
from src.models.timeline import DependencyInput, TimelineDependency, TimelineItem
from src.scheduling.conflicts import ConflictRecord
from src.scheduling.slots import SlotSearchOptions, SlotSearchResult
from src.timeline.schemas import TimelineItemCreate, TimelineItemUpdate
from src.timeline.service import TimelineService

router = APIRouter(tags=["timeline"])


class TimelineListResponse(BaseModel):
    """Items of a project with their dependency edges."""

    items: list[TimelineItem]
    dependencies: list[TimelineDependency]


class TimelineItemResponse(BaseModel):
    item: TimelineItem
    dependencies: list[TimelineDependency] = Field(default_factory=list)


class DependenciesRequest(BaseModel):
    """Replacement incoming edge set for an item."""

    dependencies: list[DependencyInput] = Field(default_factory=list)


class DependenciesResponse(BaseModel):
    dependencies: list[TimelineDependency]


class ConflictsResponse(BaseModel):
    conflicts: list[ConflictRecord]
    buffer_hours: float | None = None


class SuggestSlotsRequest(BaseModel):
    """Slot search request; keys may be camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date_range: list[str] = Field(min_length=2, max_length=2)
    duration_hours: float
    project_id: str | None = None
    city: str | None = None
    territory: str | None = None
    constraints: list[str] = Field(default_factory=list)
    max_results: int | None = None
    timezone: str | None = None


@router.get("/projects/{project_id}/timeline", response_model=TimelineListResponse)
async def list_timeline(
    project_id: str,
    actor_id: str = Depends(require_role("viewer")),
    service: TimelineService = Depends(get_timeline_service),
) -> TimelineListResponse:
    """List a project's items ordered by start time, with their edges."""
    return TimelineListResponse(
        items=await service.list_items(project_id),
        dependencies=await service.list_dependencies(project_id),
    )


@router.post(
    "/projects/{project_id}/timeline",
    response_model=TimelineItemResponse,
    status_code=201,
)
async def create_timeline_item(
    project_id: str,
    body: TimelineItemCreate,
    actor_id: str = Depends(require_role("editor")),
    service: TimelineService = Depends(get_timeline_service),
) -> TimelineItemResponse:
    """Create an item; its lane is explicit, auto-assigned, or the type default."""
    item, dependencies = await service.create_item(project_id, body, actor_id)
    return TimelineItemResponse(item=item, dependencies=dependencies)


@router.get(
    "/projects/{project_id}/timeline/conflicts",
    response_model=ConflictsResponse,
)
async def get_conflicts(
    project_id: str,
    buffer_hours: float | None = Query(default=None, ge=0, description="Territory buffer"),
    travel_buffer: bool = Query(default=False, description="Also flag travel adjacency"),
    actor_id: str = Depends(require_role("viewer")),
    service: TimelineService = Depends(get_timeline_service),
) -> ConflictsResponse:
    """Conflicts computed on demand for the project's current items."""
    conflicts = await service.detect_conflicts(
        project_id, buffer_hours, travel_buffer=travel_buffer
    )
    return ConflictsResponse(conflicts=conflicts, buffer_hours=buffer_hours)


@router.patch(
    "/projects/{project_id}/timeline/{item_id}",
    response_model=TimelineItemResponse,
)
async def update_timeline_item(
    project_id: str,
    item_id: str,
    body: TimelineItemUpdate,
    actor_id: str = Depends(require_role("editor")),
    service: TimelineService = Depends(get_timeline_service),
) -> TimelineItemResponse:
    """Apply a partial update; ``dependencies`` replaces the incoming edges."""
    item = await service.update_item(project_id, item_id, body, actor_id)
    dependencies = [
        edge
        for edge in await service.list_dependencies(project_id)
        if edge.to_item_id == item_id
    ]
    return TimelineItemResponse(item=item, dependencies=dependencies)


@router.delete("/projects/{project_id}/timeline/{item_id}")
async def delete_timeline_item(
    project_id: str,
    item_id: str,
    actor_id: str = Depends(require_role("editor")),
    service: TimelineService = Depends(get_timeline_service),
) -> dict[str, Any]:
    """Delete an item and every edge touching it."""
    await service.delete_item(project_id, item_id, actor_id)
    return {"success": True, "id": item_id}


@router.put(
    "/projects/{project_id}/timeline/{item_id}/dependencies",
    response_model=DependenciesResponse,
)
async def replace_dependencies(
    project_id: str,
    item_id: str,
    body: DependenciesRequest,
    actor_id: str = Depends(require_role("editor")),
    service: TimelineService = Depends(get_timeline_service),
) -> DependenciesResponse:
    """Replace the item's incoming edge set."""
    edges = await service.set_dependencies(project_id, item_id, body.dependencies, actor_id)
    return DependenciesResponse(dependencies=edges)


@router.post("/timeline/suggest-slots", response_model=SlotSearchResult)
async def suggest_slots(
    body: SuggestSlotsRequest,
    actor_id: str = Depends(require_role("viewer")),
    service: TimelineService = Depends(get_timeline_service),
) -> SlotSearchResult:
    """Free windows of the requested duration within the range."""
    fields = body.model_dump(exclude_none=True)
    try:
        options = SlotSearchOptions.model_validate(fields)
    except ValidationError as e:
        raise PayloadValidationError(e.errors()[0]["msg"]) from e
    return await service.suggest_slots(options)
