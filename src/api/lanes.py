"""Lane registry endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_actor_id, get_lane_service
from src.lanes.schemas import LaneCreate, LaneUpdate, ReapplyResult
from src.lanes.service import LaneService
from src.models.lane import LaneDefinition

router = APIRouter(prefix="/lanes", tags=["lanes"])


class LaneListResponse(BaseModel):
    lanes: list[LaneDefinition]


class LaneResponse(BaseModel):
    lane: LaneDefinition


@router.get("", response_model=LaneListResponse)
async def list_lanes(
    actor_id: str = Depends(get_actor_id),
    service: LaneService = Depends(get_lane_service),
) -> LaneListResponse:
    """Workspace lanes plus the caller's own, in evaluation order."""
    return LaneListResponse(lanes=await service.list_lanes(actor_id))


@router.post("", response_model=LaneResponse, status_code=201)
async def create_lane(
    body: LaneCreate,
    actor_id: str = Depends(get_actor_id),
    service: LaneService = Depends(get_lane_service),
) -> LaneResponse:
    return LaneResponse(lane=await service.create_lane(actor_id, body))


@router.patch("/{lane_id}", response_model=LaneResponse)
async def update_lane(
    lane_id: str,
    body: LaneUpdate,
    actor_id: str = Depends(get_actor_id),
    service: LaneService = Depends(get_lane_service),
) -> LaneResponse:
    return LaneResponse(lane=await service.update_lane(lane_id, actor_id, body))


@router.delete("/{lane_id}")
async def delete_lane(
    lane_id: str,
    actor_id: str = Depends(get_actor_id),
    service: LaneService = Depends(get_lane_service),
) -> dict[str, Any]:
    """Delete a lane; refused with 409 while items still use it."""
    await service.delete_lane(lane_id, actor_id)
    return {"success": True, "id": lane_id}


@router.post("/{lane_id}/reapply", response_model=ReapplyResult)
async def reapply_lane(
    lane_id: str,
    actor_id: str = Depends(get_actor_id),
    service: LaneService = Depends(get_lane_service),
) -> ReapplyResult:
    """Re-run auto-assignment for items without a lane or in this lane."""
    return await service.reapply(lane_id, actor_id)
