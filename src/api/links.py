"""Project/record link endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_rule_service, require_role
from src.models.link import ProjectRecordLink
from src.rules.service import AssignmentRuleService

router = APIRouter(prefix="/projects/{project_id}/links", tags=["links"])


class LinkListResponse(BaseModel):
    links: list[ProjectRecordLink]


class UnlinkResponse(BaseModel):
    success: bool
    removed: bool


@router.get("", response_model=LinkListResponse)
async def list_links(
    project_id: str,
    actor_id: str = Depends(require_role("viewer")),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> LinkListResponse:
    return LinkListResponse(links=await service.list_project_links(project_id))


@router.delete("/{record_id}", response_model=UnlinkResponse)
async def remove_link(
    project_id: str,
    record_id: str,
    actor_id: str = Depends(require_role("editor")),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> UnlinkResponse:
    """Unlink a record; rules will not link the pair again for this user."""
    removed = await service.remove_link(actor_id, project_id, record_id)
    return UnlinkResponse(success=True, removed=removed)
