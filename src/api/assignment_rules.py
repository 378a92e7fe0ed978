"""Project assignment rule endpoints.

Rule bodies are accepted loosely (camelCase or snake_case, partial
conditions) and normalised by the service.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from src.api.deps import get_actor_id, get_rule_service
from src.models.assignment_rule import InboundRecord, ProjectAssignmentRule
from src.models.link import ProjectRecordLink
from src.rules.service import AssignmentRuleService

router = APIRouter(prefix="/assignment-rules", tags=["assignment-rules"])


class RuleResponse(BaseModel):
    rule: ProjectAssignmentRule


class RuleListResponse(BaseModel):
    rules: list[ProjectAssignmentRule]


class RecordsRequest(BaseModel):
    """Inbound records to evaluate."""

    records: list[InboundRecord] = Field(default_factory=list)


class RuleTestResult(BaseModel):
    record_id: str
    matched: bool
    matches: list[dict[str, Any]] = Field(default_factory=list)


class RuleTestResponse(BaseModel):
    results: list[RuleTestResult]


class ApplyResponse(BaseModel):
    links: list[ProjectRecordLink]


class ReplayResponse(BaseModel):
    processed: int
    links_created: int
    skipped: int


@router.get("", response_model=RuleListResponse)
async def list_rules(
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> RuleListResponse:
    return RuleListResponse(rules=await service.list_rules(actor_id))


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    body: dict[str, Any] = Body(...),
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> RuleResponse:
    return RuleResponse(rule=await service.create_rule(actor_id, body))


@router.post("/apply", response_model=ApplyResponse)
async def apply_rules(
    body: RecordsRequest,
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> ApplyResponse:
    """Link each record to every project whose rule matches it."""
    links: list[ProjectRecordLink] = []
    for record in body.records:
        links.extend(await service.apply_to_record(actor_id, record))
    return ApplyResponse(links=links)


@router.post("/replay", response_model=ReplayResponse)
async def replay_rules(
    body: RecordsRequest,
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> ReplayResponse:
    """Re-run the caller's rules over a backlog of records."""
    return ReplayResponse(**await service.replay(actor_id, body.records))


@router.patch("/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: str,
    body: dict[str, Any] = Body(...),
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> RuleResponse:
    return RuleResponse(rule=await service.update_rule(rule_id, actor_id, body))


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: str,
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> dict[str, Any]:
    await service.delete_rule(rule_id, actor_id)
    return {"success": True, "id": rule_id}


@router.post("/{rule_id}/test", response_model=RuleTestResponse)
async def dry_run_rule(
    rule_id: str,
    body: RecordsRequest,
    actor_id: str = Depends(get_actor_id),
    service: AssignmentRuleService = Depends(get_rule_service),
) -> RuleTestResponse:
    """Dry-run a stored rule; nothing is linked."""
    results = await service.test_rule(rule_id, actor_id, body.records)
    return RuleTestResponse(
        results=[
            RuleTestResult(
                record_id=result["record_id"],
                matched=result["matched"],
                matches=[m.model_dump(mode="json") for m in result["matches"]],
            )
            for result in results
        ]
    )
