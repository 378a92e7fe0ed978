"""Project assignment rule models.

A rule pairs a predicate over an inbound record with an action that
links the record to a project. See ``src.rules.evaluator`` for the
evaluation semantics.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.models.base import BaseEntity


class ConditionField(str, Enum):
    """Inbound record fields a condition can test."""

    SUBJECT = "subject"
    FROM_NAME = "from_name"
    FROM_EMAIL = "from_email"
    BODY = "body"
    CATEGORY = "category"
    LABELS = "labels"
    HAS_ATTACHMENT = "has_attachment"
    RECEIVED_AT = "received_at"
    PRIORITY_SCORE = "priority_score"
    TRIAGE_STATE = "triage_state"


class ConditionOperator(str, Enum):
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_ONE_OF = "is_one_of"
    BEFORE = "before"
    AFTER = "after"
    WITHIN_LAST_DAYS = "within_last_days"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CONFIDENCE_SCORES: dict[ConfidenceLevel, float] = {
    ConfidenceLevel.HIGH: 1.0,
    ConfidenceLevel.MEDIUM: 0.7,
    ConfidenceLevel.LOW: 0.4,
}


def confidence_to_score(level: ConfidenceLevel | str | None) -> float | None:
    """Numeric link confidence for a declared confidence level."""
    if level is None:
        return None
    try:
        return CONFIDENCE_SCORES[ConfidenceLevel(level)]
    except ValueError:
        return None


def score_to_confidence(score: float | None) -> ConfidenceLevel | None:
    """Bucket a numeric score back into a confidence level."""
    if score is None:
        return None
    if score >= 0.85:
        return ConfidenceLevel.HIGH
    if score >= 0.6:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


class RuleCondition(BaseModel):
    """Single predicate: ``field operator value``."""

    id: str
    field: ConditionField
    operator: ConditionOperator
    value: Any = None


class ConditionGroup(BaseModel):
    """Conditions joined by ``and``/``or``."""

    logic: str = Field(default="and", pattern="^(and|or)$")
    conditions: list[RuleCondition] = Field(default_factory=list)


class RuleAction(BaseModel):
    """What happens when a rule matches."""

    project_id: str = ""
    assign_to_lane_id: str | None = None
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    note: str | None = None
    create_timeline_item: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProjectAssignmentRule(BaseEntity):
    """User-owned predicate + action pair targeting one project."""

    user_id: str
    project_id: str
    name: str = Field(default="Untitled rule")
    description: str | None = None
    enabled: bool = True
    sort_order: float = 0
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)
    actions: RuleAction = Field(default_factory=RuleAction)
    metadata: dict[str, Any] = Field(default_factory=dict)


class InboundRecord(BaseModel):
    """Normalised view of an inbound message from the classification pipeline."""

    id: str
    subject: str = ""
    from_name: str | None = None
    from_email: str = ""
    body: str | None = None
    summary: str | None = None
    category: str | None = None
    labels: list[str] = Field(default_factory=list)
    priority_score: float | None = None
    triage_state: str | None = None
    received_at: datetime | str | None = None
    has_attachments: bool = False


class ConditionMatch(BaseModel):
    """Outcome of one evaluated condition."""

    condition_id: str
    field: ConditionField
    operator: ConditionOperator
    matched: bool


class RuleEvaluation(BaseModel):
    """Result of evaluating one rule against one record."""

    matched: bool
    matches: list[ConditionMatch] = Field(default_factory=list)
