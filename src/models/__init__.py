"""Canonical data models for the timeline approvals service.

This module exports all domain models used throughout the application:
- BaseEntity: Base class with id, timestamps
- TimelineItem / TimelineDependency: Scheduled work and precedence edges
- LaneDefinition: Scheduling categories with auto-assign rules
- Approval: Reviewable structural mutations
- ProjectAssignmentRule: Predicate rules linking inbound records to projects
- ProjectTask / ProjectRecordLink: Rows written by approval appliers
"""

from src.models.approval import (
    Approval,
    ApprovalAction,
    ApprovalStatus,
    ApprovalType,
)
from src.models.assignment_rule import (
    ConditionGroup,
    ConfidenceLevel,
    InboundRecord,
    ProjectAssignmentRule,
    RuleAction,
    RuleCondition,
    RuleEvaluation,
)
from src.models.base import BaseEntity
from src.models.lane import LaneDefinition, LaneScope
from src.models.link import LinkSource, ProjectRecordLink
from src.models.task import ProjectTask
from src.models.timeline import (
    DependencyInput,
    DependencyKind,
    TimelineDependency,
    TimelineItem,
    TimelineItemStatus,
    TimelineItemType,
)

__all__ = [
    # Base
    "BaseEntity",
    # Timeline
    "TimelineItem",
    "TimelineItemType",
    "TimelineItemStatus",
    "TimelineDependency",
    "DependencyInput",
    "DependencyKind",
    # Lanes
    "LaneDefinition",
    "LaneScope",
    # Approvals
    "Approval",
    "ApprovalAction",
    "ApprovalStatus",
    "ApprovalType",
    # Rules
    "ProjectAssignmentRule",
    "ConditionGroup",
    "RuleCondition",
    "RuleAction",
    "ConfidenceLevel",
    "InboundRecord",
    "RuleEvaluation",
    # Applier targets
    "ProjectTask",
    "ProjectRecordLink",
    "LinkSource",
]
