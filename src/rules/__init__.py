"""Project assignment rules for inbound records.

Provides:
- evaluate_rule: Match one rule against one record
- normalize_rule_input: Coerce loose rule input into typed fields
- AssignmentRuleService: Rule CRUD, record linking and replay
"""

from src.rules.evaluator import (
    dry_run_rule,
    evaluate_rule,
    normalize_rule_input,
    timeline_type_for_category,
)
from src.rules.service import AssignmentRuleService

__all__ = [
    "dry_run_rule",
    "evaluate_rule",
    "normalize_rule_input",
    "timeline_type_for_category",
    "AssignmentRuleService",
]
