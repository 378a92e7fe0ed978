"""Project assignment rule evaluation.

Rules are evaluated against an ``InboundRecord``. Conditions are joined
by ``and`` (stop at the first failure) or ``or`` (stop at the first
success); the result lists every condition that was evaluated.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import dateparser

from src.errors import PayloadValidationError
from src.lanes.conditions import normalise_value
from src.models.assignment_rule import (
    ConditionField,
    ConditionGroup,
    ConditionMatch,
    ConditionOperator,
    ConfidenceLevel,
    InboundRecord,
    ProjectAssignmentRule,
    RuleAction,
    RuleCondition,
    RuleEvaluation,
)
from src.models.base import utc_now
from src.models.timeline import TimelineItemType, parse_timestamp

TEXT_OPERATORS = frozenset(
    {
        ConditionOperator.CONTAINS,
        ConditionOperator.NOT_CONTAINS,
        ConditionOperator.STARTS_WITH,
        ConditionOperator.ENDS_WITH,
    }
)

TRUE_STRINGS = {"true", "1", "yes", "y"}
FALSE_STRINGS = {"false", "0", "no", "n"}

# Category prefix -> (item type, lane) for items created from a record
CATEGORY_PLACEMENT: list[tuple[str, TimelineItemType, str]] = [
    ("BOOKING", TimelineItemType.HOLD, "LIVE_HOLDS"),
    ("LEGAL", TimelineItemType.TASK, "LEGAL"),
    ("FINANCE", TimelineItemType.TASK, "FINANCE"),
    ("PROMO", TimelineItemType.EVENT, "PROMO"),
    ("LOGISTICS", TimelineItemType.EVENT, "TRAVEL"),
]


def ensure_string(value: Any, fallback: str = "") -> str:
    if isinstance(value, str):
        return value.strip()
    if value is None:
        return fallback
    if isinstance(value, (bool, int, float)):
        return str(value).lower() if isinstance(value, bool) else str(value)
    return fallback


def ensure_bool(value: Any, fallback: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return fallback


def ensure_number(value: Any, fallback: float | None = None) -> float | None:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return fallback
    return fallback


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else [value]


def normalize_condition(raw: Any, index: int) -> RuleCondition:
    """Coerce one raw condition into a typed condition.

    Unknown operators become ``contains``; the value is shaped for
    the operator (term list, range, day count, bool or number).
    """
    if not isinstance(raw, dict):
        return RuleCondition(
            id=f"cond-{index}",
            field=ConditionField.SUBJECT,
            operator=ConditionOperator.CONTAINS,
            value=[],
        )

    field_name = ensure_string(raw.get("field"), "subject") or "subject"
    try:
        field = ConditionField(field_name)
    except ValueError as e:
        msg = f"Unknown condition field: {field_name}"
        raise PayloadValidationError(msg) from e
    try:
        operator = ConditionOperator(ensure_string(raw.get("operator"), "contains"))
    except ValueError:
        operator = ConditionOperator.CONTAINS

    raw_value = raw.get("value")
    if operator == ConditionOperator.BETWEEN:
        bounds = raw_value if isinstance(raw_value, dict) else {}
        value: Any = {
            "min": ensure_number(bounds.get("min")),
            "max": ensure_number(bounds.get("max")),
        }
    elif operator == ConditionOperator.WITHIN_LAST_DAYS:
        days = raw_value.get("days") if isinstance(raw_value, dict) else raw_value
        value = {"days": ensure_number(days)}
    elif field == ConditionField.LABELS:
        terms = [ensure_string(v) for v in _as_list(raw_value)]
        if operator == ConditionOperator.IS_ONE_OF:
            value = [t for t in terms if t]
        else:
            value = [t.lower() for t in terms if t]
    elif operator in TEXT_OPERATORS or operator == ConditionOperator.IS_ONE_OF:
        value = [t for t in (ensure_string(v) for v in _as_list(raw_value)) if t]
    elif field == ConditionField.HAS_ATTACHMENT:
        value = ensure_bool(raw_value)
    elif field == ConditionField.PRIORITY_SCORE:
        value = ensure_number(raw_value)
    else:
        value = ensure_string(raw_value)

    return RuleCondition(
        id=ensure_string(raw.get("id")) or f"cond-{index}",
        field=field,
        operator=operator,
        value=value,
    )


def normalize_condition_group(raw: Any) -> ConditionGroup:
    if not isinstance(raw, dict):
        return ConditionGroup()
    logic = "or" if ensure_string(raw.get("logic"), "and").lower() == "or" else "and"
    conditions = raw.get("conditions") if isinstance(raw.get("conditions"), list) else []
    return ConditionGroup(
        logic=logic,
        conditions=[normalize_condition(c, i) for i, c in enumerate(conditions)],
    )


def normalize_actions(raw: Any, fallback_project_id: str) -> RuleAction:
    if not isinstance(raw, dict):
        return RuleAction(project_id=fallback_project_id)
    lane = raw.get("assignToLaneId", raw.get("laneId", raw.get("assign_to_lane_id")))
    confidence = ensure_string(raw.get("confidence")).lower()
    metadata = raw.get("metadata")
    return RuleAction(
        project_id=ensure_string(
            raw.get("projectId", raw.get("project_id")), fallback_project_id
        )
        or fallback_project_id,
        assign_to_lane_id=ensure_string(lane) or None,
        confidence=confidence if confidence in {"low", "medium", "high"} else "high",
        note=ensure_string(raw.get("note")) or None,
        create_timeline_item=ensure_bool(
            raw.get("createTimelineItem", raw.get("create_timeline_item"))
        ),
        metadata=metadata if isinstance(metadata, dict) else {},
    )


def normalize_rule_input(
    data: dict[str, Any],
    defaults: ProjectAssignmentRule | None = None,
) -> dict[str, Any]:
    """Coerce loosely-typed rule input into ProjectAssignmentRule fields.

    Args:
        data: Raw input (camelCase or snake_case keys)
        defaults: Existing rule whose values fill in missing keys

    Returns:
        Keyword arguments for ``ProjectAssignmentRule`` (without id,
        user_id and timestamps)

    Raises:
        PayloadValidationError: No target project, or an unknown field
    """

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in data and data[key] is not None:
                return data[key]
        return None

    base = defaults.model_dump(mode="json") if defaults else {}
    fallback_project = ensure_string(pick("projectId", "project_id"), base.get("project_id", ""))

    raw_conditions = pick("conditions")
    conditions = normalize_condition_group(
        raw_conditions if raw_conditions is not None else base.get("conditions")
    )
    raw_actions = pick("actions")
    actions = normalize_actions(
        raw_actions if raw_actions is not None else base.get("actions"),
        fallback_project,
    )
    project_id = actions.project_id or fallback_project
    if not project_id:
        raise PayloadValidationError("Rule must target a project")
    actions.project_id = project_id

    description = pick("description")
    if description is None:
        description = base.get("description")
    description = ensure_string(description) or None

    metadata = pick("metadata")
    if not isinstance(metadata, dict):
        metadata = base.get("metadata") or {}

    return {
        "project_id": project_id,
        "name": ensure_string(pick("name"), base.get("name", "")) or "Untitled rule",
        "description": description,
        "enabled": ensure_bool(pick("enabled"), base.get("enabled", True)),
        "sort_order": ensure_number(pick("sortOrder", "sort_order"), base.get("sort_order", 0))
        or 0,
        "conditions": conditions,
        "actions": actions,
        "metadata": dict(metadata),
    }


def _text_matches(target: str, operator: ConditionOperator, value: Any) -> bool:
    terms = [str(v).lower() for v in value] if isinstance(value, list) else [
        str(value if value is not None else "").lower()
    ]
    lowered = target.lower()
    if operator == ConditionOperator.CONTAINS:
        return any(term in lowered for term in terms)
    if operator == ConditionOperator.NOT_CONTAINS:
        return all(term not in lowered for term in terms)
    if operator == ConditionOperator.STARTS_WITH:
        return any(lowered.startswith(term) for term in terms)
    if operator == ConditionOperator.ENDS_WITH:
        return any(lowered.endswith(term) for term in terms)
    if operator in (ConditionOperator.EQUALS, ConditionOperator.IS_ONE_OF):
        return any(lowered == term for term in terms)
    if operator == ConditionOperator.NOT_EQUALS:
        return all(lowered != term for term in terms)
    return False


def _labels_match(labels: list[str], operator: ConditionOperator, value: Any) -> bool:
    normalised = [normalise_value(label) for label in labels]
    wanted = [normalise_value(v) for v in _as_list(value)]
    if operator == ConditionOperator.IS_ONE_OF:
        return any(v in normalised for v in wanted)
    if operator == ConditionOperator.CONTAINS:
        return any(v in label for v in wanted for label in normalised)
    if operator == ConditionOperator.NOT_CONTAINS:
        return all(v not in label for v in wanted for label in normalised)
    return False


def parse_rule_date(value: Any, now: datetime) -> datetime | None:
    """Parse a before/after limit: ISO 8601 first, then natural language."""
    if isinstance(value, datetime):
        return parse_timestamp(value)
    if not isinstance(value, str) or not value.strip():
        return None
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed
    try:
        parsed = dateparser.parse(
            value,
            settings={
                "RELATIVE_BASE": now.astimezone(UTC).replace(tzinfo=None),
                "TIMEZONE": "UTC",
                "RETURN_AS_TIMEZONE_AWARE": True,
            },
        )
    except Exception:
        # dateparser can raise various exceptions on malformed input
        return None
    return parse_timestamp(parsed) if parsed else None


def _date_matches(
    received: datetime | str | None,
    operator: ConditionOperator,
    value: Any,
    now: datetime,
) -> bool:
    received_at = parse_timestamp(received)
    if received_at is None:
        return False
    if operator in (ConditionOperator.BEFORE, ConditionOperator.AFTER):
        limit = parse_rule_date(value, now)
        if limit is None:
            return False
        if operator == ConditionOperator.BEFORE:
            return received_at < limit
        return received_at > limit
    if operator == ConditionOperator.WITHIN_LAST_DAYS:
        days = ensure_number(value.get("days") if isinstance(value, dict) else value)
        if days is None or days < 0:
            return False
        age = now - received_at
        return timedelta(0) <= age <= timedelta(days=days)
    return False


def _number_matches(target: float | None, operator: ConditionOperator, value: Any) -> bool:
    if target is None:
        return False
    if operator == ConditionOperator.BETWEEN:
        bounds = value if isinstance(value, dict) else {}
        low, high = ensure_number(bounds.get("min")), ensure_number(bounds.get("max"))
        if low is not None and target < low:
            return False
        return not (high is not None and target > high)
    expected = ensure_number(value)
    if expected is None:
        return False
    if operator == ConditionOperator.EQUALS:
        return target == expected
    # Thresholds are inclusive
    if operator == ConditionOperator.GREATER_THAN:
        return target >= expected
    if operator == ConditionOperator.LESS_THAN:
        return target <= expected
    return False


def evaluate_condition(
    condition: RuleCondition,
    record: InboundRecord,
    now: datetime,
) -> bool:
    """Evaluate one condition against a record."""
    field, operator, value = condition.field, condition.operator, condition.value

    if field == ConditionField.SUBJECT:
        return _text_matches(record.subject or "", operator, value)
    if field == ConditionField.FROM_NAME:
        return _text_matches(record.from_name or "", operator, value)
    if field == ConditionField.FROM_EMAIL:
        return _text_matches(record.from_email or "", operator, value)
    if field == ConditionField.BODY:
        return _text_matches(record.body or record.summary or "", operator, value)
    if field == ConditionField.CATEGORY:
        return _text_matches(record.category or "", operator, value)
    if field == ConditionField.TRIAGE_STATE:
        return _text_matches(record.triage_state or "", operator, value)
    if field == ConditionField.LABELS:
        return _labels_match(record.labels, operator, value)
    if field == ConditionField.HAS_ATTACHMENT:
        if isinstance(value, bool):
            if operator == ConditionOperator.EQUALS:
                return record.has_attachments == value
            return record.has_attachments != value
        return record.has_attachments == ensure_bool(value)
    if field == ConditionField.RECEIVED_AT:
        return _date_matches(record.received_at, operator, value, now)
    if field == ConditionField.PRIORITY_SCORE:
        return _number_matches(record.priority_score, operator, value)
    return False


def evaluate_rule(
    rule: ProjectAssignmentRule,
    record: InboundRecord,
    now: datetime | None = None,
) -> RuleEvaluation:
    """Evaluate a rule against one inbound record.

    Args:
        rule: Rule to evaluate
        record: Normalised inbound record
        now: Reference time for relative date conditions

    Returns:
        RuleEvaluation; disabled rules never match, an empty condition
        list always does
    """
    if not rule.enabled:
        return RuleEvaluation(matched=False)

    conditions = rule.conditions.conditions
    if not conditions:
        return RuleEvaluation(matched=True)

    reference = now or utc_now()
    is_and = rule.conditions.logic != "or"
    overall = is_and
    matches: list[ConditionMatch] = []

    for condition in conditions:
        outcome = evaluate_condition(condition, record, reference)
        matches.append(
            ConditionMatch(
                condition_id=condition.id,
                field=condition.field,
                operator=condition.operator,
                matched=outcome,
            )
        )
        if is_and and not outcome:
            overall = False
            break
        if not is_and and outcome:
            overall = True
            break

    return RuleEvaluation(matched=overall, matches=matches)


def dry_run_rule(
    rule: ProjectAssignmentRule,
    records: list[InboundRecord],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Dry-run a rule over several records without writing anything."""
    results = []
    for record in records:
        evaluation = evaluate_rule(rule, record, now)
        results.append(
            {
                "record_id": record.id,
                "matched": evaluation.matched,
                "matches": evaluation.matches,
            }
        )
    return results


def timeline_type_for_category(
    category: str | None,
) -> tuple[TimelineItemType, str]:
    """Item type and lane for a timeline item created from a record.

    Examples:
        >>> timeline_type_for_category("BOOKING/Offer")
        (<TimelineItemType.HOLD: 'hold'>, 'LIVE_HOLDS')
    """
    if category:
        upper = category.upper()
        for prefix, item_type, lane in CATEGORY_PLACEMENT:
            if upper.startswith(prefix):
                return item_type, lane
    return TimelineItemType.TASK, "PROMO"


def confidence_level(value: Any) -> ConfidenceLevel:
    try:
        return ConfidenceLevel(ensure_string(value).lower())
    except ValueError:
        return ConfidenceLevel.HIGH
