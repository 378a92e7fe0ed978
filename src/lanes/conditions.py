"""Predicate grammar for lane auto-assignment rules.

A rule tree is either a condition node or a shorthand map:

- ``{"all": [...]}`` / ``{"any": [...]}`` / ``{"none": [...]}``
- ``{"field": "labels.territory", "operator": "eq", "value": "UK"}``
- ``{"logic": "and", "conditions": [...]}`` (assignment-rule style group)
- ``{"type": "event", "labels": {"territory": "UK"}}`` where every key
  must match; a value may be ``{"operator": ..., "value": ...}``, a
  nested condition node, or a nested map that descends into the field.

String comparison ignores case, surrounding whitespace and accents.
"""

import json
import re
import unicodedata
from typing import Any

GROUP_KEYS = ("all", "any", "none")


def normalise_value(value: Any) -> str:
    """Fold a value to a lowercase, accent-free, trimmed string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.strip().lower()


def is_condition_node(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    if any(isinstance(value.get(key), list) for key in GROUP_KEYS):
        return True
    if isinstance(value.get("logic"), str) and isinstance(value.get("conditions"), list):
        return True
    return isinstance(value.get("field"), str) and isinstance(value.get("operator"), str)


def get_field_value(context: dict[str, Any], field_path: str) -> Any:
    """Resolve a dotted path such as ``labels.territory``."""
    value: Any = context
    for segment in (s.strip() for s in field_path.split(".")):
        if not segment:
            continue
        if not isinstance(value, dict):
            return None
        value = value.get(segment)
    return value


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, (list, dict)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def compare_value(actual: Any, expected: Any) -> bool:
    """Loose equality used by ``eq`` and shorthand maps."""
    if isinstance(expected, list):
        targets = {normalise_value(entry) for entry in expected}
        if isinstance(actual, list):
            return any(normalise_value(entry) in targets for entry in actual)
        return normalise_value(actual) in targets

    if isinstance(expected, str):
        wanted = normalise_value(expected)
        if isinstance(actual, list):
            return any(normalise_value(entry) == wanted for entry in actual)
        return normalise_value(actual) == wanted

    if isinstance(expected, bool):
        return bool(actual) == expected

    if isinstance(expected, (int, float)):
        number = _to_number(actual)
        return number is not None and number == expected

    if expected is None:
        return actual is None

    if isinstance(expected, dict):
        if is_condition_node(expected):
            return evaluate_condition(expected, {})
        return json.dumps(actual, sort_keys=True, default=str) == json.dumps(
            expected, sort_keys=True, default=str
        )

    return actual == expected


def _contains(actual: Any, expected: Any) -> bool | None:
    """Substring test; None when the value is neither text nor a list."""
    needle = normalise_value(expected)
    if isinstance(actual, list):
        return any(needle in normalise_value(entry) for entry in actual)
    if isinstance(actual, str):
        return needle in normalise_value(actual)
    return None


def _numeric(actual: Any, expected: Any, op: str) -> bool:
    left, right = _to_number(actual), _to_number(expected)
    if left is None or right is None:
        return False
    if op == "gt":
        return left > right
    if op == "gte":
        return left >= right
    if op == "lt":
        return left < right
    return left <= right


OPERATOR_ALIASES = {
    "eq": "eq",
    "equals": "eq",
    "ne": "ne",
    "not_equals": "ne",
    "gt": "gt",
    "greater_than": "gt",
    "gte": "gte",
    "greater_than_or_equal": "gte",
    "lt": "lt",
    "less_than": "lt",
    "lte": "lte",
    "less_than_or_equal": "lte",
}


def evaluate_operator(actual: Any, operator: str, expected: Any) -> bool:
    """Apply one operator; unknown operators fall back to equality."""
    op = OPERATOR_ALIASES.get(operator, operator)

    if op == "eq":
        return compare_value(actual, expected)
    if op == "ne":
        return not compare_value(actual, expected)
    if op == "contains":
        return bool(_contains(actual, expected))
    if op == "not_contains":
        found = _contains(actual, expected)
        return True if found is None else not found
    if op in ("gt", "gte", "lt", "lte"):
        return _numeric(actual, expected, op)
    if op == "matches_regex":
        if not isinstance(actual, str):
            return False
        try:
            return re.search(str(expected), actual) is not None
        except re.error:
            return False
    if op in ("in", "not_in"):
        options = expected if isinstance(expected, list) else [expected]
        present = normalise_value(actual) in {normalise_value(o) for o in options}
        return present if op == "in" else not present
    if op == "starts_with":
        return isinstance(actual, str) and normalise_value(actual).startswith(
            normalise_value(expected)
        )
    if op == "ends_with":
        return isinstance(actual, str) and normalise_value(actual).endswith(
            normalise_value(expected)
        )
    return compare_value(actual, expected)


def evaluate_condition(node: dict[str, Any], context: dict[str, Any]) -> bool:
    """Evaluate a condition node; empty groups never match."""
    for key in GROUP_KEYS:
        children = node.get(key)
        if isinstance(children, list) and children:
            results = (evaluate_rule_node(child, context) for child in children)
            if key == "all":
                return all(results)
            if key == "any":
                return any(results)
            return not any(results)

    conditions = node.get("conditions")
    if isinstance(node.get("logic"), str) and isinstance(conditions, list):
        if not conditions:
            return False
        results = (evaluate_rule_node(child, context) for child in conditions)
        return any(results) if node["logic"].lower() == "or" else all(results)

    field, operator = node.get("field"), node.get("operator")
    if isinstance(field, str) and isinstance(operator, str):
        return evaluate_operator(
            get_field_value(context, field), operator, node.get("value")
        )
    return False


def evaluate_rule_node(rules: Any, context: dict[str, Any]) -> bool:
    """Evaluate a rule tree (condition node or shorthand map)."""
    if not rules or not isinstance(rules, dict):
        return False

    if is_condition_node(rules):
        return evaluate_condition(rules, context)

    for raw_field, expected in rules.items():
        field = raw_field.strip()
        if not field:
            continue
        if is_condition_node(expected):
            matched = evaluate_condition(expected, context)
        else:
            actual = get_field_value(context, field)
            if not isinstance(expected, dict):
                matched = compare_value(actual, expected)
            elif "operator" in expected:
                matched = evaluate_operator(
                    actual, str(expected.get("operator") or "eq"), expected.get("value")
                )
            else:
                nested = actual if isinstance(actual, dict) else context
                matched = evaluate_rule_node(expected, nested)
        if not matched:
            return False
    return True
