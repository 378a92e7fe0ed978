"""Lane auto-assignment resolution."""

from typing import Any

from src.lanes.conditions import evaluate_rule_node
from src.models.lane import LaneDefinition


def build_context(context: dict[str, Any]) -> dict[str, Any]:
    """Evaluation context: the item fields plus ``labels`` and ``metadata``."""
    evaluation = dict(context)
    evaluation["labels"] = context.get("labels") or {}
    evaluation["metadata"] = context
    return evaluation


def sort_lanes(lanes: list[LaneDefinition]) -> list[LaneDefinition]:
    """Evaluation order: ascending sort_order, ties broken by name."""
    return sorted(lanes, key=lambda lane: (lane.sort_order, lane.name.lower()))


def evaluate_lane_assignment(lane: LaneDefinition, context: dict[str, Any]) -> bool:
    """Whether a single lane's rules match the context.

    Lanes without rules never match.
    """
    if not lane.has_rules:
        return False
    return evaluate_rule_node(lane.auto_assign_rules, build_context(context))


def resolve_auto_assigned_lane(
    lanes: list[LaneDefinition],
    context: dict[str, Any],
) -> LaneDefinition | None:
    """Return the first lane whose rules match, or None.

    Args:
        lanes: Candidate lane definitions visible to the caller
        context: Item fields (type, title, description, status,
            category, priority, labels, ...)

    Returns:
        The matching lane; None means the caller should use the
        default lane for the item type
    """
    evaluation = build_context(context)
    for lane in sort_lanes(lanes):
        if not lane.has_rules:
            continue
        if evaluate_rule_node(lane.auto_assign_rules, evaluation):
            return lane
    return None
