"""Tests for the lane rule grammar and resolver."""

import pytest

from src.lanes.conditions import (
    evaluate_operator,
    evaluate_rule_node,
    get_field_value,
    normalise_value,
)
from src.lanes.resolver import evaluate_lane_assignment, resolve_auto_assigned_lane
from src.models.lane import LaneDefinition


def lane(slug: str, sort_order: int, rules=None, name: str | None = None) -> LaneDefinition:
    return LaneDefinition(
        slug=slug,
        name=name or slug.title(),
        sort_order=sort_order,
        auto_assign_rules=rules,
    )


class TestConditionGrammar:
    def test_normalise_value_folds_case_and_accents(self):
        assert normalise_value("  Café ") == "cafe"
        assert normalise_value(True) == "true"
        assert normalise_value(None) == ""

    def test_get_field_value_dotted_path(self):
        context = {"labels": {"territory": "UK"}}
        assert get_field_value(context, "labels.territory") == "UK"
        assert get_field_value(context, "labels.city") is None
        assert get_field_value(context, "labels.territory.code") is None

    @pytest.mark.parametrize(
        ("actual", "operator", "expected", "result"),
        [
            ("Promo Tour", "contains", "tour", True),
            ("Promo Tour", "not_contains", "tour", False),
            (None, "not_contains", "tour", True),
            ("Festival", "starts_with", "fest", True),
            ("Festival", "ends_with", "VAL", True),
            (5, "gt", 3, True),
            ("7", "lte", 7, True),
            ("abc", "gt", 1, False),
            ("UK", "in", ["uk", "ie"], True),
            ("FR", "not_in", ["uk", "ie"], True),
            ("Show 12", "matches_regex", r"\d+", True),
            ("Show", "matches_regex", "(", False),
            (["a", "b"], "eq", "B", True),
            ("x", "unknown_op", "X", True),
        ],
    )
    def test_operators(self, actual, operator, expected, result):
        assert evaluate_operator(actual, operator, expected) is result

    def test_all_any_none_groups(self):
        context = {"type": "event", "labels": {"territory": "UK"}}
        assert evaluate_rule_node(
            {
                "all": [
                    {"field": "type", "operator": "eq", "value": "event"},
                    {"any": [{"field": "labels.territory", "operator": "eq", "value": "uk"}]},
                ]
            },
            context,
        )
        assert not evaluate_rule_node(
            {"none": [{"field": "type", "operator": "eq", "value": "event"}]}, context
        )

    def test_empty_group_never_matches(self):
        assert evaluate_rule_node({"all": []}, {"type": "event"}) is False
        assert evaluate_rule_node({"logic": "and", "conditions": []}, {}) is False

    def test_logic_conditions_group(self):
        rules = {
            "logic": "or",
            "conditions": [
                {"field": "title", "operator": "contains", "value": "radio"},
                {"field": "title", "operator": "contains", "value": "tv"},
            ],
        }
        assert evaluate_rule_node(rules, {"title": "TV spot"})
        assert not evaluate_rule_node(rules, {"title": "Press day"})

    def test_shorthand_map(self):
        rules = {"type": ["event", "hold"], "labels": {"territory": "UK"}}
        assert evaluate_rule_node(rules, {"type": "hold", "labels": {"territory": "uk"}})
        assert not evaluate_rule_node(rules, {"type": "task", "labels": {"territory": "UK"}})

    def test_shorthand_operator_value(self):
        rules = {"priority": {"operator": "gte", "value": 70}}
        assert evaluate_rule_node(rules, {"priority": 80})
        assert not evaluate_rule_node(rules, {"priority": 10})

    def test_non_dict_rules_never_match(self):
        assert evaluate_rule_node(None, {}) is False
        assert evaluate_rule_node([], {}) is False


class TestResolver:
    def test_first_matching_lane_by_sort_order(self):
        lanes = [
            lane("LATE", 200, {"type": "event"}),
            lane("EARLY", 100, {"type": "event"}),
        ]
        assert resolve_auto_assigned_lane(lanes, {"type": "event"}).slug == "EARLY"

    def test_ties_broken_by_name(self):
        lanes = [
            lane("B_LANE", 100, {"type": "event"}, name="Bravo"),
            lane("A_LANE", 100, {"type": "event"}, name="alpha"),
        ]
        assert resolve_auto_assigned_lane(lanes, {"type": "event"}).slug == "A_LANE"

    def test_lanes_without_rules_are_skipped(self):
        lanes = [lane("NO_RULES", 0), lane("PROMO", 100, {"title": {"operator": "contains", "value": "promo"}})]
        assert resolve_auto_assigned_lane(lanes, {"title": "Promo shoot"}).slug == "PROMO"
        assert evaluate_lane_assignment(lanes[0], {"title": "Promo shoot"}) is False

    def test_no_match_returns_none(self):
        lanes = [lane("PROMO", 100, {"type": "task"})]
        assert resolve_auto_assigned_lane(lanes, {"type": "event"}) is None

    def test_metadata_path_sees_item_fields(self):
        lanes = [lane("LEGAL", 100, {"field": "metadata.category", "operator": "eq", "value": "legal"})]
        assert resolve_auto_assigned_lane(lanes, {"category": "LEGAL"}).slug == "LEGAL"
