"""Tests for assignment rule evaluation and input normalisation."""

from datetime import UTC, datetime, timedelta

import pytest

from src.errors import PayloadValidationError
from src.models.assignment_rule import (
    ConditionField,
    ConditionOperator,
    ConfidenceLevel,
    InboundRecord,
    ProjectAssignmentRule,
    confidence_to_score,
    score_to_confidence,
)
from src.models.timeline import TimelineItemType
from src.rules.evaluator import (
    dry_run_rule,
    evaluate_rule,
    normalize_rule_input,
    parse_rule_date,
    timeline_type_for_category,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def make_rule(conditions, logic="and", **kwargs) -> ProjectAssignmentRule:
    fields = normalize_rule_input(
        {"projectId": "proj-1", "conditions": {"logic": logic, "conditions": conditions}, **kwargs}
    )
    return ProjectAssignmentRule(user_id="user-1", **fields)


@pytest.fixture
def record() -> InboundRecord:
    return InboundRecord(
        id="email-1",
        subject="Festival offer: Paris 2025",
        from_name="Alex Promoter",
        from_email="alex@festival.example",
        body=None,
        summary="Headline slot offer for the Paris festival",
        category="BOOKING/Offer",
        labels=["Booking", "Urgent"],
        priority_score=72,
        triage_state="unassigned",
        received_at=NOW - timedelta(days=2),
        has_attachments=True,
    )


class TestRuleLevel:
    def test_empty_conditions_match(self, record):
        assert evaluate_rule(make_rule([]), record, NOW).matched is True

    def test_disabled_rule_never_matches(self, record):
        rule = make_rule([], enabled=False)
        result = evaluate_rule(rule, record, NOW)
        assert result.matched is False
        assert result.matches == []

    def test_and_short_circuits_on_first_failure(self, record):
        rule = make_rule(
            [
                {"field": "subject", "operator": "contains", "value": "invoice"},
                {"field": "subject", "operator": "contains", "value": "festival"},
            ]
        )
        result = evaluate_rule(rule, record, NOW)
        assert result.matched is False
        assert len(result.matches) == 1
        assert result.matches[0].condition_id == "cond-0"

    def test_or_short_circuits_on_first_success(self, record):
        rule = make_rule(
            [
                {"field": "subject", "operator": "contains", "value": "festival"},
                {"field": "subject", "operator": "contains", "value": "invoice"},
            ],
            logic="or",
        )
        result = evaluate_rule(rule, record, NOW)
        assert result.matched is True
        assert [m.matched for m in result.matches] == [True]

    def test_or_with_no_success(self, record):
        rule = make_rule(
            [{"field": "subject", "operator": "contains", "value": "invoice"}], logic="or"
        )
        assert evaluate_rule(rule, record, NOW).matched is False


class TestTextFields:
    @pytest.mark.parametrize(
        ("field", "operator", "value", "expected"),
        [
            ("subject", "contains", ["invoice", "FESTIVAL"], True),
            ("subject", "not_contains", ["invoice", "contract"], True),
            ("subject", "not_contains", ["invoice", "paris"], False),
            ("subject", "starts_with", "festival", True),
            ("subject", "ends_with", "2025", True),
            ("from_email", "equals", "ALEX@festival.example", True),
            ("from_email", "not_equals", "someone@else.example", True),
            ("from_name", "is_one_of", ["Sam", "Alex Promoter"], True),
            ("body", "contains", "headline", True),
            ("category", "starts_with", "booking", True),
            ("triage_state", "equals", "acknowledged", False),
        ],
    )
    def test_text_operators(self, record, field, operator, value, expected):
        rule = make_rule([{"field": field, "operator": operator, "value": value}])
        assert evaluate_rule(rule, record, NOW).matched is expected


class TestStructuredFields:
    def test_labels(self, record):
        assert evaluate_rule(
            make_rule([{"field": "labels", "operator": "is_one_of", "value": ["urgent"]}]),
            record,
            NOW,
        ).matched
        assert evaluate_rule(
            make_rule([{"field": "labels", "operator": "contains", "value": "book"}]),
            record,
            NOW,
        ).matched
        assert not evaluate_rule(
            make_rule([{"field": "labels", "operator": "not_contains", "value": "urg"}]),
            record,
            NOW,
        ).matched
        assert not evaluate_rule(
            make_rule([{"field": "labels", "operator": "equals", "value": "urgent"}]),
            record,
            NOW,
        ).matched

    def test_has_attachment(self, record):
        equals_true = make_rule([{"field": "has_attachment", "operator": "equals", "value": True}])
        not_true = make_rule([{"field": "has_attachment", "operator": "not_equals", "value": "true"}])
        assert evaluate_rule(equals_true, record, NOW).matched
        assert not evaluate_rule(not_true, record, NOW).matched

    def test_priority_thresholds_are_inclusive(self, record):
        for operator, value, expected in [
            ("greater_than", 72, True),
            ("less_than", 72, True),
            ("greater_than", 73, False),
            ("equals", 72, True),
        ]:
            rule = make_rule([{"field": "priority_score", "operator": operator, "value": value}])
            assert evaluate_rule(rule, record, NOW).matched is expected, operator

    def test_priority_between(self, record):
        inside = make_rule(
            [{"field": "priority_score", "operator": "between", "value": {"min": 50, "max": 72}}]
        )
        open_ended = make_rule(
            [{"field": "priority_score", "operator": "between", "value": {"min": 80}}]
        )
        assert evaluate_rule(inside, record, NOW).matched
        assert not evaluate_rule(open_ended, record, NOW).matched

    def test_missing_priority_never_matches(self, record):
        record.priority_score = None
        rule = make_rule([{"field": "priority_score", "operator": "less_than", "value": 100}])
        assert not evaluate_rule(rule, record, NOW).matched

    def test_received_within_last_days(self, record):
        within = make_rule([{"field": "received_at", "operator": "within_last_days", "value": 3}])
        too_short = make_rule(
            [{"field": "received_at", "operator": "within_last_days", "value": {"days": 1}}]
        )
        negative = make_rule(
            [{"field": "received_at", "operator": "within_last_days", "value": -1}]
        )
        assert evaluate_rule(within, record, NOW).matched
        assert not evaluate_rule(too_short, record, NOW).matched
        assert not evaluate_rule(negative, record, NOW).matched

    def test_received_before_and_after(self, record):
        before = make_rule(
            [{"field": "received_at", "operator": "before", "value": "2025-06-14T00:00:00Z"}]
        )
        after = make_rule(
            [{"field": "received_at", "operator": "after", "value": "2025-06-01"}]
        )
        assert evaluate_rule(before, record, NOW).matched
        assert evaluate_rule(after, record, NOW).matched

    def test_unparseable_date_never_matches(self, record):
        rule = make_rule(
            [{"field": "received_at", "operator": "before", "value": "qwerty"}]
        )
        assert not evaluate_rule(rule, record, NOW).matched


class TestNormalisation:
    def test_defaults(self):
        fields = normalize_rule_input(
            {"projectId": "proj-1", "conditions": {"conditions": [{}, "junk"]}}
        )
        assert fields["name"] == "Untitled rule"
        assert fields["enabled"] is True
        assert fields["sort_order"] == 0
        first, second = fields["conditions"].conditions
        assert first.id == "cond-0"
        assert first.field == ConditionField.SUBJECT
        assert first.operator == ConditionOperator.CONTAINS
        assert second.id == "cond-1"

    def test_invalid_operator_becomes_contains(self):
        fields = normalize_rule_input(
            {
                "projectId": "proj-1",
                "conditions": {
                    "conditions": [{"field": "subject", "operator": "fuzzy", "value": "x"}]
                },
            }
        )
        assert fields["conditions"].conditions[0].operator == ConditionOperator.CONTAINS
        assert fields["conditions"].conditions[0].value == ["x"]

    def test_unknown_field_is_rejected(self):
        with pytest.raises(PayloadValidationError):
            normalize_rule_input(
                {"projectId": "p", "conditions": {"conditions": [{"field": "cc"}]}}
            )

    def test_project_required(self):
        with pytest.raises(PayloadValidationError):
            normalize_rule_input({"name": "No project"})

    def test_actions(self):
        fields = normalize_rule_input(
            {
                "projectId": "proj-1",
                "actions": {
                    "laneId": "LIVE_HOLDS",
                    "confidence": "Medium",
                    "createTimelineItem": "yes",
                    "note": " routed ",
                },
            }
        )
        actions = fields["actions"]
        assert actions.project_id == "proj-1"
        assert actions.assign_to_lane_id == "LIVE_HOLDS"
        assert actions.confidence == ConfidenceLevel.MEDIUM
        assert actions.create_timeline_item is True
        assert actions.note == "routed"

    def test_update_keeps_existing_values(self):
        original = make_rule(
            [{"field": "subject", "operator": "contains", "value": "tour"}],
            name="Tour mail",
        )
        fields = normalize_rule_input({"enabled": False}, defaults=original)
        assert fields["name"] == "Tour mail"
        assert fields["enabled"] is False
        assert fields["project_id"] == "proj-1"
        assert fields["conditions"].conditions[0].value == ["tour"]


class TestHelpers:
    def test_confidence_mapping(self):
        assert confidence_to_score("high") == 1.0
        assert confidence_to_score(ConfidenceLevel.MEDIUM) == 0.7
        assert confidence_to_score("low") == 0.4
        assert confidence_to_score("bogus") is None
        assert score_to_confidence(0.85) == ConfidenceLevel.HIGH
        assert score_to_confidence(0.6) == ConfidenceLevel.MEDIUM
        assert score_to_confidence(0.59) == ConfidenceLevel.LOW

    @pytest.mark.parametrize(
        ("category", "expected"),
        [
            ("BOOKING/Offer", (TimelineItemType.HOLD, "LIVE_HOLDS")),
            ("legal/contract", (TimelineItemType.TASK, "LEGAL")),
            ("FINANCE/Invoice", (TimelineItemType.TASK, "FINANCE")),
            ("PROMO/Interview", (TimelineItemType.EVENT, "PROMO")),
            ("LOGISTICS/Travel", (TimelineItemType.EVENT, "TRAVEL")),
            (None, (TimelineItemType.TASK, "PROMO")),
        ],
    )
    def test_timeline_type_for_category(self, category, expected):
        assert timeline_type_for_category(category) == expected

    def test_parse_rule_date_relative(self):
        parsed = parse_rule_date("2 days ago", NOW)
        assert parsed is not None
        assert abs(parsed - (NOW - timedelta(days=2))) < timedelta(hours=1)

    def test_dry_run_rule(self, record):
        rule = make_rule([{"field": "subject", "operator": "contains", "value": "festival"}])
        other = record.model_copy(update={"id": "email-2", "subject": "Invoice"})
        results = dry_run_rule(rule, [record, other], NOW)
        assert [(r["record_id"], r["matched"]) for r in results] == [
            ("email-1", True),
            ("email-2", False),
        ]
