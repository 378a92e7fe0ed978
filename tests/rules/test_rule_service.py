"""Tests for AssignmentRuleService against a temp database."""

import pytest

from src.errors import RuleNotFoundError
from src.models.assignment_rule import InboundRecord
from src.models.link import LinkSource


def rule_body(project_id: str, term: str, **extra) -> dict:
    return {
        "projectId": project_id,
        "name": f"{term} mail",
        "conditions": {
            "logic": "and",
            "conditions": [{"field": "subject", "operator": "contains", "value": term}],
        },
        **extra,
    }


@pytest.fixture
def record() -> InboundRecord:
    return InboundRecord(
        id="email-1",
        subject="Tour routing for Berlin",
        from_email="agent@example.com",
        category="LOGISTICS/Travel",
    )


async def test_create_and_list_rules(services):
    rules = services.rule_service
    first = await rules.create_rule("user-1", rule_body("proj-1", "tour", sortOrder=20))
    second = await rules.create_rule("user-1", rule_body("proj-2", "berlin", sortOrder=10))
    await rules.create_rule("user-2", rule_body("proj-3", "tour"))

    listed = await rules.list_rules("user-1")
    assert [rule.id for rule in listed] == [second.id, first.id]
    assert listed[1].conditions.conditions[0].value == ["tour"]


async def test_update_and_delete_rule(services):
    rules = services.rule_service
    rule = await rules.create_rule("user-1", rule_body("proj-1", "tour"))

    updated = await rules.update_rule(rule.id, "user-1", {"name": "Renamed", "enabled": False})
    assert updated.name == "Renamed"
    assert updated.enabled is False
    stored = await rules.get_rule(rule.id, "user-1")
    assert stored.enabled is False

    with pytest.raises(RuleNotFoundError):
        await rules.update_rule(rule.id, "user-2", {"name": "Hijack"})

    await rules.delete_rule(rule.id, "user-1")
    with pytest.raises(RuleNotFoundError):
        await rules.get_rule(rule.id, "user-1")


async def test_apply_links_every_matching_project(services, record):
    rules = services.rule_service
    tour = await rules.create_rule(
        "user-1",
        rule_body("proj-1", "tour", actions={"confidence": "medium", "note": "routing"}),
    )
    await rules.create_rule("user-1", rule_body("proj-2", "berlin"))
    await rules.create_rule("user-1", rule_body("proj-3", "paris"))

    created = await rules.apply_to_record("user-1", record)
    assert sorted(link.project_id for link in created) == ["proj-1", "proj-2"]

    link = await services.link_repo.get_link("proj-1", "email-1")
    assert link.source == LinkSource.RULE
    assert link.confidence == 0.7
    assert link.metadata["rule_id"] == tour.id
    assert link.metadata["rule_name"] == "tour mail"
    assert link.metadata["rule_confidence"] == "medium"
    assert link.metadata["linked_by"] == "user-1"
    assert link.metadata["note"] == "routing"
    assert link.metadata["matches"][0]["matched"] is True


async def test_failed_link_write_does_not_stop_other_rules(services, record, monkeypatch):
    rules = services.rule_service
    await rules.create_rule("user-1", rule_body("proj-1", "tour", sortOrder=10))
    await rules.create_rule("user-1", rule_body("proj-2", "berlin", sortOrder=20))

    insert = services.link_repo.insert_link_if_absent

    async def flaky_insert(link):
        if link.project_id == "proj-1":
            raise RuntimeError("store write failed")
        return await insert(link)

    monkeypatch.setattr(services.link_repo, "insert_link_if_absent", flaky_insert)

    created = await rules.apply_to_record("user-1", record)
    assert [link.project_id for link in created] == ["proj-2"]
    assert await services.link_repo.get_link("proj-1", "email-1") is None
    assert await services.link_repo.get_link("proj-2", "email-1") is not None


async def test_apply_skips_already_linked_pairs(services, record):
    rules = services.rule_service
    await rules.create_rule("user-1", rule_body("proj-1", "tour"))
    await rules.create_rule("user-1", rule_body("proj-1", "berlin"))

    first = await rules.apply_to_record("user-1", record)
    assert len(first) == 1
    assert await rules.apply_to_record("user-1", record) == []


async def test_disabled_rules_are_ignored(services, record):
    await services.rule_service.create_rule(
        "user-1", rule_body("proj-1", "tour", enabled=False)
    )
    assert await services.rule_service.apply_to_record("user-1", record) == []


async def test_manual_unlink_blocks_relinking(services, record):
    rules = services.rule_service
    await rules.create_rule("user-1", rule_body("proj-1", "tour"))
    await rules.apply_to_record("user-1", record)

    assert await rules.remove_link("user-1", "proj-1", "email-1") is True
    assert await services.link_repo.get_link("proj-1", "email-1") is None
    assert await rules.apply_to_record("user-1", record) == []


async def test_create_timeline_item_action_records_placement(services, record):
    await services.rule_service.create_rule(
        "user-1", rule_body("proj-1", "tour", actions={"createTimelineItem": True})
    )
    [link] = await services.rule_service.apply_to_record("user-1", record)
    assert link.metadata["timeline_item"] == {
        "type": "event",
        "lane": "TRAVEL",
        "title": "Tour routing for Berlin",
    }


async def test_replay_counts(services, record):
    rules = services.rule_service
    await rules.create_rule("user-1", rule_body("proj-1", "tour"))
    unrelated = InboundRecord(id="email-2", subject="Invoice #4")

    summary = await rules.replay("user-1", [record, unrelated])
    assert summary == {"processed": 2, "links_created": 1, "skipped": 1}


async def test_test_rule_does_not_link(services, record):
    rules = services.rule_service
    rule = await rules.create_rule("user-1", rule_body("proj-1", "tour"))

    results = await rules.test_rule(rule.id, "user-1", [record])
    assert results[0]["record_id"] == "email-1"
    assert results[0]["matched"] is True
    assert await services.link_repo.list_links_for_record("email-1") == []


async def test_link_events_are_audited(services, record):
    rules = services.rule_service
    await rules.create_rule("user-1", rule_body("proj-1", "tour"))
    await rules.apply_to_record("user-1", record)
    await rules.remove_link("user-1", "proj-1", "email-1")

    assert await services.event_store.count_events("RecordLinked") == 1
    assert await services.event_store.count_events("RecordUnlinked") == 1
