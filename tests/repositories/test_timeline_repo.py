"""Tests for TimelineRepository."""

from datetime import UTC, datetime

import pytest

from src.models.timeline import TimelineDependency, TimelineItem, TimelineItemStatus
from src.repositories.timeline_repo import TimelineRepository


@pytest.fixture
async def repo(db_client) -> TimelineRepository:
    repo = TimelineRepository(db_client)
    await repo.initialize()
    return repo


def at(hour: int) -> datetime:
    return datetime(2025, 6, 1, hour, tzinfo=UTC)


async def test_round_trip_preserves_fields(repo):
    item = TimelineItem(
        project_id="proj-1",
        title="Berlin show",
        lane="LIVE_HOLDS",
        starts_at=at(18),
        ends_at=at(21),
        status="confirmed",
        priority_score=72.5,
        priority_components={"fee": 0.8},
        labels={"territory": "DE", "city": "Berlin"},
        links={"email_id": "e1"},
        created_by="user-1",
    )
    assert await repo.insert_item(item) is True

    stored = await repo.get_item(item.id)
    assert stored.starts_at == at(18)
    assert stored.status == TimelineItemStatus.CONFIRMED
    assert stored.priority_components == {"fee": 0.8}
    assert stored.labels == {"territory": "DE", "city": "Berlin"}
    assert stored.links == {"email_id": "e1"}
    assert stored.created_by == "user-1"


async def test_insert_if_absent(repo):
    item = TimelineItem(id="fixed", project_id="proj-1", title="Once")
    assert await repo.insert_item(item, if_absent=True) is True
    assert await repo.insert_item(item, if_absent=True) is False


async def test_list_items_orders_unscheduled_last(repo):
    await repo.insert_item(TimelineItem(id="late", project_id="p", title="L", starts_at=at(20)))
    await repo.insert_item(TimelineItem(id="none", project_id="p", title="N"))
    await repo.insert_item(TimelineItem(id="early", project_id="p", title="E", starts_at=at(8)))
    await repo.insert_item(TimelineItem(id="other", project_id="q", title="O", starts_at=at(9)))

    assert [i.id for i in await repo.list_items("p")] == ["early", "late", "none"]
    in_range = await repo.list_items("p", starts_from=at(7), starts_until=at(12))
    assert [i.id for i in in_range] == ["early"]
    assert len(await repo.list_items()) == 4


async def test_update_item_scoped_to_project(repo):
    item = TimelineItem(project_id="proj-1", title="Show")
    await repo.insert_item(item)

    moved = item.model_copy(update={"title": "Renamed", "project_id": "proj-2"})
    assert await repo.update_item(moved) is False

    renamed = item.model_copy(update={"title": "Renamed"})
    assert await repo.update_item(renamed) is True
    assert (await repo.get_item(item.id)).title == "Renamed"


async def test_lane_helpers(repo):
    await repo.insert_item(TimelineItem(id="a", project_id="p", title="A", lane="RADIO"))
    await repo.insert_item(
        TimelineItem(id="b", project_id="p", title="B", labels={"lane": "RADIO"})
    )
    await repo.insert_item(TimelineItem(id="c", project_id="p", title="C", lane="PROMO"))

    assert await repo.count_items_in_lane("RADIO") == 2
    candidates = {i.id for i in await repo.list_items_for_lane("RADIO")}
    assert candidates == {"a", "b"}

    assert await repo.update_lane("c", "p", "RADIO") is True
    assert (await repo.get_item("c")).lane == "RADIO"


async def test_existing_item_ids(repo):
    await repo.insert_item(TimelineItem(id="a", project_id="p", title="A"))
    await repo.insert_item(TimelineItem(id="b", project_id="q", title="B"))
    assert await repo.existing_item_ids("p", ["a", "b", "c"]) == {"a"}
    assert await repo.existing_item_ids("p", []) == set()


async def test_delete_item_cascades_edges(repo):
    for name in ("a", "b", "c"):
        await repo.insert_item(TimelineItem(id=name, project_id="p", title=name))
    await repo.replace_dependencies(
        "p", "b", [TimelineDependency(project_id="p", from_item_id="a", to_item_id="b")]
    )
    await repo.replace_dependencies(
        "p", "c", [TimelineDependency(project_id="p", from_item_id="b", to_item_id="c")]
    )

    assert await repo.delete_item("b", "p") is True
    assert await repo.list_dependencies("p") == []
    assert await repo.delete_item("b", "p") is False


async def test_duplicate_edge_is_ignored(repo):
    for name in ("a", "b"):
        await repo.insert_item(TimelineItem(id=name, project_id="p", title=name))
    edge = TimelineDependency(project_id="p", from_item_id="a", to_item_id="b")
    assert await repo.insert_dependency(edge) is True
    again = TimelineDependency(project_id="p", from_item_id="a", to_item_id="b")
    assert await repo.insert_dependency(again) is False
