"""Tests for domain models."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest
from pydantic import ValidationError

from src.models.approval import Approval, ApprovalStatus, EmailLinkPayload
from src.models.base import BaseEntity
from src.models.lane import LaneDefinition, LaneScope, slugify_lane
from src.models.link import ProjectRecordLink
from src.models.timeline import (
    DependencyInput,
    DependencyKind,
    TimelineItem,
    TimelineItemStatus,
    TimelineItemType,
    lane_for_type,
    parse_timestamp,
)


class TestBaseEntity:
    """Tests for BaseEntity."""

    def test_auto_generates_id(self):
        """BaseEntity should auto-generate a UUID4 string id."""

        class SampleEntity(BaseEntity):
            pass

        entity = SampleEntity()
        assert UUID(entity.id).version == 4

    def test_auto_generates_timestamps(self):
        class SampleEntity(BaseEntity):
            pass

        before = datetime.now(UTC)
        entity = SampleEntity()
        after = datetime.now(UTC)

        assert before <= entity.created_at <= after
        assert before <= entity.updated_at <= after

    def test_touch_updates_timestamp(self):
        class SampleEntity(BaseEntity):
            pass

        entity = SampleEntity()
        original_updated = entity.updated_at
        entity.touch()
        assert entity.updated_at >= original_updated


class TestTimelineItem:
    def test_defaults(self):
        item = TimelineItem(project_id="proj-1", title="Show")
        assert item.type == TimelineItemType.EVENT
        assert item.status == TimelineItemStatus.PLANNED
        assert item.effective_lane == "LIVE_HOLDS"
        assert item.is_terminal is False

    def test_free_form_type_and_status(self):
        item = TimelineItem(project_id="p", title="X", type="Gig", status="canceled")
        assert item.type == TimelineItemType.OTHER
        assert item.status == TimelineItemStatus.CANCELLED
        assert item.is_terminal is True

    def test_title_required(self):
        with pytest.raises(ValidationError):
            TimelineItem(project_id="p", title="")

    def test_naive_timestamps_are_utc(self):
        item = TimelineItem(project_id="p", title="X", starts_at="2025-06-01T18:00:00")
        assert item.starts_at == datetime(2025, 6, 1, 18, tzinfo=UTC)
        assert parse_timestamp("not a date") is None
        assert parse_timestamp("  ") is None

    def test_label_lane_overrides_column(self):
        item = TimelineItem(
            project_id="p", title="X", lane="PROMO", labels={"lane": " TRAVEL "}
        )
        assert item.effective_lane == "TRAVEL"
        assert item.is_travel is True

    def test_travel_flags(self):
        assert TimelineItem(project_id="p", title="X", kind="Travel").is_travel
        assert TimelineItem(project_id="p", title="X", labels={"travel": True}).is_travel
        assert not TimelineItem(project_id="p", title="X").is_travel

    def test_territory_and_city(self):
        item = TimelineItem(
            project_id="p", title="X", labels={"territory": " DE ", "city": ""}
        )
        assert item.territory == "DE"
        assert item.city is None

    @pytest.mark.parametrize(
        ("item_type", "lane"),
        [
            ("event", "LIVE_HOLDS"),
            ("hold", "LIVE_HOLDS"),
            ("milestone", "RELEASE"),
            ("task", "PROMO"),
            ("unknown", "PROMO"),
            (None, "LIVE_HOLDS"),
        ],
    )
    def test_lane_for_type(self, item_type, lane):
        assert lane_for_type(item_type) == lane


class TestDependencyInput:
    def test_aliases_and_kind(self):
        edge = DependencyInput.model_validate({"itemId": "a", "kind": "ss"})
        assert edge.from_item_id == "a"
        assert edge.kind == DependencyKind.SS

    def test_unknown_kind_is_finish_to_start(self):
        edge = DependencyInput.model_validate({"fromItemId": "a", "kind": "XX"})
        assert edge.kind == DependencyKind.FS


class TestLaneDefinition:
    def test_slug_and_color_normalised(self):
        lane = LaneDefinition(slug="radio", name="Radio", color="00ff00")
        assert lane.slug == "RADIO"
        assert lane.color == "#00ff00"
        assert lane.scope == LaneScope.GLOBAL

    def test_user_scope(self):
        lane = LaneDefinition(slug="R", name="R", user_id="user-1")
        assert lane.scope == LaneScope.USER

    def test_slugify_fallback(self):
        assert slugify_lane("Radio & TV!") == "RADIO_TV"
        assert slugify_lane("!!!").startswith("LANE_")


class TestApproval:
    def test_pending_by_default(self):
        approval = Approval(type="project_email_link")
        assert approval.status == ApprovalStatus.PENDING
        assert approval.is_pending

    def test_payload_accepts_camel_and_snake(self):
        camel = EmailLinkPayload.model_validate({"emailId": "e1", "timelineSeed": {"title": "T"}})
        snake = EmailLinkPayload.model_validate({"email_id": "e1"})
        assert camel.email_id == snake.email_id == "e1"
        assert camel.timeline_seed.title == "T"


class TestProjectRecordLink:
    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ProjectRecordLink(project_id="p", record_id="r", confidence=1.5)

    def test_timestamps_default_now(self):
        link = ProjectRecordLink(project_id="p", record_id="r")
        assert datetime.now(UTC) - link.created_at < timedelta(seconds=5)
