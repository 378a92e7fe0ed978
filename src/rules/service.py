"""Assignment rule CRUD and record linking orchestration."""

from datetime import datetime
from typing import Any

import structlog

from src.errors import RuleNotFoundError
from src.events.store import EventStore
from src.events.types import RecordLinked, RecordUnlinked
from src.models.assignment_rule import (
    InboundRecord,
    ProjectAssignmentRule,
    confidence_to_score,
)
from src.models.base import utc_now
from src.models.link import LinkSource, ProjectRecordLink
from src.repositories.link_repo import LinkRepository
from src.repositories.rule_repo import RuleRepository
from src.rules.evaluator import (
    dry_run_rule,
    evaluate_rule,
    normalize_rule_input,
    timeline_type_for_category,
)

logger = structlog.get_logger()


class AssignmentRuleService:
    """Links inbound records to projects using user-owned rules."""

    def __init__(
        self,
        rule_repo: RuleRepository,
        link_repo: LinkRepository,
        event_store: EventStore | None = None,
    ):
        self._rules = rule_repo
        self._links = link_repo
        self._events = event_store

    async def list_rules(self, user_id: str) -> list[ProjectAssignmentRule]:
        return await self._rules.list_for_user(user_id)

    async def get_rule(self, rule_id: str, user_id: str) -> ProjectAssignmentRule:
        rule = await self._rules.get(rule_id, user_id)
        if rule is None:
            raise RuleNotFoundError("Assignment rule not found")
        return rule

    async def create_rule(
        self, user_id: str, data: dict[str, Any]
    ) -> ProjectAssignmentRule:
        """Normalise raw input and store a new rule.

        Raises:
            PayloadValidationError: No target project or unknown field
        """
        rule = ProjectAssignmentRule(user_id=user_id, **normalize_rule_input(data))
        await self._rules.insert(rule)
        logger.info(
            "assignment rule created",
            rule_id=rule.id,
            project_id=rule.project_id,
            conditions=len(rule.conditions.conditions),
        )
        return rule

    async def update_rule(
        self, rule_id: str, user_id: str, data: dict[str, Any]
    ) -> ProjectAssignmentRule:
        """Merge raw input over the stored rule."""
        existing = await self.get_rule(rule_id, user_id)
        fields = normalize_rule_input(data, defaults=existing)
        rule = existing.model_copy(update=fields)
        rule.touch()
        if not await self._rules.update(rule):
            raise RuleNotFoundError("Assignment rule not found")
        logger.info("assignment rule updated", rule_id=rule_id)
        return rule

    async def delete_rule(self, rule_id: str, user_id: str) -> None:
        if not await self._rules.delete(rule_id, user_id):
            raise RuleNotFoundError("Assignment rule not found")
        logger.info("assignment rule deleted", rule_id=rule_id)

    async def test_rule(
        self,
        rule_id: str,
        user_id: str,
        records: list[InboundRecord],
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Evaluate a stored rule over sample records without linking."""
        rule = await self.get_rule(rule_id, user_id)
        return dry_run_rule(rule, records, now)

    def _link_for(
        self,
        rule: ProjectAssignmentRule,
        project_id: str,
        record: InboundRecord,
        user_id: str,
        evaluation_matches: list,
    ) -> ProjectRecordLink:
        action = rule.actions
        metadata: dict[str, Any] = {
            "source": LinkSource.RULE.value,
            "rule_id": rule.id,
            "rule_name": rule.name,
            "rule_confidence": action.confidence.value,
            "linked_by": user_id,
            "linked_at": utc_now().isoformat(),
            "matches": [m.model_dump(mode="json") for m in evaluation_matches],
        }
        if action.note:
            metadata["note"] = action.note
        if action.assign_to_lane_id:
            metadata["lane"] = action.assign_to_lane_id
        if action.create_timeline_item:
            item_type, lane = timeline_type_for_category(record.category)
            metadata["timeline_item"] = {
                "type": item_type.value,
                "lane": action.assign_to_lane_id or lane,
                "title": record.subject,
            }
        if action.metadata:
            metadata["action_metadata"] = action.metadata
        return ProjectRecordLink(
            project_id=project_id,
            record_id=record.id,
            confidence=confidence_to_score(action.confidence),
            source=LinkSource.RULE,
            metadata=metadata,
        )

    async def apply_to_record(
        self,
        user_id: str,
        record: InboundRecord,
        now: datetime | None = None,
    ) -> list[ProjectRecordLink]:
        """Run the user's enabled rules against one record.

        Every matching rule links its own project. Pairs that are already
        linked, or that the user unlinked by hand, are left alone.

        Returns:
            Links created by this call
        """
        rules = await self._rules.list_for_user(user_id, enabled_only=True)
        if not rules:
            return []

        linked = {link.project_id for link in await self._links.list_links_for_record(record.id)}
        overridden = await self._links.list_overridden_projects(user_id, record.id)
        reference = now or utc_now()

        created: list[ProjectRecordLink] = []
        for rule in rules:
            project_id = rule.actions.project_id or rule.project_id
            if project_id in linked or project_id in overridden:
                continue
            evaluation = evaluate_rule(rule, record, reference)
            if not evaluation.matched:
                continue

            link = self._link_for(rule, project_id, record, user_id, evaluation.matches)
            try:
                inserted = await self._links.insert_link_if_absent(link)
            except Exception as e:
                logger.warning(
                    "rule link insert failed",
                    rule_id=rule.id,
                    project_id=project_id,
                    error=str(e),
                )
                continue
            if not inserted:
                linked.add(project_id)
                continue
            linked.add(project_id)
            created.append(link)
            logger.info(
                "record linked by rule",
                record_id=record.id,
                project_id=project_id,
                rule_id=rule.id,
            )
            if self._events:
                await self._events.record(
                    RecordLinked(
                        aggregate_id=link.id,
                        actor_id=user_id,
                        project_id=project_id,
                        record_id=record.id,
                        source=LinkSource.RULE.value,
                        rule_id=rule.id,
                    )
                )
        return created

    async def replay(
        self,
        user_id: str,
        records: list[InboundRecord],
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Re-run rules over a backlog of records.

        Returns:
            Counts: processed records, links created, records left unlinked
        """
        links_created = 0
        skipped = 0
        for record in records:
            created = await self.apply_to_record(user_id, record, now)
            if created:
                links_created += len(created)
            else:
                skipped += 1
        logger.info(
            "assignment rules replayed",
            user_id=user_id,
            processed=len(records),
            links_created=links_created,
        )
        return {"processed": len(records), "links_created": links_created, "skipped": skipped}

    async def remove_link(self, user_id: str, project_id: str, record_id: str) -> bool:
        """Unlink a record by hand and keep rules from relinking it.

        The override is written even when no link exists, so a rule
        cannot link the pair later.

        Returns:
            True if a link was deleted
        """
        removed = await self._links.delete_link(project_id, record_id)
        await self._links.add_override(user_id, project_id, record_id)
        logger.info(
            "record unlinked",
            project_id=project_id,
            record_id=record_id,
            removed=removed,
        )
        if self._events:
            await self._events.record(
                RecordUnlinked(
                    aggregate_id=record_id,
                    actor_id=user_id,
                    project_id=project_id,
                    record_id=record_id,
                )
            )
        return removed

    async def list_project_links(self, project_id: str) -> list[ProjectRecordLink]:
        return await self._links.list_links_for_project(project_id)
