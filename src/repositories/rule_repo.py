"""Repository for project assignment rules."""

import logging

from src.db.columns import decode_json, encode_bool, encode_json, encode_timestamp
from src.db.turso import TursoClient
from src.models.assignment_rule import ProjectAssignmentRule

logger = logging.getLogger(__name__)

RULE_COLUMNS = """
    id, user_id, project_id, name, description, enabled, sort_order,
    conditions, actions, metadata, created_at, updated_at
"""


def _row_to_rule(row) -> ProjectAssignmentRule:
    return ProjectAssignmentRule(
        id=row[0],
        user_id=row[1],
        project_id=row[2],
        name=row[3],
        description=row[4],
        enabled=bool(row[5]),
        sort_order=row[6],
        conditions=decode_json(row[7], {}),
        actions=decode_json(row[8], {}),
        metadata=decode_json(row[9], {}),
        created_at=row[10],
        updated_at=row[11],
    )


class RuleRepository:
    """Repository for user-owned project assignment rules."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create project_assignment_rules table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS project_assignment_rules (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                project_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                enabled INTEGER NOT NULL DEFAULT 1,
                sort_order REAL NOT NULL DEFAULT 0,
                conditions TEXT NOT NULL,
                actions TEXT NOT NULL,
                metadata TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_assignment_rules_user
            ON project_assignment_rules(user_id, enabled, sort_order)
            """,
            ]
        )

    def _params(self, rule: ProjectAssignmentRule) -> list:
        return [
            rule.id,
            rule.user_id,
            rule.project_id,
            rule.name,
            rule.description,
            encode_bool(rule.enabled),
            rule.sort_order,
            encode_json(rule.conditions.model_dump(mode="json")),
            encode_json(rule.actions.model_dump(mode="json")),
            encode_json(rule.metadata),
            encode_timestamp(rule.created_at),
            encode_timestamp(rule.updated_at),
        ]

    async def insert(self, rule: ProjectAssignmentRule) -> None:
        await self._db.execute(
            f"""
            INSERT INTO project_assignment_rules ({RULE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            self._params(rule),
        )
        logger.debug(f"Inserted assignment rule {rule.id}")

    async def update(self, rule: ProjectAssignmentRule) -> bool:
        params = self._params(rule)
        result = await self._db.execute(
            """
            UPDATE project_assignment_rules SET
                project_id = ?, name = ?, description = ?, enabled = ?,
                sort_order = ?, conditions = ?, actions = ?, metadata = ?,
                updated_at = ?
            WHERE id = ? AND user_id = ?
            """,
            params[2:10] + [params[11], rule.id, rule.user_id],
        )
        return result.rows_affected > 0

    async def delete(self, rule_id: str, user_id: str) -> bool:
        result = await self._db.execute(
            "DELETE FROM project_assignment_rules WHERE id = ? AND user_id = ?",
            [rule_id, user_id],
        )
        return result.rows_affected > 0

    async def get(self, rule_id: str, user_id: str) -> ProjectAssignmentRule | None:
        result = await self._db.execute(
            f"""
            SELECT {RULE_COLUMNS} FROM project_assignment_rules
            WHERE id = ? AND user_id = ?
            """,
            [rule_id, user_id],
        )
        if result.rows:
            return _row_to_rule(result.rows[0])
        return None

    async def list_for_user(
        self,
        user_id: str,
        *,
        enabled_only: bool = False,
    ) -> list[ProjectAssignmentRule]:
        """List a user's rules in evaluation order.

        Args:
            user_id: Rule owner
            enabled_only: Skip disabled rules

        Returns:
            Rules ordered by sort_order, then creation time
        """
        enabled_clause = "AND enabled = 1" if enabled_only else ""
        result = await self._db.execute(
            f"""
            SELECT {RULE_COLUMNS} FROM project_assignment_rules
            WHERE user_id = ? {enabled_clause}
            ORDER BY sort_order, created_at
            """,
            [user_id],
        )
        return [_row_to_rule(row) for row in result.rows]
