"""Repository for timeline items and their dependency edges.

Items and edges share one repository because deleting an item must
remove its edges in the same transaction.
"""

import logging
from datetime import datetime

from src.db.columns import decode_json, encode_json, encode_timestamp
from src.db.turso import TursoClient
from src.models.base import utc_now
from src.models.timeline import TimelineDependency, TimelineItem

logger = logging.getLogger(__name__)

ITEM_COLUMNS = """
    id, project_id, type, lane, kind, title, description,
    starts_at, ends_at, due_at, timezone, status,
    priority_score, priority_components, labels, links,
    created_by, created_at, updated_at
"""

DEPENDENCY_COLUMNS = """
    id, project_id, from_item_id, to_item_id, kind, note,
    created_by, created_at, updated_at
"""


def _row_to_item(row) -> TimelineItem:
    return TimelineItem(
        id=row[0],
        project_id=row[1],
        type=row[2],
        lane=row[3],
        kind=row[4],
        title=row[5],
        description=row[6],
        starts_at=row[7],
        ends_at=row[8],
        due_at=row[9],
        timezone=row[10],
        status=row[11],
        priority_score=row[12],
        priority_components=decode_json(row[13], {}),
        labels=decode_json(row[14], {}),
        links=decode_json(row[15], {}),
        created_by=row[16],
        created_at=row[17],
        updated_at=row[18],
    )


def _row_to_dependency(row) -> TimelineDependency:
    return TimelineDependency(
        id=row[0],
        project_id=row[1],
        from_item_id=row[2],
        to_item_id=row[3],
        kind=row[4],
        note=row[5],
        created_by=row[6],
        created_at=row[7],
        updated_at=row[8],
    )


def _item_params(item: TimelineItem) -> list:
    return [
        item.id,
        item.project_id,
        item.type.value,
        item.lane,
        item.kind,
        item.title,
        item.description,
        encode_timestamp(item.starts_at),
        encode_timestamp(item.ends_at),
        encode_timestamp(item.due_at),
        item.timezone,
        item.status.value,
        item.priority_score,
        encode_json(item.priority_components),
        encode_json(item.labels),
        encode_json(item.links),
        item.created_by,
        encode_timestamp(item.created_at),
        encode_timestamp(item.updated_at),
    ]


def dependency_insert_statement(
    edge: TimelineDependency,
) -> tuple[str, list]:
    """INSERT for one edge; duplicates of an existing edge are ignored."""
    return (
        f"""
        INSERT INTO timeline_dependencies ({DEPENDENCY_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT DO NOTHING
        """,
        [
            edge.id,
            edge.project_id,
            edge.from_item_id,
            edge.to_item_id,
            edge.kind.value,
            edge.note,
            edge.created_by,
            encode_timestamp(edge.created_at),
            encode_timestamp(edge.updated_at),
        ],
    )


class TimelineRepository:
    """Repository for timeline items and dependency edges."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create timeline tables if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS timeline_items (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'event',
                lane TEXT,
                kind TEXT,
                title TEXT NOT NULL,
                description TEXT,
                starts_at TEXT,
                ends_at TEXT,
                due_at TEXT,
                timezone TEXT,
                status TEXT NOT NULL DEFAULT 'planned',
                priority_score REAL,
                priority_components TEXT,
                labels TEXT,
                links TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_timeline_items_project_starts
            ON timeline_items(project_id, starts_at)
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_timeline_items_lane
            ON timeline_items(lane)
            """,
                """
            CREATE TABLE IF NOT EXISTS timeline_dependencies (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                from_item_id TEXT NOT NULL,
                to_item_id TEXT NOT NULL,
                kind TEXT NOT NULL DEFAULT 'FS',
                note TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(project_id, from_item_id, to_item_id, kind),
                CHECK (from_item_id <> to_item_id)
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_timeline_dependencies_to
            ON timeline_dependencies(project_id, to_item_id)
            """,
            ]
        )

    # Items

    async def insert_item(self, item: TimelineItem, *, if_absent: bool = False) -> bool:
        """Insert a timeline item.

        Args:
            item: Item to persist
            if_absent: Ignore the write when the id already exists

        Returns:
            True if a row was written
        """
        conflict = "ON CONFLICT(id) DO NOTHING" if if_absent else ""
        result = await self._db.execute(
            f"""
            INSERT INTO timeline_items ({ITEM_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            {conflict}
            """,
            _item_params(item),
        )
        written = result.rows_affected > 0
        if written:
            logger.debug(f"Inserted timeline item {item.id}")
        return written

    async def update_item(self, item: TimelineItem) -> bool:
        """Overwrite every mutable column of an existing item.

        Returns:
            True if the item exists and was updated
        """
        params = _item_params(item)
        result = await self._db.execute(
            """
            UPDATE timeline_items SET
                type = ?, lane = ?, kind = ?, title = ?, description = ?,
                starts_at = ?, ends_at = ?, due_at = ?, timezone = ?, status = ?,
                priority_score = ?, priority_components = ?, labels = ?, links = ?,
                updated_at = ?
            WHERE id = ? AND project_id = ?
            """,
            params[2:16] + [params[18], item.id, item.project_id],
        )
        return result.rows_affected > 0

    async def update_lane(self, item_id: str, project_id: str, lane: str | None) -> bool:
        result = await self._db.execute(
            """
            UPDATE timeline_items
            SET lane = ?, updated_at = ?
            WHERE id = ? AND project_id = ?
            """,
            [lane, encode_timestamp(utc_now()), item_id, project_id],
        )
        return result.rows_affected > 0

    async def get_item(self, item_id: str) -> TimelineItem | None:
        result = await self._db.execute(
            f"SELECT {ITEM_COLUMNS} FROM timeline_items WHERE id = ?",
            [item_id],
        )
        if result.rows:
            return _row_to_item(result.rows[0])
        return None

    async def list_items(
        self,
        project_id: str | None = None,
        *,
        starts_from: datetime | None = None,
        starts_until: datetime | None = None,
    ) -> list[TimelineItem]:
        """List items ordered by start time.

        Args:
            project_id: Restrict to one project (all projects if None)
            starts_from: Only items starting at or after this instant
            starts_until: Only items starting at or before this instant

        Returns:
            Items ordered by starts_at (unscheduled last), then id
        """
        clauses: list[str] = []
        params: list = []
        if project_id is not None:
            clauses.append("project_id = ?")
            params.append(project_id)
        if starts_from is not None:
            clauses.append("starts_at >= ?")
            params.append(encode_timestamp(starts_from))
        if starts_until is not None:
            clauses.append("starts_at <= ?")
            params.append(encode_timestamp(starts_until))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        result = await self._db.execute(
            f"""
            SELECT {ITEM_COLUMNS} FROM timeline_items
            {where}
            ORDER BY starts_at IS NULL, starts_at, id
            """,
            params,
        )
        return [_row_to_item(row) for row in result.rows]

    async def list_items_for_lane(self, lane_slug: str) -> list[TimelineItem]:
        """Items with no lane or with the given lane (reapply candidates)."""
        result = await self._db.execute(
            f"""
            SELECT {ITEM_COLUMNS} FROM timeline_items
            WHERE lane IS NULL OR lane = ?
            ORDER BY updated_at DESC
            """,
            [lane_slug],
        )
        return [_row_to_item(row) for row in result.rows]

    async def count_items_in_lane(self, lane_slug: str) -> int:
        result = await self._db.execute(
            """
            SELECT COUNT(*) FROM timeline_items
            WHERE lane = ? OR json_extract(labels, '$.lane') = ?
            """,
            [lane_slug, lane_slug],
        )
        return result.rows[0][0]

    async def existing_item_ids(self, project_id: str, item_ids: list[str]) -> set[str]:
        """Subset of ``item_ids`` that belong to the project."""
        if not item_ids:
            return set()
        placeholders = ", ".join("?" for _ in item_ids)
        result = await self._db.execute(
            f"""
            SELECT id FROM timeline_items
            WHERE project_id = ? AND id IN ({placeholders})
            """,
            [project_id, *item_ids],
        )
        return {row[0] for row in result.rows}

    async def delete_item(self, item_id: str, project_id: str) -> bool:
        """Delete an item and every edge touching it.

        Returns:
            True if the item existed
        """
        results = await self._db.execute_batch(
            [
                (
                    """
                DELETE FROM timeline_dependencies
                WHERE project_id = ? AND (from_item_id = ? OR to_item_id = ?)
                """,
                    [project_id, item_id, item_id],
                ),
                (
                    "DELETE FROM timeline_items WHERE id = ? AND project_id = ?",
                    [item_id, project_id],
                ),
            ]
        )
        deleted = results[1].rows_affected > 0
        if deleted:
            logger.info(f"Deleted timeline item {item_id} and its dependencies")
        return deleted

    # Dependencies

    async def list_dependencies(
        self,
        project_id: str,
        to_item_id: str | None = None,
    ) -> list[TimelineDependency]:
        if to_item_id is None:
            result = await self._db.execute(
                f"""
                SELECT {DEPENDENCY_COLUMNS} FROM timeline_dependencies
                WHERE project_id = ?
                ORDER BY created_at, id
                """,
                [project_id],
            )
        else:
            result = await self._db.execute(
                f"""
                SELECT {DEPENDENCY_COLUMNS} FROM timeline_dependencies
                WHERE project_id = ? AND to_item_id = ?
                ORDER BY created_at, id
                """,
                [project_id, to_item_id],
            )
        return [_row_to_dependency(row) for row in result.rows]

    async def replace_dependencies(
        self,
        project_id: str,
        to_item_id: str,
        edges: list[TimelineDependency],
    ) -> None:
        """Swap the incoming edge set of an item in one transaction."""
        statements: list = [
            (
                """
            DELETE FROM timeline_dependencies
            WHERE project_id = ? AND to_item_id = ?
            """,
                [project_id, to_item_id],
            )
        ]
        statements.extend(dependency_insert_statement(edge) for edge in edges)
        await self._db.execute_batch(statements)
        logger.debug(f"Replaced {len(edges)} dependencies for item {to_item_id}")

    async def insert_dependency(self, edge: TimelineDependency) -> bool:
        sql, params = dependency_insert_statement(edge)
        result = await self._db.execute(sql, params)
        return result.rows_affected > 0
