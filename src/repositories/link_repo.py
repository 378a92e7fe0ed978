"""Repository for project/record links and manual link overrides.

A link attaches an external record (an email) to a project and is
unique per (project_id, record_id). An override remembers that a user
removed a link by hand so that rules never recreate it.
"""

import logging

from src.db.columns import decode_json, encode_json, encode_timestamp
from src.db.turso import TursoClient
from src.models.base import utc_now
from src.models.link import ProjectRecordLink

logger = logging.getLogger(__name__)

LINK_COLUMNS = """
    id, project_id, record_id, confidence, source, metadata,
    created_at, updated_at
"""


def _row_to_link(row) -> ProjectRecordLink:
    return ProjectRecordLink(
        id=row[0],
        project_id=row[1],
        record_id=row[2],
        confidence=row[3],
        source=row[4],
        metadata=decode_json(row[5], {}),
        created_at=row[6],
        updated_at=row[7],
    )


class LinkRepository:
    """Repository for project/record links and overrides."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create link tables if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS project_record_links (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                record_id TEXT NOT NULL,
                confidence REAL,
                source TEXT NOT NULL DEFAULT 'ai',
                metadata TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(project_id, record_id)
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_project_record_links_record
            ON project_record_links(record_id)
            """,
                """
            CREATE TABLE IF NOT EXISTS link_overrides (
                user_id TEXT NOT NULL,
                project_id TEXT NOT NULL,
                record_id TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, project_id, record_id)
            )
            """,
            ]
        )

    def _link_params(self, link: ProjectRecordLink) -> list:
        return [
            link.id,
            link.project_id,
            link.record_id,
            link.confidence,
            link.source.value,
            encode_json(link.metadata),
            encode_timestamp(link.created_at),
            encode_timestamp(link.updated_at),
        ]

    async def upsert_link(self, link: ProjectRecordLink) -> None:
        """Insert a link or refresh confidence/source on the existing one.

        Args:
            link: Link to write; conflict key is (project_id, record_id)
        """
        await self._db.execute(
            f"""
            INSERT INTO project_record_links ({LINK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(project_id, record_id) DO UPDATE SET
                confidence = excluded.confidence,
                source = excluded.source,
                metadata = excluded.metadata,
                updated_at = excluded.updated_at
            """,
            self._link_params(link),
        )
        logger.debug(f"Upserted link {link.project_id}:{link.record_id}")

    async def insert_link_if_absent(self, link: ProjectRecordLink) -> bool:
        """Insert a link unless the pair is already linked.

        Returns:
            True if a new link was created
        """
        result = await self._db.execute(
            f"""
            INSERT INTO project_record_links ({LINK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(project_id, record_id) DO NOTHING
            """,
            self._link_params(link),
        )
        return result.rows_affected > 0

    async def get_link(self, project_id: str, record_id: str) -> ProjectRecordLink | None:
        result = await self._db.execute(
            f"""
            SELECT {LINK_COLUMNS} FROM project_record_links
            WHERE project_id = ? AND record_id = ?
            """,
            [project_id, record_id],
        )
        if result.rows:
            return _row_to_link(result.rows[0])
        return None

    async def list_links_for_record(self, record_id: str) -> list[ProjectRecordLink]:
        result = await self._db.execute(
            f"""
            SELECT {LINK_COLUMNS} FROM project_record_links
            WHERE record_id = ?
            ORDER BY created_at, project_id
            """,
            [record_id],
        )
        return [_row_to_link(row) for row in result.rows]

    async def list_links_for_project(self, project_id: str) -> list[ProjectRecordLink]:
        result = await self._db.execute(
            f"""
            SELECT {LINK_COLUMNS} FROM project_record_links
            WHERE project_id = ?
            ORDER BY created_at DESC
            """,
            [project_id],
        )
        return [_row_to_link(row) for row in result.rows]

    async def delete_link(self, project_id: str, record_id: str) -> bool:
        result = await self._db.execute(
            """
            DELETE FROM project_record_links
            WHERE project_id = ? AND record_id = ?
            """,
            [project_id, record_id],
        )
        return result.rows_affected > 0

    async def add_override(self, user_id: str, project_id: str, record_id: str) -> None:
        """Record that the user removed this link by hand."""
        await self._db.execute(
            """
            INSERT INTO link_overrides (user_id, project_id, record_id, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, project_id, record_id) DO NOTHING
            """,
            [user_id, project_id, record_id, encode_timestamp(utc_now())],
        )

    async def list_overridden_projects(self, user_id: str, record_id: str) -> set[str]:
        """Projects the user has manually unlinked from this record."""
        result = await self._db.execute(
            """
            SELECT project_id FROM link_overrides
            WHERE user_id = ? AND record_id = ?
            """,
            [user_id, record_id],
        )
        return {row[0] for row in result.rows}
