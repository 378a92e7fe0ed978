"""Repository for approvals."""

import logging

from src.db.columns import decode_json, encode_json, encode_timestamp
from src.db.turso import TursoClient
from src.models.approval import Approval, ApprovalStatus

logger = logging.getLogger(__name__)

APPROVAL_COLUMNS = """
    id, project_id, type, status, payload, requested_by, created_by,
    approver_id, approved_at, declined_at, resolution_note,
    created_at, updated_at
"""


def _row_to_approval(row) -> Approval:
    return Approval(
        id=row[0],
        project_id=row[1],
        type=row[2],
        status=row[3],
        payload=decode_json(row[4], {}),
        requested_by=row[5],
        created_by=row[6],
        approver_id=row[7],
        approved_at=row[8],
        declined_at=row[9],
        resolution_note=row[10],
        created_at=row[11],
        updated_at=row[12],
    )


class ApprovalRepository:
    """Repository for approvals.

    Resolution is a compare-and-set on ``status = 'pending'`` so that
    two concurrent decisions cannot both resolve the same approval.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create approvals table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS approvals (
                id TEXT PRIMARY KEY,
                project_id TEXT,
                type TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                payload TEXT,
                requested_by TEXT,
                created_by TEXT,
                approver_id TEXT,
                approved_at TEXT,
                declined_at TEXT,
                resolution_note TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_approvals_project_status
            ON approvals(project_id, status)
            """,
            ]
        )

    async def insert(self, approval: Approval) -> None:
        await self._db.execute(
            f"""
            INSERT INTO approvals ({APPROVAL_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                approval.id,
                approval.project_id,
                approval.type,
                approval.status.value,
                encode_json(approval.payload),
                approval.requested_by,
                approval.created_by,
                approval.approver_id,
                encode_timestamp(approval.approved_at),
                encode_timestamp(approval.declined_at),
                approval.resolution_note,
                encode_timestamp(approval.created_at),
                encode_timestamp(approval.updated_at),
            ],
        )
        logger.debug(f"Inserted approval {approval.id} ({approval.type})")

    async def get(self, approval_id: str) -> Approval | None:
        result = await self._db.execute(
            f"SELECT {APPROVAL_COLUMNS} FROM approvals WHERE id = ?",
            [approval_id],
        )
        if result.rows:
            return _row_to_approval(result.rows[0])
        return None

    async def list_approvals(
        self,
        project_id: str | None = None,
        status: ApprovalStatus | None = None,
    ) -> list[Approval]:
        """List approvals, newest first.

        Args:
            project_id: Restrict to one project
            status: Restrict to one status

        Returns:
            Matching approvals ordered by created_at descending
        """
        clauses: list[str] = []
        params: list = []
        if project_id is not None:
            clauses.append("project_id = ?")
            params.append(project_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        result = await self._db.execute(
            f"""
            SELECT {APPROVAL_COLUMNS} FROM approvals
            {where}
            ORDER BY created_at DESC, id
            """,
            params,
        )
        return [_row_to_approval(row) for row in result.rows]

    async def resolve(self, approval: Approval) -> bool:
        """Persist resolution fields if the approval is still pending.

        Args:
            approval: Approval carrying the new status and resolution fields

        Returns:
            True if this call resolved the approval, False if another
            decision already did
        """
        result = await self._db.execute(
            """
            UPDATE approvals SET
                status = ?, approver_id = ?, approved_at = ?, declined_at = ?,
                resolution_note = ?, updated_at = ?
            WHERE id = ? AND status = 'pending'
            """,
            [
                approval.status.value,
                approval.approver_id,
                encode_timestamp(approval.approved_at),
                encode_timestamp(approval.declined_at),
                approval.resolution_note,
                encode_timestamp(approval.updated_at),
                approval.id,
            ],
        )
        resolved = result.rows_affected > 0
        if resolved:
            logger.info(f"Approval {approval.id} resolved as {approval.status.value}")
        return resolved
