"""Repository for project tasks."""

import logging

from src.db.columns import encode_timestamp
from src.db.turso import TursoClient
from src.models.task import ProjectTask

logger = logging.getLogger(__name__)

TASK_COLUMNS = """
    id, project_id, title, description, status, due_at, priority,
    assignee_id, created_by, created_at, updated_at
"""


def _row_to_task(row) -> ProjectTask:
    return ProjectTask(
        id=row[0],
        project_id=row[1],
        title=row[2],
        description=row[3],
        status=row[4],
        due_at=row[5],
        priority=row[6],
        assignee_id=row[7],
        created_by=row[8],
        created_at=row[9],
        updated_at=row[10],
    )


class TaskRepository:
    """Repository for project tasks."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create project_tasks table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS project_tasks (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                status TEXT NOT NULL DEFAULT 'todo',
                due_at TEXT,
                priority REAL,
                assignee_id TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_project_tasks_project_status
            ON project_tasks(project_id, status)
            """,
            ]
        )

    async def insert(self, task: ProjectTask, *, if_absent: bool = False) -> bool:
        """Insert a task.

        Args:
            task: Task to persist
            if_absent: Ignore the write when the id already exists

        Returns:
            True if a row was written
        """
        conflict = "ON CONFLICT(id) DO NOTHING" if if_absent else ""
        result = await self._db.execute(
            f"""
            INSERT INTO project_tasks ({TASK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            {conflict}
            """,
            [
                task.id,
                task.project_id,
                task.title,
                task.description,
                task.status,
                encode_timestamp(task.due_at),
                task.priority,
                task.assignee_id,
                task.created_by,
                encode_timestamp(task.created_at),
                encode_timestamp(task.updated_at),
            ],
        )
        written = result.rows_affected > 0
        if written:
            logger.debug(f"Inserted project task {task.id}")
        return written

    async def get(self, task_id: str) -> ProjectTask | None:
        result = await self._db.execute(
            f"SELECT {TASK_COLUMNS} FROM project_tasks WHERE id = ?",
            [task_id],
        )
        if result.rows:
            return _row_to_task(result.rows[0])
        return None

    async def list_for_project(self, project_id: str) -> list[ProjectTask]:
        result = await self._db.execute(
            f"""
            SELECT {TASK_COLUMNS} FROM project_tasks
            WHERE project_id = ?
            ORDER BY created_at
            """,
            [project_id],
        )
        return [_row_to_task(row) for row in result.rows]
