"""Repository for lane definitions.

Global lanes have a NULL ``user_id``. Slugs are unique per owner and,
through a partial index, unique among global lanes.
"""

import logging

from src.db.columns import decode_json, encode_bool, encode_json, encode_timestamp
from src.db.turso import TursoClient
from src.models.lane import DEFAULT_LANES, LaneDefinition

logger = logging.getLogger(__name__)

LANE_COLUMNS = """
    id, user_id, name, slug, description, color, icon,
    sort_order, auto_assign_rules, is_default, created_at, updated_at
"""


def _row_to_lane(row) -> LaneDefinition:
    return LaneDefinition(
        id=row[0],
        user_id=row[1],
        name=row[2],
        slug=row[3],
        description=row[4],
        color=row[5],
        icon=row[6],
        sort_order=row[7],
        auto_assign_rules=decode_json(row[8]),
        is_default=bool(row[9]),
        created_at=row[10],
        updated_at=row[11],
    )


class LaneRepository:
    """Repository for lane definitions."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create lane_definitions table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS lane_definitions (
                id TEXT PRIMARY KEY,
                user_id TEXT,
                name TEXT NOT NULL,
                slug TEXT NOT NULL,
                description TEXT,
                color TEXT,
                icon TEXT,
                sort_order INTEGER NOT NULL DEFAULT 0,
                auto_assign_rules TEXT,
                is_default INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(user_id, slug)
            )
            """,
                """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_lane_definitions_global_slug
            ON lane_definitions(slug) WHERE user_id IS NULL
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_lane_definitions_user
            ON lane_definitions(user_id)
            """,
            ]
        )

    async def seed_defaults(self) -> int:
        """Create the workspace lanes that do not exist yet.

        Returns:
            Number of lanes created
        """
        created = 0
        for seed in DEFAULT_LANES:
            lane = LaneDefinition(**seed)
            if await self.insert(lane, if_absent=True):
                created += 1
        if created:
            logger.info(f"Seeded {created} default lanes")
        return created

    async def insert(self, lane: LaneDefinition, *, if_absent: bool = False) -> bool:
        conflict = "ON CONFLICT DO NOTHING" if if_absent else ""
        result = await self._db.execute(
            f"""
            INSERT INTO lane_definitions ({LANE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            {conflict}
            """,
            [
                lane.id,
                lane.user_id,
                lane.name,
                lane.slug,
                lane.description,
                lane.color,
                lane.icon,
                lane.sort_order,
                encode_json(lane.auto_assign_rules),
                encode_bool(lane.is_default),
                encode_timestamp(lane.created_at),
                encode_timestamp(lane.updated_at),
            ],
        )
        return result.rows_affected > 0

    async def update(self, lane: LaneDefinition) -> bool:
        result = await self._db.execute(
            """
            UPDATE lane_definitions SET
                name = ?, slug = ?, description = ?, color = ?, icon = ?,
                sort_order = ?, auto_assign_rules = ?, is_default = ?,
                updated_at = ?
            WHERE id = ?
            """,
            [
                lane.name,
                lane.slug,
                lane.description,
                lane.color,
                lane.icon,
                lane.sort_order,
                encode_json(lane.auto_assign_rules),
                encode_bool(lane.is_default),
                encode_timestamp(lane.updated_at),
                lane.id,
            ],
        )
        return result.rows_affected > 0

    async def delete(self, lane_id: str) -> bool:
        result = await self._db.execute(
            "DELETE FROM lane_definitions WHERE id = ?",
            [lane_id],
        )
        return result.rows_affected > 0

    async def get(self, lane_id: str) -> LaneDefinition | None:
        result = await self._db.execute(
            f"SELECT {LANE_COLUMNS} FROM lane_definitions WHERE id = ?",
            [lane_id],
        )
        if result.rows:
            return _row_to_lane(result.rows[0])
        return None

    async def list_visible(self, user_id: str | None) -> list[LaneDefinition]:
        """Global lanes plus the user's own, in evaluation order.

        Args:
            user_id: Caller; None lists global lanes only

        Returns:
            Lanes ordered by sort_order, then name
        """
        result = await self._db.execute(
            f"""
            SELECT {LANE_COLUMNS} FROM lane_definitions
            WHERE user_id IS NULL OR user_id = ?
            ORDER BY sort_order, name
            """,
            [user_id],
        )
        return [_row_to_lane(row) for row in result.rows]

    async def slug_taken(
        self,
        slug: str,
        user_id: str | None,
        exclude_id: str | None = None,
    ) -> bool:
        """Whether a lane visible to ``user_id`` already uses the slug."""
        result = await self._db.execute(
            """
            SELECT id FROM lane_definitions
            WHERE slug = ? AND (user_id IS NULL OR user_id = ?)
            """,
            [slug, user_id],
        )
        return any(row[0] != exclude_id for row in result.rows)

    async def max_sort_order(self, user_id: str | None) -> int:
        result = await self._db.execute(
            """
            SELECT MAX(sort_order) FROM lane_definitions
            WHERE user_id IS NULL OR user_id = ?
            """,
            [user_id],
        )
        value = result.rows[0][0] if result.rows else None
        return value or 0
