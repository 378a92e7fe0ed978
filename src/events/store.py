"""Append-only audit log using Turso/libSQL.

Every structural change made through the services (approvals, timeline
edits, lane reapplication, rule links) is appended here after it
commits. Writing the audit entry is a dependent operation: a failure
is logged and never undoes or fails the change it describes.
"""

import json
import logging
from collections.abc import AsyncIterator

from src.db.turso import TursoClient
from src.events.base import Event

logger = logging.getLogger(__name__)


class EventStore:
    """Append-only audit event store.

    Features:
    - Append-only (never update/delete)
    - Best-effort recording for dependent writes
    - Event retrieval by aggregate or type
    """

    def __init__(self, client: TursoClient):
        """Initialize event store.

        Args:
            client: Database client for persistence
        """
        self.client = client

    async def init_schema(self) -> None:
        """Create the audit_events table if it doesn't exist."""
        await self.client.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS audit_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id TEXT UNIQUE NOT NULL,
                event_type TEXT NOT NULL,
                aggregate_id TEXT,
                aggregate_type TEXT,
                actor_id TEXT,
                event_data TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_audit_events_aggregate
            ON audit_events(aggregate_type, aggregate_id)
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_audit_events_type
            ON audit_events(event_type)
            """,
            ]
        )
        logger.info("Audit event schema initialized")

    async def append(self, event: Event) -> None:
        """Append an event to the store.

        Args:
            event: The event to store
        """
        store_dict = event.to_store_dict()
        await self.client.execute(
            """INSERT INTO audit_events
               (event_id, event_type, aggregate_id, aggregate_type,
                actor_id, event_data, timestamp)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            [
                store_dict["event_id"],
                store_dict["event_type"],
                store_dict["aggregate_id"],
                store_dict["aggregate_type"],
                store_dict["actor_id"],
                json.dumps(store_dict["data"], default=str),
                store_dict["timestamp"],
            ],
        )
        logger.debug(f"Stored event {event.event_type} ({event.event_id})")

    async def record(self, event: Event) -> bool:
        """Append an event, logging instead of raising on failure.

        Returns:
            True if the event was stored
        """
        try:
            await self.append(event)
        except Exception:
            logger.exception(f"Failed to record audit event {event.event_type}")
            return False
        return True

    async def get_events_for_aggregate(
        self,
        aggregate_id: str,
    ) -> AsyncIterator[dict]:
        """Retrieve events for an aggregate in insertion order.

        Args:
            aggregate_id: The aggregate's ID

        Yields:
            Event dictionaries
        """
        result = await self.client.execute(
            """SELECT event_type, actor_id, event_data, timestamp
               FROM audit_events
               WHERE aggregate_id = ?
               ORDER BY id ASC""",
            [aggregate_id],
        )
        for row in result.rows:
            yield {
                "event_type": row[0],
                "actor_id": row[1],
                "data": json.loads(row[2]),
                "timestamp": row[3],
            }

    async def get_events_by_type(
        self,
        event_type: str,
        limit: int = 100,
        offset: int = 0,
    ) -> AsyncIterator[dict]:
        """Retrieve events by type, newest first.

        Args:
            event_type: Event type name (class name)
            limit: Maximum events to return
            offset: Number of events to skip

        Yields:
            Event dictionaries
        """
        result = await self.client.execute(
            """SELECT event_id, event_type, aggregate_id, actor_id,
                      event_data, timestamp
               FROM audit_events
               WHERE event_type = ?
               ORDER BY id DESC
               LIMIT ? OFFSET ?""",
            [event_type, limit, offset],
        )
        for row in result.rows:
            yield {
                "event_id": row[0],
                "event_type": row[1],
                "aggregate_id": row[2],
                "actor_id": row[3],
                "data": json.loads(row[4]),
                "timestamp": row[5],
            }

    async def count_events(self, event_type: str | None = None) -> int:
        """Count events, optionally by type."""
        if event_type:
            result = await self.client.execute(
                "SELECT COUNT(*) FROM audit_events WHERE event_type = ?",
                [event_type],
            )
        else:
            result = await self.client.execute("SELECT COUNT(*) FROM audit_events")
        return result.rows[0][0]
