"""Column encoders shared by the repositories.

SQLite has no native datetime or JSON types: timestamps are stored as
UTC ISO 8601 text (so lexical order is chronological) and structured
values as JSON text.
"""

import json
from datetime import UTC, datetime
from typing import Any


def encode_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def encode_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


def decode_json(value: str | None, default: Any = None) -> Any:
    """Parse a JSON column, returning ``default`` for NULL or bad data."""
    if value is None or value == "":
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def encode_bool(value: bool) -> int:
    return 1 if value else 0
