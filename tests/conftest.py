"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator
from pathlib import Path
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from src.db.turso import TursoClient
from src.main import app, initialize_services

STATE_ATTRIBUTES = (
    "db",
    "event_store",
    "timeline_repo",
    "lane_repo",
    "approval_repo",
    "link_repo",
    "task_repo",
    "rule_repo",
    "lane_service",
    "timeline_service",
    "approval_machine",
    "rule_service",
)

EDITOR_HEADERS = {"X-Actor-Id": "user-1", "X-Project-Role": "editor"}
VIEWER_HEADERS = {"X-Actor-Id": "user-1", "X-Project-Role": "viewer"}


@pytest.fixture
async def db_client(tmp_path: Path) -> AsyncIterator[TursoClient]:
    """Create a temp file database client for testing."""
    db_path = tmp_path / "test.db"
    client = TursoClient(url=f"file:{db_path}")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def client(tmp_path: Path) -> AsyncIterator[AsyncClient]:
    """Create async test client for FastAPI app with database."""
    db_path = tmp_path / "test_api.db"
    db = TursoClient(url=f"file:{db_path}")
    await db.connect()

    app.state.db = db
    await initialize_services(app, db)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()
    for name in STATE_ATTRIBUTES:
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def editor_headers() -> dict[str, str]:
    return dict(EDITOR_HEADERS)


@pytest.fixture
def viewer_headers() -> dict[str, str]:
    return dict(VIEWER_HEADERS)


@pytest.fixture
async def services(db_client: TursoClient) -> SimpleNamespace:
    """Repositories and services wired the same way as the app."""
    holder = SimpleNamespace(state=SimpleNamespace())
    await initialize_services(holder, db_client)
    return holder.state
