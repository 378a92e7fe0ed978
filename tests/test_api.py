"""Tests for health endpoints and shared API error handling."""

import pytest
from httpx import AsyncClient

from src.main import app


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test basic health check endpoint."""
    response = await client.get("/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["version"] == "0.1.0"
    assert data["environment"] == "development"


@pytest.mark.asyncio
async def test_liveness(client: AsyncClient) -> None:
    """Test liveness probe endpoint."""
    response = await client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


@pytest.mark.asyncio
async def test_readiness(client: AsyncClient) -> None:
    """Database reachable and every core service wired."""
    response = await client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "services": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_missing_service(client: AsyncClient) -> None:
    rule_service = app.state.rule_service
    del app.state.rule_service
    try:
        response = await client.get("/health/ready")
    finally:
        app.state.rule_service = rule_service
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["services"] == "missing: rule_service"


@pytest.mark.asyncio
async def test_missing_actor_is_unauthenticated(client: AsyncClient) -> None:
    response = await client.get("/lanes")
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


@pytest.mark.asyncio
async def test_unknown_role_is_forbidden(client: AsyncClient) -> None:
    response = await client.get(
        "/projects/proj-1/timeline",
        headers={"X-Actor-Id": "user-1", "X-Project-Role": "guest"},
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Project access required"}


@pytest.mark.asyncio
async def test_viewer_cannot_write(client: AsyncClient, viewer_headers) -> None:
    response = await client.post(
        "/projects/proj-1/timeline", json={"title": "Show"}, headers=viewer_headers
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Requires editor role"}
