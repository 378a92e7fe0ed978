"""Health check endpoints for monitoring and orchestration."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.config import settings

router = APIRouter(prefix="/health", tags=["health"])

# app.state attributes that must be set before the service takes traffic
REQUIRED_SERVICES = (
    "timeline_service",
    "lane_service",
    "approval_machine",
    "rule_service",
)


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    timestamp: datetime
    version: str
    environment: str


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness with one entry per checked dependency."""

    status: str
    checks: dict[str, str]


@router.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        environment=settings.app_env,
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe: the process answers."""
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> ReadinessResponse:
    """Readiness probe: database reachable and core services wired."""
    checks: dict[str, str] = {}

    db = getattr(request.app.state, "db", None)
    if db:
        try:
            checks["database"] = "ok" if await db.is_healthy() else "failed"
        except Exception:
            checks["database"] = "failed"
    else:
        checks["database"] = "not_configured"

    missing = [name for name in REQUIRED_SERVICES if getattr(request.app.state, name, None) is None]
    checks["services"] = "ok" if not missing else "missing: " + ", ".join(missing)

    status = "ready" if all(v == "ok" for v in checks.values()) else "not_ready"
    return ReadinessResponse(status=status, checks=checks)
