"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from src.api.router import api_router
from src.approvals.appliers import ApprovalApplier
from src.approvals.state_machine import ApprovalStateMachine
from src.config import settings
from src.db.turso import TursoClient
from src.errors import TimelineServiceError
from src.events.store import EventStore
from src.lanes.service import LaneService
from src.repositories.approval_repo import ApprovalRepository
from src.repositories.lane_repo import LaneRepository
from src.repositories.link_repo import LinkRepository
from src.repositories.rule_repo import RuleRepository
from src.repositories.task_repo import TaskRepository
from src.repositories.timeline_repo import TimelineRepository
from src.rules.service import AssignmentRuleService
from src.timeline.dependency_graph import DependencyGraph
from src.timeline.service import TimelineService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def initialize_services(app: FastAPI, db: TursoClient) -> None:
    """Create tables, seed workspace lanes and wire services into app state.

    Args:
        app: Application whose state receives the services
        db: Connected database client
    """
    event_store = EventStore(db)
    await event_store.init_schema()
    app.state.event_store = event_store

    timeline_repo = TimelineRepository(db)
    lane_repo = LaneRepository(db)
    approval_repo = ApprovalRepository(db)
    link_repo = LinkRepository(db)
    task_repo = TaskRepository(db)
    rule_repo = RuleRepository(db)
    for repo in (timeline_repo, lane_repo, approval_repo, link_repo, task_repo, rule_repo):
        await repo.initialize()
    seeded = await lane_repo.seed_defaults()
    app.state.timeline_repo = timeline_repo
    app.state.lane_repo = lane_repo
    app.state.approval_repo = approval_repo
    app.state.link_repo = link_repo
    app.state.task_repo = task_repo
    app.state.rule_repo = rule_repo
    logger.info(f"Repositories initialized ({seeded} default lanes seeded)")

    graph = DependencyGraph(timeline_repo, event_store)
    lane_service = LaneService(lane_repo, timeline_repo, event_store)
    app.state.lane_service = lane_service
    app.state.timeline_service = TimelineService(
        timeline_repo, lane_service, graph, event_store
    )
    app.state.approval_machine = ApprovalStateMachine(
        approval_repo,
        ApprovalApplier(timeline_repo, link_repo, task_repo, graph),
        event_store,
    )
    app.state.rule_service = AssignmentRuleService(rule_repo, link_repo, event_store)
    logger.info("Core services initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Initialize database connection
    - Create tables and wire services

    Shutdown:
    - Close database connection
    """
    import src.db.turso as turso_module

    logger.info(f"Starting {settings.app_name}...")

    db = TursoClient()
    await db.connect()
    app.state.db = db
    turso_module.db_client = db
    logger.info(f"Database connected: {db.url}")

    await initialize_services(app, db)

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await db.close()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Timeline scheduling, lane assignment and approval workflow",
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(TimelineServiceError)
async def service_error_handler(request: Request, exc: TimelineServiceError) -> JSONResponse:
    """Translate service errors into ``{"error", "current"}`` responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    content = {"error": exc.message}
    if exc.current is not None:
        content["current"] = jsonable_encoder(exc.current)
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
