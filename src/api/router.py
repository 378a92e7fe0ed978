"""API router aggregation."""

from fastapi import APIRouter

from src.api.approvals import router as approvals_router
from src.api.assignment_rules import router as assignment_rules_router
from src.api.health import router as health_router
from src.api.lanes import router as lanes_router
from src.api.links import router as links_router
from src.api.timeline import router as timeline_router

api_router = APIRouter()
api_router.include_router(health_router)
# Project timeline, dependencies, conflicts and slot suggestions
api_router.include_router(timeline_router)
api_router.include_router(lanes_router)
api_router.include_router(approvals_router)
# Inbound record linking
api_router.include_router(assignment_rules_router)
api_router.include_router(links_router)
