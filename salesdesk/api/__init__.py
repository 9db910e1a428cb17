"""API router aggregation."""

from fastapi import APIRouter

from salesdesk.api.activity import router as activity_router
from salesdesk.api.conversions import router as conversions_router
from salesdesk.api.deductions import router as deductions_router
from salesdesk.api.health import router as health_router
from salesdesk.api.reports import router as reports_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(conversions_router)
api_router.include_router(deductions_router)
api_router.include_router(activity_router)
api_router.include_router(reports_router)

__all__ = ["api_router"]
