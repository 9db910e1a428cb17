"""
SalesDesk - Conversion approval and commission service

Main FastAPI application with:
- Conversion workflow (submit, recommend, approve, reject, recompute)
- Deduction rule administration
- Goals, visit logging and organisation reports
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from salesdesk.api import api_router
from salesdesk.config import settings
from salesdesk.errors import WorkflowError, workflow_error_handler
from salesdesk.services.currency import get_currency_normalizer

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Shutdown closes the exchange-rate HTTP client.
    """
    logger.info(
        f"Starting SalesDesk (base currency {settings.base_currency}, "
        f"direct approval {'on' if settings.allow_direct_approval else 'off'})"
    )

    yield

    logger.info("Shutting down SalesDesk...")
    provider = get_currency_normalizer().provider
    aclose = getattr(provider, "aclose", None)
    if aclose is not None:
        await aclose()


# Create FastAPI application
app = FastAPI(
    title="SalesDesk",
    description="Conversion approval and commission service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_exception_handler(WorkflowError, workflow_error_handler)

# Include routers
app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "salesdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
