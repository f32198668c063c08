"""
Gig Marketplace - FastAPI Application

Main entry point for the backend API: payment webhooks, seller
subscriptions, gig publication, orders and notifications.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.config.settings import settings
from marketplace.infrastructure.db.database import DatabaseManager, close_db, init_db
from marketplace.infrastructure.exceptions import (
    DuplicateError,
    ForbiddenActionError,
    GatewayError,
    InvalidTransitionError,
    MarketplaceError,
    NotFoundError,
    SubscriptionRequiredError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"Marketplace Backend starting in {settings.environment} mode...")

    owns_db = getattr(app.state, "db", None) is None
    if owns_db:
        app.state.db = DatabaseManager.from_settings(settings)
    await init_db(app.state.db)

    yield

    # Shutdown
    if owns_db:
        await close_db(app.state.db)
    logger.info("Marketplace Backend shutting down...")


# ============================================================================
# Exception Handlers
# ============================================================================

# Most specific first; the first matching class in the MRO wins
ERROR_STATUS = {
    ValidationError: 400,
    ForbiddenActionError: 403,
    SubscriptionRequiredError: 403,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    DuplicateError: 409,
    GatewayError: 502,
}


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    """Map domain and infrastructure errors to HTTP responses."""
    status_code = 500
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            status_code = ERROR_STATUS[cls]
            break
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ============================================================================
# Application Factory
# ============================================================================

def create_app(db: Optional[DatabaseManager] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        db: Pre-built database manager. When omitted, one is built from
            settings at startup and closed at shutdown.
    """
    app = FastAPI(
        title="Gig Marketplace",
        description="Marketplace billing, subscription and order core",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )
    if db is not None:
        app.state.db = db

    # CORS configuration from Settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarketplaceError, marketplace_error_handler)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "gig-marketplace"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Gig Marketplace API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    from marketplace.api.routes import cron, gigs, notifications, orders, subscriptions, webhooks

    app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
    app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
    app.include_router(gigs.router, prefix="/api", tags=["Gigs"])
    app.include_router(orders.router, prefix="/api", tags=["Orders"])
    app.include_router(notifications.router, prefix="/api", tags=["Notifications"])
    app.include_router(cron.router, prefix="/api", tags=["Cron"])

    return app


app = create_app()
