"""Akasia Operations Ledger - FastAPI Application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from akasia import __version__
from akasia.core.config import get_settings
from akasia.core.logging import setup_logging
from akasia.db import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: Configure logging, initialize database tables
    Shutdown: Close database connections
    """
    # Startup
    setup_logging()
    await init_db()
    logger.info(f"{app.title} {__version__} started")
    yield
    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Operations ledger, spending tasks and cash-float wallet",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from akasia.api.ledger import router as ledger_router
    from akasia.api.reports import router as reports_router
    from akasia.api.spending import router as spending_router
    from akasia.api.wallet import router as wallet_router

    app.include_router(ledger_router, prefix="/api")
    app.include_router(spending_router, prefix="/api")
    app.include_router(wallet_router, prefix="/api")
    app.include_router(reports_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Application instance
app = create_app()
