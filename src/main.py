"""
Main entry point for the citation lineage service.

Creates the FastAPI application instance for uvicorn.

The lineage store is opened explicitly in the application lifespan and
closed at shutdown; routes receive the LineageService through a
dependency rather than a module-level handle.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.error_handlers import register_error_handlers
from src.api.routes.chunks import router as chunks_router
from src.api.routes.health import router as health_router
from src.api.routes.health import set_service_start_time
from src.core.config import get_settings
from src.core.logging import configure_logging, get_logger
from src.lineage.service import LineageService, build_lineage_service


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    On startup: Open the configured store unless a service was injected
    On shutdown: Close the store this lifespan opened
    """
    settings = get_settings()
    logger.info(
        "Starting citation-lineage service",
        port=settings.port,
        backend=settings.storage_backend,
        max_depth=settings.max_lineage_depth,
    )

    set_service_start_time()

    owned: LineageService | None = None
    if getattr(app.state, "lineage_service", None) is None:
        owned = build_lineage_service(settings)
        app.state.lineage_service = owned

    yield

    logger.info("Shutting down citation-lineage service")
    if owned is not None:
        owned.close()
        app.state.lineage_service = None
        logger.info("Lineage store closed")


def create_app(lineage_service: LineageService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lineage_service: Pre-built service (tests, embedding); when omitted
            the lifespan builds one from settings

    Registers:
    - chunks_router: /v1/chunks/...
    - health_router: GET /health, /health/ready, /health/live
    """
    app = FastAPI(
        title="Citation Lineage Service",
        description="Provenance of synthesized insights back to raw sources",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.lineage_service = lineage_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(chunks_router)
    app.include_router(health_router)

    return app


# Create application instance
app = create_app()
