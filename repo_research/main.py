"""
Repo Research - FastAPI Application Entry Point

Usage:
    uvicorn repo_research.main:app --reload

Or:
    python -m repo_research.main
"""

import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from repo_research.core.config import get_settings
from repo_research.core.dependencies import shutdown_services
from repo_research.api.routes import health_router, research_router
from repo_research.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    worker_pool_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from repo_research.services.worker_pool import WorkerPoolError


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Send log records to stderr at the configured level."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Report configuration
    - Shutdown: Close the search worker pool
    """
    # Startup
    configure_logging()
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}, mode: {settings.mode}")
    logger.info(f"Configured repos: {len(settings.repo_paths)}")

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down application...")
    await shutdown_services()


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    # Create FastAPI app
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
## Repo Research API

Collect evidence from local repositories (and optionally an external docs
service) before answering a question.

### Endpoints
- POST `/api/v1/search` runs one literal search across repositories
- POST `/api/v1/research` runs up to three research rounds for a question
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(WorkerPoolError, worker_pool_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Register routers
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(research_router, prefix=settings.api_prefix)

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": f"{settings.api_prefix}/health"
        }

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    configure_logging()
    settings = get_settings()
    uvicorn.run(
        "repo_research.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )


if __name__ == "__main__":
    run()
