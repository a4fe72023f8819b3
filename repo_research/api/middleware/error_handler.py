"""
Error Handler Middleware - Global exception handling for the API.

Defines the application exception hierarchy and the FastAPI handlers that
turn exceptions into consistent JSON error bodies.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
from datetime import datetime

from repo_research.core.config import get_settings
from repo_research.services.worker_pool import WorkerPoolError


logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class RepositoryNotFoundError(AppException):
    """Raised when a requested repository path does not exist."""

    def __init__(self, repo_path: str):
        super().__init__(
            message=f"Repository not found: {repo_path}",
            error_code="REPO_NOT_FOUND",
            status_code=404,
            details={"repo_path": repo_path}
        )


class NoRepositoriesError(AppException):
    """Raised when a search has no repositories to run against."""

    def __init__(self):
        super().__init__(
            message="No repositories given and REPO_PATHS is not configured",
            error_code="NO_REPOSITORIES",
            status_code=400
        )


class SearchError(AppException):
    """Raised when a repository search cannot complete."""

    def __init__(self, message: str, query: str = None):
        super().__init__(
            message=message,
            error_code="SEARCH_ERROR",
            status_code=503,
            details={"query": query} if query else {}
        )


class ResearchError(AppException):
    """Raised when evidence collection fails outright."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="RESEARCH_ERROR",
            status_code=500
        )


def create_error_response(
    message: str,
    error_code: str = "INTERNAL_ERROR",
    status_code: int = 500,
    details: dict = None
) -> JSONResponse:
    """Create a standardized error response."""
    settings = get_settings()

    content = {
        "success": False,
        "error": message,
        "error_code": error_code,
        "timestamp": datetime.utcnow().isoformat()
    }

    # Include details in debug mode
    if details and settings.debug:
        content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content
    )


async def app_exception_handler(
    request: Request,
    exc: AppException
) -> JSONResponse:
    """Handle application-specific exceptions."""
    return create_error_response(
        message=exc.message,
        error_code=exc.error_code,
        status_code=exc.status_code,
        details=exc.details
    )


async def worker_pool_exception_handler(
    request: Request,
    exc: WorkerPoolError
) -> JSONResponse:
    """Pool shutdown or worker crashes surface as a temporary failure."""
    logger.warning(f"Repo search worker error on {request.url.path}: {exc}")
    return create_error_response(
        message=str(exc),
        error_code="WORKER_UNAVAILABLE",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        details={"exception_type": type(exc).__name__}
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Handle HTTP exceptions."""
    return create_error_response(
        message=str(exc.detail),
        error_code="HTTP_ERROR",
        status_code=exc.status_code
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    # Format validation errors
    errors = []
    for error in exc.errors():
        loc = " -> ".join(str(l) for l in error["loc"])
        errors.append(f"{loc}: {error['msg']}")

    return create_error_response(
        message="Validation error",
        error_code="VALIDATION_ERROR",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors}
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    settings = get_settings()

    traceback_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Unexpected error on {request.url.path}: {traceback_str}")

    details = None
    if settings.debug:
        details = {
            "exception_type": type(exc).__name__,
            "traceback": traceback_str
        }

    return create_error_response(
        message="An unexpected error occurred",
        error_code="INTERNAL_ERROR",
        status_code=500,
        details=details
    )
