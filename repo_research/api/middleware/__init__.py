"""
API Middleware - Request/response processing middleware.
"""

from repo_research.api.middleware.error_handler import (
    AppException,
    RepositoryNotFoundError,
    NoRepositoriesError,
    SearchError,
    ResearchError,
    app_exception_handler,
    worker_pool_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)

__all__ = [
    "AppException",
    "RepositoryNotFoundError",
    "NoRepositoriesError",
    "SearchError",
    "ResearchError",
    "app_exception_handler",
    "worker_pool_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "generic_exception_handler",
]
