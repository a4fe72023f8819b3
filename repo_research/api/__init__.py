"""
API Layer - FastAPI routes and middleware.
"""

from repo_research.api.routes import health_router, research_router

__all__ = [
    "health_router",
    "research_router",
]
