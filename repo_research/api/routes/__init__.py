"""
API Routes - FastAPI route modules.
"""

from repo_research.api.routes.health import router as health_router
from repo_research.api.routes.research import router as research_router

__all__ = [
    "health_router",
    "research_router",
]
