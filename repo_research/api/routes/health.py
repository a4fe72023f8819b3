"""
Health Check Endpoints - Liveness, readiness and search worker status.
"""

import os
from datetime import datetime

from fastapi import APIRouter, Depends

from repo_research.core.config import get_settings, Settings
from repo_research.core.dependencies import get_repo_search_service
from repo_research.models.responses import HealthResponse
from repo_research.services.worker_pool import RepoSearchService


router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the API is running"
)
async def health_check(
    settings: Settings = Depends(get_settings)
) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        timestamp=datetime.utcnow()
    )


@router.get(
    "/ready",
    summary="Readiness Check",
    description="Check that repositories are configured and search can run"
)
async def readiness_check(
    settings: Settings = Depends(get_settings),
    service: RepoSearchService = Depends(get_repo_search_service)
) -> dict:
    """
    Ready when at least one configured repo exists on disk and the search
    service can take work.

    The worker pool is created lazily, so "pool" is null until the first
    search. A pool that has been closed makes the service not ready; an
    in-process downgrade does not.
    """
    missing = [p for p in settings.repo_paths if not os.path.isdir(p)]
    pool = service.pool
    pool_stats = pool.stats() if pool is not None else None

    checks = {
        "repos_configured": len(settings.repo_paths) > 0,
        "repos_present": not missing,
        "search_available": pool is None or not pool.closed,
    }

    return {
        "ready": all(checks.values()),
        "checks": checks,
        "repos": {
            "configured": len(settings.repo_paths),
            "missing": missing,
        },
        "search": {
            "mode": "pool" if service.use_pool else "in-process",
            "pool": pool_stats,
        },
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get(
    "/live",
    summary="Liveness Check",
    description="Simple liveness probe"
)
async def liveness_check() -> dict:
    return {"status": "alive"}
