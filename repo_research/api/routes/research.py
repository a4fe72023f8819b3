"""
Research Endpoints - Repository search and evidence collection.

- POST /search: one literal search across repositories
- POST /research: multi-round evidence collection for a question
"""

import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends

from repo_research.core.config import Settings, get_settings
from repo_research.core.dependencies import (
    get_repo_search_service,
    get_research_controller,
)
from repo_research.agents.controller import ResearchController
from repo_research.models.requests import ResearchRequest, SearchRequest
from repo_research.models.responses import (
    ErrorResponse,
    ResearchResponse,
    SearchResponse,
)
from repo_research.models.schemas import RepoTarget
from repo_research.services.multi_search import RepoSearchRequest
from repo_research.services.worker_pool import RepoSearchService, WorkerPoolError
from repo_research.api.middleware.error_handler import (
    NoRepositoriesError,
    RepositoryNotFoundError,
    ResearchError,
    SearchError,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Research"])


def resolve_repos(repos: Optional[List[RepoTarget]], settings: Settings) -> List[RepoTarget]:
    """
    Use the request's repos, or fall back to REPO_PATHS.

    Raises:
        RepositoryNotFoundError: If a repo path is not a directory
    """
    if repos is None:
        repos = [
            RepoTarget(path=p, name=os.path.basename(os.path.normpath(p)))
            for p in settings.repo_paths
        ]
    for repo in repos:
        if not os.path.isdir(repo.path):
            raise RepositoryNotFoundError(repo.path)
    return repos


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search Repositories",
    description="Literal token search across local repositories",
    responses={
        400: {"model": ErrorResponse, "description": "No repositories"},
        404: {"model": ErrorResponse, "description": "Repository not found"},
        503: {"model": ErrorResponse, "description": "Search workers unavailable"}
    }
)
async def search_repositories(
    request: SearchRequest,
    settings: Settings = Depends(get_settings),
    service: RepoSearchService = Depends(get_repo_search_service)
) -> SearchResponse:
    """
    Search repositories for the lines that best match a query.

    Pool errors propagate to the worker pool exception handler.
    """
    repos = resolve_repos(request.repos, settings)
    if not repos:
        raise NoRepositoriesError()

    payload = RepoSearchRequest(
        repos=repos,
        query=request.query,
        max_files=request.max_files or settings.repo_max_files,
        max_file_bytes=settings.repo_max_file_bytes,
        max_snippets=request.max_snippets or settings.repo_max_snippets,
        context_lines=(
            request.context_lines
            if request.context_lines is not None
            else settings.repo_snippet_context_lines
        ),
        max_context_chars=request.max_context_chars or settings.repo_max_context_chars,
    )

    try:
        result = await service.search(payload)
    except WorkerPoolError:
        raise
    except Exception as e:
        logger.exception("Repo search failed")
        raise SearchError(f"Repo search failed: {str(e)}", query=request.query) from e

    return SearchResponse(
        query=result.query,
        context_text=result.context_text,
        sources=result.sources,
    )


@router.post(
    "/research",
    response_model=ResearchResponse,
    summary="Collect Evidence",
    description="Collect repository and external evidence for a question",
    responses={
        404: {"model": ErrorResponse, "description": "Repository not found"},
        500: {"model": ErrorResponse, "description": "Research failed"}
    }
)
async def research_question(
    request: ResearchRequest,
    settings: Settings = Depends(get_settings),
    controller: ResearchController = Depends(get_research_controller)
) -> ResearchResponse:
    """
    Run the research rounds for a question.

    Evidence failures become warnings; only unexpected errors fail the request.
    """
    repos = resolve_repos(request.repos, settings)

    try:
        evidence = await controller.collect_evidence(
            question=request.question,
            transcript=request.transcript,
            repo_targets=repos,
        )
    except Exception as e:
        logger.exception("Research failed")
        raise ResearchError(f"Research failed: {str(e)}") from e

    return ResearchResponse(**evidence.model_dump())
