"""
Data Models for Repo Research
=============================

Organized into three categories:
- schemas: Core domain models used across the application
- requests: API request validation models
- responses: API response models
"""

from repo_research.models.schemas import (
    RepoTarget,
    QuestionAnalysis,
    FollowupPlan,
    CollectedEvidence,
)

from repo_research.models.requests import (
    SearchRequest,
    ResearchRequest,
)

from repo_research.models.responses import (
    HealthResponse,
    SearchResponse,
    ResearchResponse,
    ErrorResponse,
)

__all__ = [
    # Schemas
    "RepoTarget",
    "QuestionAnalysis",
    "FollowupPlan",
    "CollectedEvidence",
    # Requests
    "SearchRequest",
    "ResearchRequest",
    # Responses
    "HealthResponse",
    "SearchResponse",
    "ResearchResponse",
    "ErrorResponse",
]
