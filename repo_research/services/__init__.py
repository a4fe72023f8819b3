"""
Services Layer for Repo Research
================================

Services handle the search logic and external integrations:

- Scanner: Lists searchable files per repository (cached)
- search_repo: Literal token search over one repository
- search_repos_local: Fan-out search over several repositories
- RepoSearchService: Runs searches in a worker process pool
- DocsQAProvider: External documentation evidence over HTTP

DEPENDENCY FLOW:
----------------
    Scanner ──► search_repo ──► search_repos_local ──► worker processes
                                                            │
                                            RepoSearchService ◄┘
"""

from repo_research.services.scanner import Scanner, RepoIndex
from repo_research.services.repo_search import search_repo
from repo_research.services.multi_search import (
    AggregatedResult,
    RepoSearchRequest,
    search_repos_local,
)
from repo_research.services.worker_pool import RepoSearchService, WorkerPool
from repo_research.services.external_evidence import (
    DocsQAProvider,
    EvidenceFailure,
    EvidenceProvider,
    EvidenceSuccess,
    FailureKind,
)

__all__ = [
    "Scanner",
    "RepoIndex",
    "search_repo",
    "AggregatedResult",
    "RepoSearchRequest",
    "search_repos_local",
    "RepoSearchService",
    "WorkerPool",
    "DocsQAProvider",
    "EvidenceFailure",
    "EvidenceProvider",
    "EvidenceSuccess",
    "FailureKind",
]
