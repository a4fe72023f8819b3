"""Pool worker entry point.

Runs inside a worker process. Must stay a top-level function so it can be
pickled by ProcessPoolExecutor. Each worker process keeps its own Scanner,
so file indexes are cached per worker and never shared.
"""

from typing import Optional

from repo_research.services.multi_search import (
    AggregatedResult,
    RepoSearchRequest,
    search_repos_local,
)
from repo_research.services.scanner import Scanner

_scanner: Optional[Scanner] = None


def _get_scanner() -> Scanner:
    global _scanner
    if _scanner is None:
        _scanner = Scanner()
    return _scanner


def run_search_task(payload: RepoSearchRequest) -> AggregatedResult:
    """Run one aggregation request with this process's scanner."""
    return search_repos_local(payload, scanner=_get_scanner())
