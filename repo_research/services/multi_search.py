"""
Multi-Repository Search - Fans a query out over several repositories.

Each repository is searched independently (concurrently, one thread per
repo), then all snippets are merged, re-ranked by score and trimmed to a
global budget. Context blocks are labeled with the repo they came from.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from repo_research.models.schemas import RepoTarget
from repo_research.services.repo_search import Snippet, search_repo
from repo_research.services.scanner import Scanner
from repo_research.services.scoring import build_context_text


logger = logging.getLogger(__name__)

MAX_REPO_THREADS = 8


@dataclass
class RepoSearchRequest:
    """Aggregation request; also the payload sent to pool workers."""
    repos: List[RepoTarget]
    query: str
    max_files: int = 8000
    max_file_bytes: int = 1024 * 1024
    max_snippets: int = 20
    context_lines: int = 12
    max_context_chars: int = 80_000


@dataclass
class AggregatedResult:
    """Merged search result across repositories."""
    query: str
    context_text: str = ""
    sources: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls, query: str = "") -> "AggregatedResult":
        return cls(query=(query or "").strip())


@dataclass
class _RepoRef:
    repo_path: str
    label: str


def normalize_repos(repos: Sequence[RepoTarget]) -> List[_RepoRef]:
    """Resolve repo paths, drop blanks and duplicates, pick display labels."""
    out: List[_RepoRef] = []
    seen = set()
    for repo in repos:
        raw = (repo.path or "").strip()
        if not raw:
            continue
        abs_path = os.path.abspath(raw)
        if abs_path in seen:
            continue
        seen.add(abs_path)
        label = repo.label or os.path.basename(abs_path) or abs_path
        out.append(_RepoRef(repo_path=abs_path, label=label))
    return out


def _snippet_source(repo_path: str, snippet: Snippet) -> str:
    return f"{os.path.join(repo_path, snippet.file_path)}:{snippet.match_line}"


def search_repos_local(
    request: RepoSearchRequest,
    scanner: Optional[Scanner] = None,
) -> AggregatedResult:
    """
    Search all requested repositories in the current process.

    Args:
        request: Repos, query and limits.
        scanner: Scanner whose cache is used for every repo.

    Returns:
        AggregatedResult with globally ranked, repo-labeled context.
    """
    query = (request.query or "").strip()
    repos = normalize_repos(request.repos)
    if not query or not repos:
        return AggregatedResult.empty(query)

    scanner = scanner or Scanner()
    per_repo_max = max(request.max_snippets, 1)

    def _search_one(repo: _RepoRef) -> List[Snippet]:
        try:
            result = search_repo(
                repo_path=repo.repo_path,
                query=query,
                max_files=request.max_files,
                max_file_bytes=request.max_file_bytes,
                max_snippets=per_repo_max,
                context_lines=request.context_lines,
                max_context_chars=request.max_context_chars,
                scanner=scanner,
            )
        except Exception as e:
            logger.warning(f"Search failed for repo {repo.repo_path}: {e}")
            return []
        return result.snippets

    workers = min(len(repos), MAX_REPO_THREADS)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repo-search") as pool:
        per_repo = list(pool.map(_search_one, repos))

    merged: List[Tuple[_RepoRef, Snippet]] = []
    for repo, snippets in zip(repos, per_repo):
        merged.extend((repo, s) for s in snippets)

    # Repo path breaks score ties so the order never depends on input order
    merged.sort(key=lambda item: (-item[1].score, item[0].repo_path))
    selected = merged[:max(request.max_snippets, 1)]

    sources: List[str] = []
    blocks: List[str] = []
    for repo, snippet in selected:
        src = _snippet_source(repo.repo_path, snippet)
        if src not in sources:
            sources.append(src)
        blocks.append(f"Repo: {repo.label}\nFile: {src}\n{snippet.excerpt}\n")

    return AggregatedResult(
        query=query,
        context_text=build_context_text(blocks, request.max_context_chars),
        sources=sources,
    )
